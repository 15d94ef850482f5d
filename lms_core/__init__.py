"""Multi-tenant LMS core: tenant connection routing and module assignment reconciliation."""

__version__ = "1.0.0"
