# lms_core/models/__init__.py
"""Import all models here so both metadata collections are complete."""
from .base import CentralBase, TenantBase

# Central models
from .shared.school import School, SchoolStatus
from .shared.user import User, RoleEnum

# Tenant-specific models
from .tenant_specific.module import Module
from .tenant_specific.module_assignment import ModuleProfessorAssignment
from .tenant_specific.assignment_audit_log import AssignmentAuditLog, AssignmentAction
from .tenant_specific.notification import Notification, NotificationType, NotificationStatus, RecipientType
