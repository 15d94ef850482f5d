# lms_core/core/exceptions.py
"""Custom exceptions for the LMS core."""
from fastapi import HTTPException
from typing import Any, Dict, Optional


class LMSCoreException(HTTPException):
    """Base exception for the LMS core."""
    def __init__(
        self,
        status_code: int,
        detail: Any,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class TenantConfigurationError(LMSCoreException):
    """Raised when tenant routing is misconfigured (no base URI, no tenant key)."""
    def __init__(self, message: str):
        super().__init__(
            status_code=500,
            detail={
                "error": "Configuration Error",
                "message": message
            }
        )


class NotFoundError(LMSCoreException):
    """Resource not found."""
    resource = "Resource"

    def __init__(self, id: Any = None, message: Optional[str] = None):
        if message is None:
            message = f"{self.resource} not found"
            if id is not None:
                message += f" with id: {id}"
        super().__init__(status_code=404, detail=message)


class SchoolNotFound(NotFoundError):
    resource = "School"


class ModuleNotFound(NotFoundError):
    resource = "Module"


class ProfessorNotFound(NotFoundError):
    """One or more professors are missing, deleted, or belong to another school."""
    resource = "Professor"

    def __init__(self, missing_ids=None):
        message = "Professor not found or not in your school"
        if missing_ids:
            message += ": " + ", ".join(sorted(str(i) for i in missing_ids))
        super().__init__(message=message)
        self.missing_ids = set(missing_ids or ())


class AssignmentNotFound(NotFoundError):
    resource = "Assignment"

    def __init__(self, module_id: Any, professor_id: Any):
        super().__init__(
            message=f"Professor {professor_id} is not assigned to module {module_id}"
        )


class BadRequestError(LMSCoreException):
    def __init__(self, message: str = "Bad request"):
        super().__init__(status_code=400, detail=message)


class DatabaseError(LMSCoreException):
    """Exception raised for database errors."""
    def __init__(self, message: str):
        super().__init__(
            status_code=500,
            detail={
                "error": "Database Error",
                "message": message
            }
        )
