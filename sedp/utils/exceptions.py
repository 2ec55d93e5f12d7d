# =======================================================================================
# sedp/utils/exceptions.py - Custom Exceptions
# =======================================================================================
from typing import Any, Dict, Optional


class SEDPError(Exception):
    """Base exception for the SEDP registry."""

    code = "INTERNAL_ERROR"
    title = "Error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class AuthenticationRequired(SEDPError):
    """Raised when a mutating call is made without an active session."""
    code = "AUTH_REQUIRED"
    title = "Authentication Required"

    def __init__(self, message: str = "Please sign in to continue."):
        super().__init__(message)


class PermissionDenied(SEDPError):
    """Raised when an admin-only operation is attempted by a non-admin."""
    code = "PERMISSION_DENIED"
    title = "Permission Denied"

    def __init__(self, message: str = "You don't have permission to perform this action."):
        super().__init__(message)


class ValidationError(SEDPError):
    """Raised for malformed input, before any store call is issued."""
    code = "VALIDATION_ERROR"
    title = "Invalid Input"


class InvalidTransition(ValidationError):
    """Raised when a registration status change is not allowed."""
    code = "INVALID_TRANSITION"
    title = "Invalid Status Change"


class ReferenceCodeConflict(ValidationError):
    """Raised when a reference code already belongs to another approved registration."""
    code = "REFERENCE_CODE_CONFLICT"
    title = "Reference Code Conflict"


class RecordNotFound(SEDPError):
    code = "NOT_FOUND"
    title = "Not Found"


class StoreFailure(SEDPError):
    """Raised for any error returned by the data store."""
    code = "STORE_FAILURE"
    title = "Error"

    def __init__(self, message: str = "Data store operation failed", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
