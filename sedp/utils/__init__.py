# =======================================================================================
# sedp/utils/__init__.py - Utils Package
# =======================================================================================
from .exceptions import *
from .validators import *

__all__ = [
    "SEDPError", "AuthenticationRequired", "PermissionDenied", "ValidationError",
    "InvalidTransition", "ReferenceCodeConflict", "RecordNotFound", "StoreFailure",
    "RegistrationValidator", "is_valid_mobile", "parse_input",
]
