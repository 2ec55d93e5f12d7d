# =======================================================================================
# sedp/models/__init__.py - Models Package
# =======================================================================================
from .schemas import *
from .enums import *

__all__ = [
    "Registration", "Category", "Panchayath", "Announcement", "PhotoGalleryItem",
    "PushNotification", "UserRole", "Identity", "RegistrationCreate", "StatusUpdate",
    "Notice", "RegistrationStats", "RegistrationStatus", "AppRole", "TargetAudience",
    "Status", "Role", "ChangeType", "SUBSCRIBED_TABLES",
]
