# =======================================================================================
# sedp/models/enums.py - Enums and Constants
# =======================================================================================
from enum import Enum
from typing import Literal

# Type aliases for better type hints
RegistrationStatus = Literal["pending", "approved", "rejected"]
DecisionStatus = Literal["approved", "rejected"]
AppRole = Literal["admin", "user"]
TargetAudience = Literal["all", "category", "panchayath", "admin"]
NoticeVariant = Literal["default", "destructive"]


class Status(str, Enum):
    """Registration lifecycle states."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


class ChangeType(str, Enum):
    """Change-feed event types."""
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


TARGET_AUDIENCES = ("all", "category", "panchayath", "admin")

# Tables a session listens to; any change triggers a full re-fetch
SUBSCRIBED_TABLES = (
    "registrations",
    "categories",
    "panchayaths",
    "announcements",
    "photo_gallery",
    "push_notifications",
)
