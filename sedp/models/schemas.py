# =======================================================================================
# sedp/models/schemas.py - Pydantic Models
# =======================================================================================
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import AppRole, DecisionStatus, NoticeVariant, RegistrationStatus, TargetAudience


class _Input(BaseModel):
    """Inputs reject fields they do not declare."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


# ========== Records ==========

class Registration(BaseModel):
    """One applicant's submission."""
    id: str
    full_name: str
    mobile_number: str
    whatsapp_number: str
    address: str
    panchayath_details: str
    panchayath_id: Optional[str] = None
    category: str
    category_id: Optional[str] = None
    status: RegistrationStatus = "pending"
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    unique_id: Optional[str] = None
    user_id: Optional[str] = None


class Category(BaseModel):
    """A program track with a fee schedule."""
    id: str
    name: str
    label: str
    actual_fee: int = 0
    offer_fee: int = 0
    has_offer: bool = False
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("actual_fee", "offer_fee", mode="before")
    @classmethod
    def _null_fee(cls, v):
        return 0 if v is None else v

    @field_validator("has_offer", mode="before")
    @classmethod
    def _null_offer(cls, v):
        return False if v is None else v

    @property
    def display_offer_fee(self) -> Optional[int]:
        """Discounted fee, only while the offer is enabled."""
        return self.offer_fee if self.has_offer else None

    @property
    def payable_fee(self) -> int:
        return self.offer_fee if self.has_offer else self.actual_fee


class Panchayath(BaseModel):
    id: str
    malayalam_name: str
    english_name: str
    pincode: Optional[str] = None
    district: Optional[str] = None
    created_at: Optional[datetime] = None


class Announcement(BaseModel):
    id: str
    title: str
    content: str
    link: Optional[str] = None
    category: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None

    @field_validator("is_active", mode="before")
    @classmethod
    def _null_active(cls, v):
        return True if v is None else v


class PhotoGalleryItem(BaseModel):
    id: str
    title: str
    image_url: str
    description: Optional[str] = None
    category: str
    uploaded_at: Optional[datetime] = None
    uploaded_by: Optional[str] = None


class PushNotification(BaseModel):
    id: str
    title: str
    content: str
    target_audience: TargetAudience
    target_value: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None

    @field_validator("is_active", mode="before")
    @classmethod
    def _null_active(cls, v):
        return True if v is None else v


class UserRole(BaseModel):
    id: str
    user_id: str
    role: AppRole
    granted_by: Optional[str] = None
    created_at: Optional[datetime] = None


class Identity(BaseModel):
    """Current user as asserted by the external identity provider."""
    model_config = ConfigDict(frozen=True)

    user_id: str
    email: Optional[str] = None


# ========== Inputs ==========

class RegistrationCreate(_Input):
    """Fields an applicant submits; identity, status and code are set by the service."""
    full_name: str = Field(..., min_length=1, max_length=200)
    mobile_number: str
    whatsapp_number: str
    address: str = Field(..., min_length=1)
    panchayath_details: str = Field(..., min_length=1, max_length=255)
    panchayath_id: Optional[str] = None
    category: str = Field(..., min_length=1)
    category_id: Optional[str] = None


class StatusUpdate(_Input):
    status: DecisionStatus
    unique_id: Optional[str] = None


class CategoryCreate(_Input):
    name: str = Field(..., min_length=1, max_length=100)
    label: str = Field(..., min_length=1, max_length=200)
    actual_fee: int = Field(0, ge=0)
    offer_fee: int = Field(0, ge=0)
    has_offer: bool = False
    image_url: Optional[str] = None


class CategoryUpdate(_Input):
    label: Optional[str] = None
    actual_fee: Optional[int] = Field(None, ge=0)
    offer_fee: Optional[int] = Field(None, ge=0)
    has_offer: Optional[bool] = None
    image_url: Optional[str] = None


class PanchayathCreate(_Input):
    malayalam_name: str = Field(..., min_length=1)
    english_name: str = Field(..., min_length=1)
    pincode: Optional[str] = Field(None, pattern=r"^\d{6}$")
    district: Optional[str] = None


class PanchayathUpdate(_Input):
    malayalam_name: Optional[str] = None
    english_name: Optional[str] = None
    pincode: Optional[str] = Field(None, pattern=r"^\d{6}$")
    district: Optional[str] = None


class AnnouncementCreate(_Input):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    link: Optional[str] = None
    category: Optional[str] = None
    is_active: bool = True


class AnnouncementUpdate(_Input):
    title: Optional[str] = None
    content: Optional[str] = None
    link: Optional[str] = None
    category: Optional[str] = None
    is_active: Optional[bool] = None


class PhotoCreate(_Input):
    title: str = Field(..., min_length=1)
    image_url: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: str = Field(..., min_length=1)


class PhotoUpdate(_Input):
    title: Optional[str] = None
    image_url: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None


class NotificationCreate(_Input):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    target_audience: TargetAudience = "all"
    target_value: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    is_active: bool = True


class NotificationUpdate(_Input):
    title: Optional[str] = None
    content: Optional[str] = None
    target_audience: Optional[TargetAudience] = None
    target_value: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    is_active: Optional[bool] = None


# ========== Session / API ==========

class Notice(BaseModel):
    """A transient user-facing message (toast)."""
    title: str
    description: str
    variant: NoticeVariant = "default"
    code: Optional[str] = None


class RegistrationStats(BaseModel):
    total: int
    pending: int
    approved: int
    rejected: int


class BootstrapRequest(_Input):
    token: str = Field(..., min_length=1)


class RoleAssignRequest(_Input):
    user_id: str = Field(..., min_length=1)
    role: AppRole = "admin"


class SnapshotResponse(BaseModel):
    user_id: Optional[str] = None
    is_admin: bool = False
    registrations: List[Registration] = []
    categories: List[Category] = []
    panchayaths: List[Panchayath] = []
    announcements: List[Announcement] = []
    photo_gallery: List[PhotoGalleryItem] = []
    notifications: List[PushNotification] = []


class OperationResponse(BaseModel):
    success: bool
    message: str
    notices: List[Notice] = []
    data: Optional[Any] = None


class HealthResponse(BaseModel):
    status: str                 # "ok" | "error"
    dataAvailable: bool
    message: Optional[str] = None

