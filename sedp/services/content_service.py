# =======================================================================================
# sedp/services/content_service.py - Admin-managed content tables
# =======================================================================================
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel

from ..models import schemas
from ..store import DataStore
from ..utils.exceptions import RecordNotFound, ValidationError
from ..utils.validators import parse_input

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContentKind:
    table: str
    record: Type[BaseModel]
    create: Type[BaseModel]
    update: Type[BaseModel]
    author_column: Optional[str] = None


CONTENT_KINDS: Dict[str, ContentKind] = {
    "category": ContentKind("categories", schemas.Category, schemas.CategoryCreate, schemas.CategoryUpdate),
    "panchayath": ContentKind("panchayaths", schemas.Panchayath, schemas.PanchayathCreate, schemas.PanchayathUpdate),
    "announcement": ContentKind(
        "announcements", schemas.Announcement, schemas.AnnouncementCreate, schemas.AnnouncementUpdate, "created_by"
    ),
    "photo": ContentKind(
        "photo_gallery", schemas.PhotoGalleryItem, schemas.PhotoCreate, schemas.PhotoUpdate, "uploaded_by"
    ),
    "notification": ContentKind(
        "push_notifications", schemas.PushNotification, schemas.NotificationCreate, schemas.NotificationUpdate,
        "created_by",
    ),
}

# Fee schedule used when the categories table is empty
DEFAULT_CATEGORIES: List[Dict[str, Any]] = [
    {"name": "pennyekart-free", "label": "Pennyekart Free Registration", "actual_fee": 0, "offer_fee": 0, "has_offer": False},
    {"name": "pennyekart-paid", "label": "Pennyekart Paid Registration", "actual_fee": 800, "offer_fee": 300, "has_offer": True},
    {"name": "farmelife", "label": "FarmeLife", "actual_fee": 1000, "offer_fee": 400, "has_offer": True},
    {"name": "foodelife", "label": "FoodeLife", "actual_fee": 1200, "offer_fee": 500, "has_offer": True},
    {"name": "organelife", "label": "OrganeLife", "actual_fee": 1500, "offer_fee": 600, "has_offer": True},
    {"name": "entrelife", "label": "EntreLife", "actual_fee": 900, "offer_fee": 350, "has_offer": True},
    {"name": "job-card", "label": "Job Card (All Categories)", "actual_fee": 2000, "offer_fee": 800, "has_offer": True},
]


def content_kind(kind: str) -> ContentKind:
    try:
        return CONTENT_KINDS[kind]
    except KeyError:
        raise ValidationError(f"Unknown content kind: {kind}", details={"allowed": sorted(CONTENT_KINDS)}) from None


class ContentService:
    """CRUD for categories, panchayaths, announcements, gallery and notification records.

    Callers are responsible for the admin check; the sync session does it
    before delegating here.
    """

    def __init__(self, store: DataStore):
        self.store = store

    def create(self, kind: str, fields: Dict[str, Any], author_id: Optional[str] = None) -> BaseModel:
        entry = content_kind(kind)
        values = parse_input(entry.create, fields).model_dump()
        if entry.author_column and author_id:
            values[entry.author_column] = author_id
        row = self.store.insert(entry.table, values)
        return entry.record(**row)

    def update(self, kind: str, record_id: str, fields: Dict[str, Any]) -> BaseModel:
        entry = content_kind(kind)
        values = parse_input(entry.update, fields).model_dump(exclude_unset=True)
        if not values:
            raise ValidationError("Nothing to update")

        if not self.store.update(entry.table, values, {"id": record_id}):
            raise RecordNotFound(f"{kind} {record_id} not found")

        rows = self.store.select(entry.table, filters={"id": record_id})
        return entry.record(**rows[0])

    def delete(self, kind: str, record_id: str) -> None:
        entry = content_kind(kind)
        if not self.store.delete(entry.table, {"id": record_id}):
            raise RecordNotFound(f"{kind} {record_id} not found")

    def category_by_name(self, name: str) -> Optional[schemas.Category]:
        rows = self.store.select("categories", filters={"name": name}, limit=1)
        return schemas.Category(**rows[0]) if rows else None

    def seed_default_categories(self) -> int:
        """Insert the default fee schedule into an empty categories table."""
        if self.store.select("categories", limit=1):
            return 0
        for category in DEFAULT_CATEGORIES:
            self.store.insert("categories", category)
        logger.info("Seeded %d default categories", len(DEFAULT_CATEGORIES))
        return len(DEFAULT_CATEGORIES)
