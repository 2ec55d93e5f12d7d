# =======================================================================================
# sedp/database.py - Database Management
# =======================================================================================
from contextlib import contextmanager
from typing import Any, Dict, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool, StaticPool

from .config import config

metadata = MetaData()

registrations = Table(
    "registrations",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("full_name", String(200), nullable=False),
    Column("mobile_number", String(10), nullable=False, index=True),
    Column("whatsapp_number", String(10), nullable=False),
    Column("address", Text, nullable=False),
    Column("panchayath_details", String(255), nullable=False),
    Column("panchayath_id", String(36), nullable=True),
    Column("category", String(100), nullable=False),
    Column("category_id", String(36), nullable=True),
    Column("status", String(20), nullable=False, default="pending"),
    Column("submitted_at", DateTime(timezone=True), nullable=True),
    Column("approved_at", DateTime(timezone=True), nullable=True),
    # one reference code per approved applicant
    Column("unique_id", String(32), nullable=True, unique=True),
    Column("user_id", String(64), nullable=True, index=True),
)

categories = Table(
    "categories",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(100), nullable=False, unique=True),
    Column("label", String(200), nullable=False),
    Column("actual_fee", Integer, nullable=True, default=0),
    Column("offer_fee", Integer, nullable=True, default=0),
    Column("has_offer", Boolean, nullable=True, default=False),
    Column("image_url", String(500), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=True),
)

panchayaths = Table(
    "panchayaths",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("malayalam_name", String(200), nullable=False),
    Column("english_name", String(200), nullable=False),
    Column("pincode", String(6), nullable=True),
    Column("district", String(100), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=True),
)

announcements = Table(
    "announcements",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("title", String(255), nullable=False),
    Column("content", Text, nullable=False),
    Column("link", String(500), nullable=True),
    Column("category", String(100), nullable=True),
    Column("is_active", Boolean, nullable=True, default=True),
    Column("created_at", DateTime(timezone=True), nullable=True),
    Column("created_by", String(64), nullable=True),
)

photo_gallery = Table(
    "photo_gallery",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("title", String(255), nullable=False),
    Column("image_url", String(500), nullable=False),
    Column("description", Text, nullable=True),
    Column("category", String(100), nullable=False),
    Column("uploaded_at", DateTime(timezone=True), nullable=True),
    Column("uploaded_by", String(64), nullable=True),
)

push_notifications = Table(
    "push_notifications",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("title", String(255), nullable=False),
    Column("content", Text, nullable=False),
    Column("target_audience", String(20), nullable=False),
    Column("target_value", String(200), nullable=True),
    Column("scheduled_at", DateTime(timezone=True), nullable=True),
    Column("sent_at", DateTime(timezone=True), nullable=True),
    Column("is_active", Boolean, nullable=True, default=True),
    Column("created_at", DateTime(timezone=True), nullable=True),
    Column("created_by", String(64), nullable=True),
)

user_roles = Table(
    "user_roles",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(64), nullable=False),
    Column("role", String(20), nullable=False, default="user"),
    Column("granted_by", String(64), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=True),
    UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
)


def _engine_kwargs(url: str) -> Dict[str, Any]:
    """Pool settings per backend; SQLite cannot take the server isolation level."""
    if url.startswith("sqlite"):
        kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # a single shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool
        return kwargs

    return {
        "poolclass": QueuePool,
        "pool_size": config.DB_POOL_SIZE,
        "max_overflow": config.DB_MAX_OVERFLOW,
        "pool_pre_ping": True,
        "isolation_level": "READ COMMITTED",
    }


class DatabaseManager:
    """Manages database connections and transactions."""

    def __init__(self, url: Optional[str] = None):
        self.url = url or config.DB_URL
        self.engine: Engine = create_engine(self.url, future=True, **_engine_kwargs(self.url))

    def init_schema(self):
        """Create every table that does not exist yet."""
        metadata.create_all(self.engine)

    @contextmanager
    def get_connection(self):
        """Get a database connection with automatic cleanup."""
        with self.engine.begin() as conn:
            yield conn

    def fetch_one(self, query: str, params: dict = None):
        """Fetch a single result."""
        with self.get_connection() as conn:
            result = conn.execute(text(query), params or {})
            return result.mappings().first()

    def fetch_all(self, query: str, params: dict = None):
        """Fetch all results."""
        with self.get_connection() as conn:
            result = conn.execute(text(query), params or {})
            return result.mappings().all()

    def dispose(self):
        self.engine.dispose()


# Global database instance
db_manager = DatabaseManager()
