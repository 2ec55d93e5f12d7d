"""
SEDP Registry - Test Configuration and Fixtures
"""
from typing import Any, Callable, Dict

import pytest

from sedp.database import DatabaseManager
from sedp.models.schemas import Identity
from sedp.services.auth_service import AuthService
from sedp.services.content_service import ContentService
from sedp.services.sync_service import SyncService
from sedp.store import DataStore

BOOTSTRAP_TOKEN = "first-admin-setup-token"


@pytest.fixture
def bootstrap_token() -> str:
    return BOOTSTRAP_TOKEN


@pytest.fixture
def db(tmp_path) -> DatabaseManager:
    """Fresh file-backed SQLite database per test"""
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'test.db'}")
    manager.init_schema()
    yield manager
    manager.dispose()


@pytest.fixture
def store(db: DatabaseManager) -> DataStore:
    return DataStore(db)


@pytest.fixture
def auth(store: DataStore) -> AuthService:
    return AuthService(store, bootstrap_token_hash=AuthService.hash_token(BOOTSTRAP_TOKEN))


@pytest.fixture
def sync(store: DataStore, auth: AuthService) -> SyncService:
    return SyncService(store, auth)


@pytest.fixture
def seeded(store: DataStore) -> int:
    """Default fee schedule in the categories table"""
    return ContentService(store).seed_default_categories()


@pytest.fixture
def user() -> Identity:
    return Identity(user_id="user-1", email="asha@example.com")


@pytest.fixture
def other_user() -> Identity:
    return Identity(user_id="user-2", email="ravi@example.com")


@pytest.fixture
def admin(store: DataStore) -> Identity:
    """An identity holding the admin role"""
    identity = Identity(user_id="admin-1", email="admin@example.com")
    store.insert("user_roles", {"user_id": identity.user_id, "role": "admin", "granted_by": "test"})
    return identity


@pytest.fixture
def registration_fields() -> Callable[..., Dict[str, Any]]:
    """Factory for a valid submission; keyword arguments override fields"""
    def make(**overrides: Any) -> Dict[str, Any]:
        fields = {
            "full_name": "Asha",
            "mobile_number": "9876543210",
            "whatsapp_number": "9876543210",
            "address": "Kottakkal, Malappuram",
            "panchayath_details": "Kottakkal",
            "category": "farmelife",
        }
        fields.update(overrides)
        return fields

    return make
