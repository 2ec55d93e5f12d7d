# =======================================================================================
# sedp/services/__init__.py - Services Package
# =======================================================================================
from .auth_service import AuthService
from .content_service import ContentService
from .dashboard_service import DashboardService
from .lifecycle import RegistrationLifecycle, reference_code
from .sync_service import SyncService, SyncSession

__all__ = [
    "AuthService", "ContentService", "DashboardService", "RegistrationLifecycle",
    "reference_code", "SyncService", "SyncSession",
]
