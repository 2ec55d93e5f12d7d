# =======================================================================================
# sedp/main.py - FastAPI Application Entry Point
# =======================================================================================
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes.auth import router as auth_router
from .api.routes.content import router as content_router
from .api.routes.registrations import router as registrations_router
from .config import config
from .database import DatabaseManager, db_manager
from .models.schemas import HealthResponse
from .services.content_service import ContentService
from .services.sync_service import SyncService
from .store import DataStore

logger = logging.getLogger(__name__)


def configure_logging():
    logging.basicConfig(
        level=logging.DEBUG if config.API_DEBUG else getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(db: Optional[DatabaseManager] = None) -> FastAPI:
    db = db or db_manager
    store = DataStore(db)

    app = FastAPI(
        title="SEDP Registration API",
        version="1.0.0",
        description="Registration, review and content management for the self-employment development program",
        debug=config.API_DEBUG,
    )
    app.state.db = db
    app.state.store = store
    app.state.sync_service = SyncService(store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(registrations_router, prefix="/api", tags=["registrations"])
    app.include_router(content_router, prefix="/api", tags=["content"])
    app.include_router(auth_router, prefix="/api", tags=["auth"])

    @app.get("/api/health", response_model=HealthResponse, tags=["health"])
    def api_health():
        try:
            db.fetch_one("SELECT 1")
            return HealthResponse(status="ok", dataAvailable=True, message=None)
        except Exception as e:
            return HealthResponse(status="error", dataAvailable=False, message=str(e))

    @app.on_event("startup")
    def startup_event():
        db.init_schema()
        if config.SEED_DEFAULT_CATEGORIES:
            ContentService(store).seed_default_categories()
        if not config.ADMIN_BOOTSTRAP_TOKEN_HASH:
            logger.info("ADMIN_BOOTSTRAP_TOKEN_HASH not set; first-admin bootstrap disabled")
        logger.info("SEDP Registration API started")

    return app


configure_logging()
app = create_app()
