# =======================================================================================
# sedp/config.py - Configuration Management
# =======================================================================================
import os
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    """Helper to parse boolean environment variables."""
    return os.getenv(name, default).lower() == "true"


def _env_str(name: str) -> Optional[str]:
    v = os.getenv(name)
    return v.strip() if v and v.strip() else None


class Config:
    # Database
    DB_URL: str = os.getenv("DB_URL", "sqlite:///./sedp.db")

    # API Settings
    API_DEBUG: bool = _env_bool("API_DEBUG")
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Database Connection Pool
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "10"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "20"))

    # First-admin claim token (passlib hash); bootstrap is disabled while unset
    ADMIN_BOOTSTRAP_TOKEN_HASH: Optional[str] = _env_str("ADMIN_BOOTSTRAP_TOKEN_HASH")

    # Registration
    REFERENCE_PREFIX: str = os.getenv("REFERENCE_PREFIX", "ESP")
    SEED_DEFAULT_CATEGORIES: bool = _env_bool("SEED_DEFAULT_CATEGORIES", "true")


config = Config()
