"""Application configuration and constants."""
import os
from pathlib import Path


class ConfigurationError(RuntimeError):
    """Raised when required settings are missing or unsafe."""


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# Environment
APP_ENV = os.environ.get("APP_ENV", "development").lower()
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# Database
DB_DIR = Path(os.environ.get("DB_DIR", Path.cwd() / "data"))
DB_DIR.mkdir(parents=True, exist_ok=True)
DATABASE_URL = os.environ.get(
    "DATABASE_URL", f"sqlite:///{DB_DIR / 'certprep.db'}"
)

# Read fallback policy for repositories: "off" or "mock"
DATA_FALLBACK = os.environ.get("DATA_FALLBACK", "off").lower()

# Authentication
DEFAULT_SECRET_KEY = "CHANGE_ME_IN_PRODUCTION_USE_openssl_rand_hex_32"
SECRET_KEY = os.environ.get("SECRET_KEY", DEFAULT_SECRET_KEY)
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = _parse_int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 60)
SESSION_EXTEND_MINUTES = _parse_int_env("SESSION_EXTEND_MINUTES", 60)
MAGIC_LINK_EXPIRE_MINUTES = _parse_int_env("MAGIC_LINK_EXPIRE_MINUTES", 15)
MAGIC_LINK_BASE_URL = os.environ.get(
    "MAGIC_LINK_BASE_URL", "http://127.0.0.1:8000/auth/callback"
)

# Exams
LOW_TIME_WARNING_SECONDS = _parse_int_env("LOW_TIME_WARNING_SECONDS", 60)
ADMIN_PREVIEW_PREFIX = "admin-preview-"

# Dashboards
HISTORY_LIMIT = 20
TREND_LIMIT = 10
ANALYTICS_ANSWER_LIMIT = 500

# Background maintenance
SESSION_SWEEP_INTERVAL_SECONDS = _parse_int_env(
    "SESSION_SWEEP_INTERVAL_SECONDS", 5 * 60
)


def validate_settings() -> None:
    """Fail fast on settings that must be provided outside development."""
    if not DATABASE_URL:
        raise ConfigurationError("DATABASE_URL is not set")
    if APP_ENV == "production" and SECRET_KEY == DEFAULT_SECRET_KEY:
        raise ConfigurationError("SECRET_KEY must be set in production")
