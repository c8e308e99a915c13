# hookrelay/config.py
from dotenv import load_dotenv
import logging
import os
from typing import Optional

# load local .env if present
load_dotenv()

logger = logging.getLogger(__name__)

SSM_PARAMETER_PREFIX = os.getenv("SSM_PARAMETER_PREFIX", "")


def _get_param_from_ssm(name: str, decrypt: bool = False) -> Optional[str]:
    """
    Try to fetch from SSM when a parameter prefix is configured. Import the
    boto3 helper lazily so imports don't fail if boto3/SSM isn't reachable.
    """
    if not SSM_PARAMETER_PREFIX:
        return None
    try:
        from .utils.ssm import get_relay_param
        return get_relay_param(SSM_PARAMETER_PREFIX, name, decrypt=decrypt)
    except Exception:
        logger.warning("SSM lookup for %s failed, falling back to environment", name)
        return None


def _get_param_with_fallback(name: str, decrypt: bool = False, default: Optional[str] = None) -> Optional[str]:
    val = _get_param_from_ssm(name, decrypt=decrypt)
    if val:
        return val
    return os.getenv(name, default)


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


DATA_DIR = os.getenv("DATA_DIR", os.path.join(os.getcwd(), "data"))


def get_database_url() -> str:
    db = _get_param_with_fallback("DATABASE_URL", decrypt=False)
    if db:
        return db
    return "sqlite:///" + os.path.join(DATA_DIR, "keyhook.db")


class Config:
    SQLALCHEMY_DATABASE_URI = get_database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    DATA_DIR = DATA_DIR

    # Credential authority
    KEYKEEPER_API = _get_param_with_fallback("KEYKEEPER_API", default="https://keykeeper.world/api")
    SERVICE_SECRET = _get_param_with_fallback("SERVICE_SECRET", decrypt=True, default="")
    TOKEN_CACHE_TTL = int(os.getenv("TOKEN_CACHE_TTL", "60"))

    # Public base URL used to build webhook URLs handed to callers
    PUBLIC_URL = _get_param_with_fallback("PUBLIC_URL", default="https://api.klawhook.xyz")
    PORT = int(os.getenv("PORT", "3002"))

    REAPER_ENABLED = _as_bool(os.getenv("REAPER_ENABLED"), True)
    REAPER_INTERVAL_SECONDS = int(os.getenv("REAPER_INTERVAL_SECONDS", "3600"))

    # Browser clients (the dashboard) call the API cross-origin
    CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    CORS_ALLOW_HEADERS = ["Content-Type", "Authorization"]

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
