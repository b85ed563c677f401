"""Application settings loaded from the environment."""

from functools import lru_cache
import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

LOGIN_PATH = "/api/login"


class Settings(BaseModel):
    """Runtime configuration for the backend."""

    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    database_url: str = "sqlite+aiosqlite:///./userdesk.db"

    session_cookie: str = "session_id"
    session_lifetime_hours: int = 24
    session_secure: bool = False

    # Token carriers; must match the client configuration exactly
    csrf_cookie: str = "XSRF-TOKEN"
    csrf_header: str = "X-CSRF-TOKEN"
    csrf_alt_header: str = "X-XSRF-TOKEN"
    csrf_field: str = "_token"
    csrf_mismatch_status: int = 419
    csrf_exempt_paths: List[str] = ["/csrf-cookie", "/api/login"]
    bootstrap_path: str = "/csrf-cookie"

    # Frontend hosts allowed to hold a stateful session
    stateful_domains: List[str] = ["localhost", "localhost:3000", "127.0.0.1"]


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on")


def _as_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Build settings from environment variables.

    Raises:
        ValueError: If a value is out of range
    """
    environment = os.getenv("ENVIRONMENT", "development").strip().lower()

    mismatch_status = int(os.getenv("CSRF_MISMATCH_STATUS", "419"))
    if not 400 <= mismatch_status < 500 or mismatch_status in (401, 403):
        raise ValueError(
            f"Invalid CSRF_MISMATCH_STATUS: {mismatch_status}. "
            "Must be a 4xx code distinct from 401 and 403"
        )

    bootstrap_path = os.getenv("CSRF_BOOTSTRAP_PATH", "/csrf-cookie")
    if not bootstrap_path.startswith("/"):
        raise ValueError(f"Invalid CSRF_BOOTSTRAP_PATH: {bootstrap_path}. Must start with /")

    lifetime = int(os.getenv("SESSION_LIFETIME_HOURS", "24"))
    if lifetime <= 0:
        raise ValueError(f"Invalid SESSION_LIFETIME_HOURS: {lifetime}. Must be positive")

    return Settings(
        environment=environment,
        debug=_as_bool(os.getenv("DEBUG", "false" if environment == "production" else "true")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        database_url=os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./userdesk.db"),
        session_cookie=os.getenv("SESSION_COOKIE", "session_id"),
        session_lifetime_hours=lifetime,
        session_secure=_as_bool(
            os.getenv("SESSION_SECURE", "true" if environment == "production" else "false")
        ),
        csrf_cookie=os.getenv("CSRF_COOKIE", "XSRF-TOKEN"),
        csrf_header=os.getenv("CSRF_HEADER", "X-CSRF-TOKEN"),
        csrf_alt_header=os.getenv("CSRF_ALT_HEADER", "X-XSRF-TOKEN"),
        csrf_field=os.getenv("CSRF_FIELD", "_token"),
        csrf_mismatch_status=mismatch_status,
        csrf_exempt_paths=_as_list(
            os.getenv("CSRF_EXEMPT_PATHS", f"{bootstrap_path},{LOGIN_PATH}")
        ),
        bootstrap_path=bootstrap_path,
        stateful_domains=_as_list(
            os.getenv("STATEFUL_DOMAINS", "localhost,localhost:3000,127.0.0.1")
        ),
    )
