"""
Configuration for the admin console.

Values are read from Streamlit secrets first and from environment variables
second, so services and views never touch os.environ directly.
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

log = logging.getLogger(__name__)

CREDENTIAL_STORE_BACKENDS = ("browser", "sqlite")


@dataclass(frozen=True)
class Settings:
    """Typed view of secrets and environment variables."""

    backend_url: str
    request_timeout_seconds: float
    credential_store: str
    credentials_db: str
    audit_db: str
    auth_cookie_name: str


def _lookup(key: str) -> Optional[str]:
    import auth

    value = auth.get_secret(key)
    if value is None:
        value = os.getenv(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _float(value: Optional[str], default: float) -> float:
    try:
        parsed = float(value) if value is not None else default
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


@lru_cache
def get_settings() -> Settings:
    """Build the Settings instance once per process."""
    store = (_lookup("CREDENTIAL_STORE") or "browser").lower()
    if store not in CREDENTIAL_STORE_BACKENDS:
        log.warning(f"⚠️ Unknown CREDENTIAL_STORE={store!r}, falling back to 'browser'")
        store = "browser"

    return Settings(
        backend_url=(_lookup("BACKEND_URL") or "http://localhost:5000/api").rstrip("/"),
        request_timeout_seconds=_float(_lookup("REQUEST_TIMEOUT_SECONDS"), 15.0),
        credential_store=store,
        credentials_db=_lookup("CREDENTIALS_DB") or "credentials.db",
        audit_db=_lookup("AUDIT_DB") or "audit.db",
        auth_cookie_name=_lookup("AUTH_COOKIE_NAME") or "advisory_auth_token",
    )
