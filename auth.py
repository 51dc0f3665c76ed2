"""Wiring for auth collaborators: secrets, audit log, credential store and gateway."""

import logging
from typing import Callable, Optional

import streamlit as st

from infrastructure.config import Settings, get_settings
from infrastructure.gateway.auth_gateway import AuthGateway
from infrastructure.repositories.sqlite_audit_repository import SQLiteAuditRepository
from infrastructure.storage.credential_store import BrowserCredentialStore, SQLiteCredentialStore

log = logging.getLogger(__name__)


def get_secret(key):
    try:
        return st.secrets.get(key)
    except FileNotFoundError:
        return None


_audit_repo = None


def get_audit_repo() -> SQLiteAuditRepository:
    global _audit_repo
    db_path = get_settings().audit_db
    if _audit_repo is None or _audit_repo.db_path != db_path:
        _audit_repo = SQLiteAuditRepository(db_path)
    return _audit_repo


def build_credential_store(settings: Optional[Settings] = None):
    settings = settings or get_settings()
    if settings.credential_store == "sqlite":
        log.info(f"Using SQLite credential store at {settings.credentials_db}")
        return SQLiteCredentialStore(settings.credentials_db)
    return BrowserCredentialStore(settings.auth_cookie_name)


def build_gateway(
    settings: Optional[Settings] = None,
    token_provider: Optional[Callable[[], Optional[str]]] = None,
) -> AuthGateway:
    settings = settings or get_settings()
    return AuthGateway(
        settings.backend_url,
        timeout=settings.request_timeout_seconds,
        token_provider=token_provider,
    )
