"""Startup orchestration: builds the auth services for a browser session."""

from dataclasses import dataclass
from typing import Literal, Optional, Tuple

import auth
from infrastructure.config import Settings, get_settings
from use_cases.credential_flow import CredentialFlowController
from use_cases.session_service import SessionManager
from utils import session_manager

StartupStatus = Literal["CONTINUE", "STOP"]


@dataclass(frozen=True)
class StartupResult:
    """Result contract for startup/bootstrap orchestration."""

    status: StartupStatus
    planned_steps: Tuple[str, ...]


@dataclass
class AuthServices:
    settings: Settings
    gateway: object
    session_manager: SessionManager
    credential_flow: CredentialFlowController
    credential_store: object = None


def build_auth_services(
    settings: Optional[Settings] = None,
    store=None,
    gateway=None,
    audit=None,
) -> AuthServices:
    """Wire store, gateway and session manager; anything passed in is used as is."""
    settings = settings or get_settings()
    store = store if store is not None else auth.build_credential_store(settings)
    gateway = gateway if gateway is not None else auth.build_gateway(settings)
    audit = audit if audit is not None else auth.get_audit_repo()

    manager = SessionManager(store, gateway, audit=audit)
    # The gateway reads the bearer token from memory, the store is only read at hydration.
    gateway.set_token_provider(manager.current_token)

    return AuthServices(
        settings=settings,
        gateway=gateway,
        session_manager=manager,
        credential_flow=CredentialFlowController(gateway, manager),
        credential_store=store,
    )


def run_startup() -> StartupResult:
    """Prepare Streamlit session keys and the auth services (once per browser session)."""
    executed_steps = []

    session_manager.init_session_state()
    executed_steps.append("init_session_state")

    if session_manager.st.session_state.auth_services is None:
        session_manager.st.session_state.auth_services = build_auth_services()
        executed_steps.append("build_auth_services")

    return StartupResult(status="CONTINUE", planned_steps=tuple(executed_steps))
