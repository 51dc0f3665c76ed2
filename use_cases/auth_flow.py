"""Authentication flow orchestration (application layer)."""

import logging
from dataclasses import dataclass
from typing import Literal, Optional

from infrastructure.gateway.auth_gateway import GatewayError
from use_cases.session_models import is_admin

log = logging.getLogger(__name__)

AuthFlowStatus = Literal["CONTINUE", "STOP"]

ACCESS_DENIED = "Access denied. Not an admin user."
INVALID_CREDENTIALS = "Invalid credentials"
MISSING_CREDENTIALS = "Enter your email and password."


@dataclass(frozen=True)
class AuthFlowResult:
    """Result contract for auth flow orchestration."""

    status: AuthFlowStatus
    reason: str
    email: Optional[str] = None
    message: Optional[str] = None


async def ensure_authenticated_session(session_manager) -> AuthFlowResult:
    """Hydrate (once) and report whether the admin area may be shown."""
    await session_manager.hydrate()

    if not session_manager.session.authenticated:
        return AuthFlowResult(status="STOP", reason="auth_required")
    profile = session_manager.profile
    if not is_admin(profile):
        return AuthFlowResult(status="STOP", reason="admin_required", email=profile.email if profile else None)
    return AuthFlowResult(status="CONTINUE", reason="authenticated", email=profile.email)


async def admin_sign_in(gateway, session_manager, email: str, password: str) -> AuthFlowResult:
    """Admin login page: only an admin response opens a session."""
    import auth
    from infrastructure.repositories.sqlite_audit_repository import AuditAction

    email = (email or "").strip()
    if not email or not password:
        return AuthFlowResult(status="STOP", reason="missing_credentials", message=MISSING_CREDENTIALS)

    try:
        res = await gateway.login(email, password)
    except GatewayError as e:
        log.info(f"Admin login rejected ({e.status}): {e.message}")
        auth.get_audit_repo().log_action(
            AuditAction.LOGIN_FAIL,
            target_type="admin_login",
            actor_email=email,
            metadata={"status": e.status, "reason": "rejected"},
            result="deny"
        )
        return AuthFlowResult(status="STOP", reason="rejected", email=email, message=e.message or INVALID_CREDENTIALS)

    if res.role != "admin":
        log.warning(f"Admin login refused for role {res.role!r}")
        auth.get_audit_repo().log_action(
            AuditAction.RBAC_DENIED,
            target_type="admin_login",
            actor_email=res.email,
            actor_role=res.role,
            metadata={"reason": "not_admin"},
            result="deny"
        )
        return AuthFlowResult(status="STOP", reason="not_admin", email=res.email, message=ACCESS_DENIED)

    session_manager.login(res.token, res.to_profile())
    return AuthFlowResult(status="CONTINUE", reason="authenticated", email=res.email)
