"""Centralized Role-Based Access Control logic."""

import logging

log = logging.getLogger(__name__)

ADMIN_ROLE = "admin"

# Members have no rights inside the admin console.
USER_ACTIONS: frozenset = frozenset()


def enforce(session_manager, action: str) -> bool:
    """
    Evaluates if the current session may perform the action.
    Returns True if authorized, False otherwise.
    """
    import auth
    from infrastructure.repositories.sqlite_audit_repository import AuditAction

    session = session_manager.session
    role = session_manager.role
    authorized = False

    if session.authenticated:
        # Only the exact "admin" tag unlocks the console; unknown roles are denied.
        if role == ADMIN_ROLE:
            authorized = True
        elif role == "user" and action in USER_ACTIONS:
            authorized = True

    if not authorized and session.authenticated:
        profile = session_manager.profile
        log.info(f"RBAC denied '{action}' for role {role!r}")
        auth.get_audit_repo().log_action(
            AuditAction.RBAC_DENIED,
            target_type="rbac",
            actor_email=profile.email if profile else None,
            actor_role=role,
            metadata={"target_action": action, "reason": "insufficient_rights"},
            result="deny"
        )

    return authorized
