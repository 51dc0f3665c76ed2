"""Application layer contracts for the console's identity and session layer."""

from .session_models import (
    AuthResponse,
    FieldState,
    Membership,
    MembershipStatus,
    Role,
    Session,
    SignupPayload,
    UserProfile,
    active_plan_names,
    is_admin,
    is_member,
)

__all__ = [
    "AuthResponse",
    "FieldState",
    "Membership",
    "MembershipStatus",
    "Role",
    "Session",
    "SignupPayload",
    "UserProfile",
    "active_plan_names",
    "is_admin",
    "is_member",
]
