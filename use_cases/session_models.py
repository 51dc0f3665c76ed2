"""Session DTOs shared across application layers."""

from dataclasses import dataclass, field, replace
from typing import Any, Generic, Iterable, Literal, Mapping, Optional, Tuple, TypeVar

Role = Literal["admin", "user"]
MembershipStatus = Literal["active", "expired", "cancelled"]
FieldStatus = Literal["idle", "pending", "resolved", "failed"]

T = TypeVar("T")


@dataclass(frozen=True)
class UserProfile:
    name: str
    email: str
    role: str
    memberships: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Membership:
    id: str
    plan_name: str
    status: str

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Membership":
        return cls(
            id=str(record.get("_id") or record.get("id") or ""),
            plan_name=str(record.get("planName") or ""),
            status=str(record.get("status") or ""),
        )


@dataclass(frozen=True)
class AuthResponse:
    """Payload returned by every endpoint that issues a bearer token."""

    id: str
    email: str
    name: str
    token: str = field(repr=False)
    role: str

    def to_profile(self) -> UserProfile:
        return UserProfile(name=self.name, email=self.email, role=self.role)


@dataclass(frozen=True)
class SignupPayload:
    name: str
    email: str
    password: str = field(repr=False)

    def as_body(self) -> dict:
        return {"name": self.name, "email": self.email, "password": self.password}


@dataclass(frozen=True)
class Session:
    token: Optional[str] = field(default=None, repr=False)
    authenticated: bool = False
    is_hydrating: bool = True


@dataclass(frozen=True)
class FieldState(Generic[T]):
    """Explicit pending/resolved/failed wrapper around a derived async value.

    A failed refresh keeps the last resolved value so callers can keep
    showing it next to the error.
    """

    status: FieldStatus = "idle"
    value: Optional[T] = None
    error: Optional[str] = None

    def pending(self) -> "FieldState[T]":
        return replace(self, status="pending", error=None)

    def resolved(self, value: T) -> "FieldState[T]":
        return FieldState(status="resolved", value=value, error=None)

    def failed(self, error: str) -> "FieldState[T]":
        return replace(self, status="failed", error=error)


def is_admin(profile: Optional[UserProfile]) -> bool:
    return profile is not None and profile.role == "admin"


def is_member(profile: Optional[UserProfile]) -> bool:
    return profile is not None and profile.role == "user"


def active_plan_names(memberships: Iterable[Membership]) -> Tuple[str, ...]:
    return tuple(m.plan_name for m in memberships if m.status == "active")
