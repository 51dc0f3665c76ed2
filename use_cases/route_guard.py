"""Route table and access gate for the admin area."""

from dataclasses import dataclass, field, replace
from typing import Dict, Literal, Optional, Tuple
from urllib.parse import unquote

from use_cases import rbac_policy

GuardOutcome = Literal["LOADING", "REDIRECT", "RENDER"]

ROOT_PATH = "/"
LOGIN_PATH = "/admin/login"
DASHBOARD_PATH = "/admin/dashboard"

PROTECTED_ROUTES: Tuple[str, ...] = (
    DASHBOARD_PATH,
    "/admin/chat/{planName}",
    "/admin/create-plan",
    "/admin/edit-plan/{planName}",
    "/admin/users",
    "/admin/daily-calls",
    "/admin/all-daily-calls",
)

VIEW_ADMIN = "VIEW_ADMIN"


@dataclass(frozen=True)
class RouteDecision:
    outcome: GuardOutcome
    path: str
    route: Optional[str] = None
    redirect_to: Optional[str] = None
    params: Dict[str, str] = field(default_factory=dict)


def normalize_path(path: Optional[str]) -> str:
    path = (path or ROOT_PATH).split("?", 1)[0].split("#", 1)[0].strip()
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/") or ROOT_PATH
    return path


def match_route(path: str) -> Optional[Tuple[str, Dict[str, str]]]:
    """Match a concrete path against PROTECTED_ROUTES; placeholders capture one segment."""
    parts = path.strip("/").split("/")
    for route in PROTECTED_ROUTES:
        pattern = route.strip("/").split("/")
        if len(pattern) != len(parts):
            continue
        params = {}
        for expected, actual in zip(pattern, parts):
            if expected.startswith("{") and expected.endswith("}"):
                if not actual:
                    break
                params[expected[1:-1]] = unquote(actual)
            elif expected != actual:
                break
        else:
            return route, params
    return None


def guard(session_manager, path: str = DASHBOARD_PATH) -> RouteDecision:
    """
    Gate a protected view. While hydration is running the answer is always
    LOADING: redirecting then would throw out a valid session that simply
    has not been restored yet.
    """
    if session_manager.session.is_hydrating:
        return RouteDecision(outcome="LOADING", path=path)
    if not rbac_policy.enforce(session_manager, VIEW_ADMIN):
        return RouteDecision(outcome="REDIRECT", path=path, redirect_to=LOGIN_PATH)
    return RouteDecision(outcome="RENDER", path=path)


def resolve_route(path: Optional[str], session_manager) -> RouteDecision:
    path = normalize_path(path)
    if path == LOGIN_PATH:
        return RouteDecision(outcome="RENDER", path=path, route=LOGIN_PATH)

    matched = match_route(path)
    if matched is None:
        # "/" and unknown paths alike
        return RouteDecision(outcome="REDIRECT", path=path, redirect_to=LOGIN_PATH)

    route, params = matched
    return replace(guard(session_manager, path), route=route, params=params)
