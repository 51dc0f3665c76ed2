"""
HTTP client for the advisory backend's auth and membership endpoints.

Every call either returns the decoded 2xx body or raises GatewayError with
a status (an HTTP code, "timeout", or None for connectivity failures) and a
human readable message. Calls are coroutines: the blocking requests call
runs in a worker thread so the event loop keeps serving other flows.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Union

import requests

from use_cases.session_models import AuthResponse, Membership, SignupPayload, UserProfile

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0

STATUS_MESSAGES: Dict[int, str] = {
    400: "Invalid request format.",
    401: "Invalid API Key / Unauthorized.",
    403: "Request forbidden.",
    404: "Resource not found.",
    503: "Service unavailable. Try later.",
}

GatewayStatus = Union[int, str, None]


class GatewayError(Exception):
    def __init__(self, message: str, status: GatewayStatus = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data

    def __repr__(self) -> str:
        return f"GatewayError(status={self.status!r}, message={self.message!r})"


def _decode(resp: requests.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


def handle_response(resp: requests.Response) -> Any:
    """Pass 2xx bodies through unchanged, map everything else to GatewayError."""
    data = _decode(resp)
    status = resp.status_code
    if 200 <= status < 300:
        return data

    message = data.get("message") if isinstance(data, dict) else None
    if not message:
        message = STATUS_MESSAGES.get(status)
    if not message:
        message = "Request failed" if status >= 501 else "Unexpected error"
    raise GatewayError(message, status=status, data=data)


class AuthGateway:
    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token_provider = token_provider
        self._http = session or requests.Session()

    def set_token_provider(self, provider: Optional[Callable[[], Optional[str]]]) -> None:
        self._token_provider = provider

    def _headers(self, has_body: bool) -> Dict[str, str]:
        headers = {}
        if has_body:
            headers["Content-Type"] = "application/json"
        token = self._token_provider() if self._token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def request(self, method: str, route: str, body: Optional[dict] = None) -> Any:
        url = f"{self.base_url}{route}"
        try:
            resp = self._http.request(
                method,
                url,
                json=body,
                headers=self._headers(body is not None),
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            log.warning(f"⚠️ {method} {route} timed out after {self.timeout}s")
            raise GatewayError("Request timed out", status="timeout") from e
        except requests.RequestException as e:
            log.error(f"❌ Network error on {method} {route}: {e}")
            raise GatewayError("Network error") from e

        try:
            return handle_response(resp)
        except GatewayError as e:
            log.info(f"{method} {route} -> {e.status}: {e.message}")
            raise

    async def get(self, route: str) -> Any:
        return await asyncio.to_thread(self.request, "GET", route)

    async def post(self, route: str, body: Optional[dict] = None) -> Any:
        return await asyncio.to_thread(self.request, "POST", route, body or {})

    # --- endpoints ---

    async def login(self, email: str, password: str) -> AuthResponse:
        data = await self.post("/auth/login", {"email": email, "password": password})
        return _auth_response(data)

    async def signup(self, payload: SignupPayload) -> str:
        data = await self.post("/auth/signup", payload.as_body())
        return _message(data)

    async def verify_otp(self, email: str, otp: str) -> AuthResponse:
        data = await self.post("/auth/verify-otp", {"email": email, "otp": otp})
        return _auth_response(data)

    async def forgot_password(self, email: str) -> str:
        data = await self.post("/auth/forgot-password", {"email": email})
        return _message(data)

    async def reset_password(self, email: str, otp: str, new_password: str) -> str:
        data = await self.post(
            "/auth/reset-password",
            {"email": email, "otp": otp, "newPassword": new_password},
        )
        return _message(data)

    async def google_login(self, credential: str) -> AuthResponse:
        data = await self.post("/auth/google", {"token": credential})
        return _auth_response(data)

    async def me(self) -> UserProfile:
        data = await self.get("/auth/me")
        if not isinstance(data, dict) or not data.get("role"):
            raise GatewayError("Invalid response from server", data=data)
        return UserProfile(
            name=str(data.get("name") or ""),
            email=str(data.get("email") or ""),
            role=str(data["role"]),
        )

    async def memberships(self) -> List[Membership]:
        data = await self.get("/memberships")
        if not isinstance(data, list):
            return []
        return [Membership.from_record(item) for item in data if isinstance(item, dict)]


def _auth_response(data: Any) -> AuthResponse:
    if not isinstance(data, dict) or not data.get("token"):
        raise GatewayError("Invalid response from server", data=data)
    return AuthResponse(
        id=str(data.get("id") or data.get("_id") or ""),
        email=str(data.get("email") or ""),
        name=str(data.get("name") or ""),
        token=str(data["token"]),
        role=str(data.get("role") or ""),
    )


def _message(data: Any) -> str:
    if isinstance(data, dict):
        return str(data.get("message") or "")
    return ""
