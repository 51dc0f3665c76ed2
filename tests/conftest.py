import asyncio
from unittest.mock import MagicMock, patch

import pytest

from infrastructure.storage.credential_store import CredentialStoreError
from use_cases.credential_flow import CredentialFlowController
from use_cases.session_models import AuthResponse, UserProfile
from use_cases.session_service import SessionManager


ADMIN = UserProfile(name="Admin", email="admin@x.com", role="admin")
MEMBER = UserProfile(name="A", email="a@x.com", role="user")


def auth_response(role="admin", email="admin@x.com", token="tok-admin"):
    return AuthResponse(id="1", email=email, name="Someone", token=token, role=role)


class MemoryCredentialStore:
    def __init__(self, token=None, role=None, fail_writes=False, fail_clear=False):
        self.data = {}
        if token:
            self.data["TOKEN"] = token
        if role:
            self.data["ROLE"] = role
        self.fail_writes = fail_writes
        self.fail_clear = fail_clear

    def read_token(self):
        return self.data.get("TOKEN")

    def read_role(self):
        return self.data.get("ROLE")

    def write(self, token, role):
        if self.fail_writes:
            raise CredentialStoreError("quota exceeded")
        self.data["TOKEN"] = token
        if role:
            self.data["ROLE"] = role
        else:
            self.data.pop("ROLE", None)

    def clear(self):
        if self.fail_clear:
            raise CredentialStoreError("storage locked")
        self.data.pop("TOKEN", None)
        self.data.pop("ROLE", None)


class FakeGateway:
    """Scripted stand-in for AuthGateway.

    `will(name, *results)` queues results for an endpoint; the last one
    repeats. A result may be a value, an exception instance (raised) or an
    async callable (awaited, used to hold a call open).
    """

    def __init__(self):
        self.calls = []
        self.responses = {}
        self.token_provider = None

    def set_token_provider(self, provider):
        self.token_provider = provider

    def will(self, name, *results):
        self.responses[name] = list(results)

    def called(self, name):
        return [args for n, args in self.calls if n == name]

    async def _call(self, name, *args):
        self.calls.append((name, args))
        queue = self.responses.get(name)
        if not queue:
            raise AssertionError(f"unexpected gateway call: {name}{args}")
        result = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(result, BaseException):
            raise result
        if callable(result):
            return await result()
        return result

    async def login(self, email, password):
        return await self._call("login", email, password)

    async def signup(self, payload):
        return await self._call("signup", payload)

    async def verify_otp(self, email, otp):
        return await self._call("verify_otp", email, otp)

    async def forgot_password(self, email):
        return await self._call("forgot_password", email)

    async def reset_password(self, email, otp, new_password):
        return await self._call("reset_password", email, otp, new_password)

    async def google_login(self, credential):
        return await self._call("google_login", credential)

    async def me(self):
        return await self._call("me")

    async def memberships(self):
        return await self._call("memberships")


@pytest.fixture(autouse=True)
def audit_repo():
    repo = MagicMock()
    with patch("auth.get_audit_repo", return_value=repo):
        yield repo


@pytest.fixture
def store():
    return MemoryCredentialStore()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def manager(store, gateway):
    return SessionManager(store, gateway, audit=MagicMock())


@pytest.fixture
def controller(gateway, manager):
    return CredentialFlowController(gateway, manager)


@pytest.fixture
def drive(manager):
    """Run a coroutine on a fresh loop and wait for the background work it started."""

    def _drive(coro):
        async def _main():
            try:
                return await coro
            finally:
                await manager.settle()

        return asyncio.run(_main())

    return _drive
