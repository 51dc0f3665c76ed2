import asyncio

from conftest import ADMIN, MEMBER, auth_response
from infrastructure.gateway.auth_gateway import GatewayError
from infrastructure.repositories.sqlite_audit_repository import AuditAction
from use_cases import auth_flow


def test_ensure_authenticated_session_stop_without_user(manager, gateway):
    result = asyncio.run(auth_flow.ensure_authenticated_session(manager))

    assert result.status == "STOP"
    assert result.reason == "auth_required"
    assert manager.session.is_hydrating is False
    assert gateway.calls == []


def test_ensure_authenticated_session_continue_with_restored_admin(store, gateway, manager):
    store.write("tok-1", "admin")
    gateway.will("me", ADMIN)

    result = asyncio.run(auth_flow.ensure_authenticated_session(manager))

    assert result.status == "CONTINUE"
    assert result.email == "admin@x.com"


def test_ensure_authenticated_session_stops_member(store, gateway, manager, drive):
    store.write("tok-1", "user")
    gateway.will("me", MEMBER)
    gateway.will("memberships", [])

    result = drive(auth_flow.ensure_authenticated_session(manager))

    assert result.status == "STOP"
    assert result.reason == "admin_required"
    assert result.email == "a@x.com"


def test_admin_sign_in_success(gateway, manager):
    gateway.will("login", auth_response(role="admin"))

    result = asyncio.run(auth_flow.admin_sign_in(gateway, manager, " admin@x.com ", "pw"))

    assert result.status == "CONTINUE"
    assert gateway.called("login") == [("admin@x.com", "pw")]
    assert manager.session.authenticated is True
    assert manager.role == "admin"


def test_admin_sign_in_requires_both_fields(gateway, manager):
    result = asyncio.run(auth_flow.admin_sign_in(gateway, manager, "admin@x.com", ""))

    assert result.status == "STOP"
    assert result.message == auth_flow.MISSING_CREDENTIALS
    assert gateway.calls == []


def test_admin_sign_in_rejected_is_audited(gateway, manager, audit_repo):
    gateway.will("login", GatewayError("Invalid email or password", status=401))

    result = asyncio.run(auth_flow.admin_sign_in(gateway, manager, "admin@x.com", "bad"))

    assert result.status == "STOP"
    assert result.message == "Invalid email or password"
    assert manager.session.authenticated is False
    args, kwargs = audit_repo.log_action.call_args
    assert args[0] == AuditAction.LOGIN_FAIL
    assert kwargs["result"] == "deny"


def test_admin_sign_in_refuses_member(gateway, manager, store, audit_repo):
    gateway.will("login", auth_response(role="user", email="a@x.com"))

    result = asyncio.run(auth_flow.admin_sign_in(gateway, manager, "a@x.com", "pw"))

    assert result.status == "STOP"
    assert result.reason == "not_admin"
    assert result.message == auth_flow.ACCESS_DENIED
    assert manager.session.authenticated is False
    assert store.read_token() is None
    assert audit_repo.log_action.call_args.args[0] == AuditAction.RBAC_DENIED
