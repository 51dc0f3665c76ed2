from unittest.mock import MagicMock, patch

import streamlit as st

from conftest import ADMIN, MEMBER, FakeGateway, MemoryCredentialStore
from infrastructure.storage.credential_store import CredentialStoreError
from use_cases import bootstrap
from utils import session_manager


def _install_services(gateway=None, store=None, backend="sqlite"):
    services = bootstrap.build_auth_services(
        MagicMock(credential_store=backend), store=store or MemoryCredentialStore(), gateway=gateway or FakeGateway(), audit=MagicMock()
    )
    st.session_state.auth_services = services
    return services


def test_init_session_state():
    st.session_state.clear()
    session_manager.init_session_state()
    assert st.session_state.auth_services is None
    assert st.session_state.auth_result is None
    assert st.session_state.admin_login_error is None


def test_init_session_state_keeps_existing_values():
    st.session_state.clear()
    st.session_state.admin_login_error = "Invalid credentials"
    session_manager.init_session_state()
    assert st.session_state.admin_login_error == "Invalid credentials"


def test_run_waits_for_background_refetch():
    st.session_state.clear()
    gateway = FakeGateway()
    gateway.will("memberships", [])
    services = _install_services(gateway=gateway)

    async def sign_in_member():
        services.session_manager.login("tok", MEMBER)

    session_manager.run(sign_in_member())

    assert services.session_manager.memberships.status == "resolved"
    assert len(gateway.called("memberships")) == 1


def test_check_and_restore_session_hydrates():
    st.session_state.clear()
    store = MemoryCredentialStore(token="tok-1", role="admin")
    gateway = FakeGateway()
    gateway.will("me", ADMIN)
    _install_services(gateway=gateway, store=store)

    result = session_manager.check_and_restore_session()

    assert result.status == "CONTINUE"
    assert st.session_state.auth_result is result


def test_check_and_restore_session_without_services():
    st.session_state.clear()
    session_manager.init_session_state()
    assert session_manager.check_and_restore_session() is None


@patch("streamlit.rerun")
def test_logout(mock_rerun):
    st.session_state.clear()
    store = MemoryCredentialStore()
    services = _install_services(store=store)
    services.session_manager.login("fake_token", ADMIN)
    services.credential_flow.open()

    session_manager.logout()

    mock_rerun.assert_called_once()
    assert services.session_manager.session.authenticated is False
    assert services.session_manager.dialog_open is False
    assert store.read_token() is None
    assert st.session_state.auth_result is None



def test_check_and_restore_session_after_hydration():
    st.session_state.clear()
    gateway = FakeGateway()
    gateway.will("me", ADMIN)
    services = _install_services(gateway=gateway, store=MemoryCredentialStore(token="tok-1", role="admin"))
    session_manager.run(services.session_manager.hydrate())
    assert services.session_manager.session.is_hydrating is False

    result = session_manager.check_and_restore_session()

    assert result.status == "CONTINUE"
    assert len(gateway.called("me")) == 1


@patch("streamlit.rerun")
@patch("utils.session_manager.time.sleep")
def test_logout_waits_for_browser_cookie_script_before_rerun(mock_sleep, mock_rerun):
    st.session_state.clear()
    order = MagicMock()
    order.attach_mock(mock_sleep, "sleep")
    order.attach_mock(mock_rerun, "rerun")
    services = _install_services(store=MagicMock(), backend="browser")
    services.session_manager.login("fake_token", ADMIN)

    session_manager.logout()

    services.credential_store.clear.assert_called_once()
    assert [c[0] for c in order.mock_calls] == ["sleep", "rerun"]
    mock_sleep.assert_called_once_with(session_manager.BROWSER_WRITE_DELAY_SECONDS)


@patch("streamlit.rerun")
@patch("utils.session_manager.time.sleep")
def test_rerun_without_browser_store_does_not_wait(mock_sleep, mock_rerun):
    st.session_state.clear()
    _install_services(backend="sqlite")

    session_manager.rerun(credentials_changed=True)

    mock_sleep.assert_not_called()
    mock_rerun.assert_called_once()


@patch("streamlit.rerun")
@patch("utils.session_manager.time.sleep")
def test_rerun_without_credential_change_does_not_wait(mock_sleep, mock_rerun):
    st.session_state.clear()
    _install_services(backend="browser")

    session_manager.rerun()

    mock_sleep.assert_not_called()
    mock_rerun.assert_called_once()


def test_recover_browser_credentials_for_signed_out_visitor():
    st.session_state.clear()
    store = MagicMock()
    _install_services(store=store, backend="browser")

    session_manager.recover_browser_credentials()

    store.recover.assert_called_once()


def test_recover_browser_credentials_skipped_when_signed_in():
    st.session_state.clear()
    store = MagicMock()
    services = _install_services(store=store, backend="browser")
    services.session_manager.login("tok", ADMIN)

    session_manager.recover_browser_credentials()

    store.recover.assert_not_called()


def test_recover_browser_credentials_tolerates_store_failure():
    st.session_state.clear()
    store = MagicMock()
    store.recover.side_effect = CredentialStoreError("no page")
    _install_services(store=store, backend="browser")

    session_manager.recover_browser_credentials()

    store.recover.assert_called_once()


def test_recover_browser_credentials_ignores_stores_without_recovery():
    st.session_state.clear()
    _install_services()

    session_manager.recover_browser_credentials()

    assert st.session_state.auth_services.session_manager.session.authenticated is False
