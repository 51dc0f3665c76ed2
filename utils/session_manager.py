import asyncio
import contextlib
import logging
import time

import streamlit as st
from infrastructure.storage.credential_store import CredentialStoreError
from use_cases import auth_flow

"""
SESSION STATE CONTRACT

This module owns the Streamlit session keys used by the auth layer and is
the only place where coroutines from use_cases are run.

st.session_state keys:

auth_services: AuthServices | None
    gateway, SessionManager and CredentialFlowController of this browser session
    default: None
    owner: bootstrap

auth_result: AuthFlowResult | None
    outcome of the last hydration gate
    default: None
    owner: auth/session_manager

admin_login_error: str | None
    message shown on the admin login page
    default: None
    owner: views/login_view
"""

log = logging.getLogger(__name__)

QUERY_PATH_KEY = "path"

# The cookie script lives in this run's iframe; a rerun drops it.
BROWSER_WRITE_DELAY_SECONDS = 1


def init_session_state():
    if 'auth_services' not in st.session_state:
        st.session_state.auth_services = None
    if 'auth_result' not in st.session_state:
        st.session_state.auth_result = None
    if 'admin_login_error' not in st.session_state:
        st.session_state.admin_login_error = None


def get_services():
    return st.session_state.get("auth_services")


def run(coro):
    """Run a coroutine to completion, including the background work it started.

    Every script run gets a fresh event loop, so anything the session manager
    scheduled (membership refresh) is awaited before the loop is closed.
    """
    services = get_services()

    async def _run_and_settle():
        try:
            return await coro
        finally:
            if services is not None:
                await services.session_manager.settle()

    return asyncio.run(_run_and_settle())


def check_and_restore_session():
    services = get_services()
    if services is None:
        return None
    if services.session_manager.session.is_hydrating:
        waiting = st.spinner("Checking your session...")
    else:
        waiting = contextlib.nullcontext()
    with waiting:
        st.session_state.auth_result = run(
            auth_flow.ensure_authenticated_session(services.session_manager)
        )
    return st.session_state.auth_result


def current_path() -> str:
    try:
        return st.query_params.get(QUERY_PATH_KEY, "/")
    except Exception:
        # query params are unavailable in bare imports
        return "/"


def uses_browser_store() -> bool:
    services = get_services()
    return services is not None and services.settings.credential_store == "browser"


def rerun(credentials_changed: bool = False):
    """Rerun the script, giving a pending cookie script time to run first."""
    if credentials_changed and uses_browser_store():
        time.sleep(BROWSER_WRITE_DELAY_SECONDS)
    st.rerun()


def navigate(path: str, credentials_changed: bool = False):
    if current_path() != path:
        st.query_params[QUERY_PATH_KEY] = path
        rerun(credentials_changed)


def recover_browser_credentials():
    """Ask the browser to restore cookies from localStorage for a signed-out visitor."""
    services = get_services()
    if services is None or services.session_manager.session.authenticated:
        return
    recover = getattr(services.credential_store, "recover", None)
    if recover is None:
        return
    try:
        recover()
    except CredentialStoreError as e:
        log.warning(f"⚠️ Could not run session recovery script: {e}")


def logout():
    services = get_services()
    if services is not None:
        services.session_manager.logout()
        services.credential_flow.close()
    st.session_state.auth_result = None
    rerun(credentials_changed=True)
