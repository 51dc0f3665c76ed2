import streamlit as st

from infrastructure.observability import setup_observability
setup_observability()

from use_cases import bootstrap, route_guard
from utils import session_manager
from views import admin_view, login_view

# --- PAGE SETTINGS ---
st.set_page_config(page_title="Advisory Admin Console", layout="wide", initial_sidebar_state="expanded")

# --- STARTUP ORCHESTRATION ---
startup_result = bootstrap.run_startup()
if startup_result.status == "STOP":
    st.stop()

services = session_manager.get_services()

# --- SESSION HYDRATION ---
session_manager.check_and_restore_session()

# --- ROUTING ---
decision = route_guard.resolve_route(session_manager.current_path(), services.session_manager)

if decision.outcome == "LOADING":
    st.caption("⏳ Loading...")
    st.stop()

if decision.outcome == "REDIRECT":
    session_manager.navigate(decision.redirect_to)
    st.stop()

if decision.route == route_guard.LOGIN_PATH:
    login_view.render_admin_login(services)
    st.stop()

# Build Sentry Context
try:
    import sentry_sdk
    if sentry_sdk.get_client().is_active():
        profile = services.session_manager.profile
        sentry_sdk.set_user({"email": profile.email, "role": profile.role})
except (ImportError, AttributeError):
    pass

admin_view.render_admin_shell(services, decision)
