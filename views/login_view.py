import streamlit as st

from use_cases import auth_flow
from use_cases.credential_flow import OTP_LENGTH
from use_cases.route_guard import DASHBOARD_PATH
from utils import session_manager


def render_admin_login(services):
    session_manager.recover_browser_credentials()

    st.title("🛡️ Admin Login")
    st.caption("Enter your admin credentials to access the dashboard")

    with st.form("admin_login_form", clear_on_submit=False):
        email = st.text_input("Email", placeholder="admin@example.com")
        password = st.text_input("Password", type="password", placeholder="Enter your password")
        submitted = st.form_submit_button("Login", use_container_width=True)
        if submitted:
            with st.spinner("Logging in..."):
                result = session_manager.run(
                    auth_flow.admin_sign_in(services.gateway, services.session_manager, email, password)
                )
            if result.status == "CONTINUE":
                st.session_state.admin_login_error = None
                session_manager.navigate(DASHBOARD_PATH, credentials_changed=True)
            else:
                st.session_state.admin_login_error = result.message

    if st.session_state.get("admin_login_error"):
        st.error(st.session_state.admin_login_error)

    st.divider()
    if services.session_manager.dialog_open:
        render_credential_dialog(services)
    elif st.button("Member sign in / sign up", type="secondary"):
        services.credential_flow.open()
        st.rerun()


def _messages(state):
    if state.error:
        st.error(state.error)
    if state.info:
        st.success(state.info)


def _render_credentials_step(services, state):
    flow = services.credential_flow
    st.subheader("Welcome")
    st.caption("Login to your account or create a new one to get started.")

    tab = st.radio(
        "Mode",
        options=["login", "signup"],
        format_func=lambda t: "Login" if t == "login" else "Sign Up",
        index=0 if state.active_tab == "login" else 1,
        horizontal=True,
        label_visibility="collapsed",
        disabled=state.busy,
    )
    if tab != state.active_tab:
        flow.select_tab(tab)
        st.rerun()

    _messages(state)

    if state.active_tab == "login":
        with st.form("flow_login_form"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Login", disabled=state.busy)
        if submitted:
            session_manager.run(flow.submit_login(email, password))
            session_manager.rerun(credentials_changed=services.session_manager.session.authenticated)
        if st.button("Forgot password?", type="tertiary"):
            flow.open_forgot_password(email)
            st.rerun()
    else:
        with st.form("flow_signup_form"):
            name = st.text_input("Name")
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Create account", disabled=state.busy)
        if submitted:
            session_manager.run(flow.submit_signup(name, email, password))
            st.rerun()


def _render_otp_step(services, state):
    flow = services.credential_flow
    st.subheader("Check your email")
    st.caption(f"We've sent a {OTP_LENGTH}-digit verification code to {state.pending_email}.")
    _messages(state)

    with st.form("flow_otp_form"):
        otp = st.text_input("Verification code", max_chars=OTP_LENGTH)
        submitted = st.form_submit_button("Verify and Login", disabled=state.busy)
    if submitted:
        session_manager.run(flow.submit_otp(otp))
        session_manager.rerun(credentials_changed=services.session_manager.session.authenticated)

    col_back, col_resend = st.columns(2)
    if col_back.button("Back to Sign Up", type="tertiary"):
        flow.back()
        st.rerun()
    if col_resend.button("Resend OTP", type="tertiary", disabled=state.busy):
        session_manager.run(flow.resend_otp())
        st.rerun()


def _render_forgot_password_step(services, state):
    flow = services.credential_flow
    st.subheader("Forgot password")
    st.caption("Enter your email and we'll send you a code to reset your password.")
    _messages(state)

    with st.form("flow_forgot_form"):
        email = st.text_input("Email", value=state.forgot_email)
        submitted = st.form_submit_button("Send reset code", disabled=state.busy)
    if submitted:
        session_manager.run(flow.submit_forgot_password(email))
        st.rerun()
    if st.button("Back to Login", type="tertiary"):
        flow.back()
        st.rerun()


def _render_reset_password_step(services, state):
    flow = services.credential_flow
    st.subheader("Create New Password")
    st.caption(f"An OTP was sent to {state.forgot_email}. Enter it below along with your new password.")
    _messages(state)

    with st.form("flow_reset_form"):
        otp = st.text_input("Verification code", max_chars=OTP_LENGTH)
        new_password = st.text_input("New Password", type="password")
        confirm_password = st.text_input("Confirm Password", type="password")
        submitted = st.form_submit_button("Reset Password", disabled=state.busy)
    if submitted:
        session_manager.run(flow.submit_reset_password(otp, new_password, confirm_password))
        st.rerun()
    if st.button("Back to Login", type="tertiary"):
        flow.back()
        st.rerun()


STEP_RENDERERS = {
    "credentials": _render_credentials_step,
    "otp": _render_otp_step,
    "forgotPassword": _render_forgot_password_step,
    "resetPassword": _render_reset_password_step,
}


def render_credential_dialog(services):
    state = services.credential_flow.state
    with st.container(border=True):
        STEP_RENDERERS[state.step](services, state)
        if st.button("Close", key="close_credential_dialog"):
            services.credential_flow.close()
            st.rerun()
