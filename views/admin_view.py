import streamlit as st

from use_cases.route_guard import DASHBOARD_PATH
from utils import session_manager

NAV_ITEMS = [
    ("📊 Dashboard", DASHBOARD_PATH),
    ("👥 Users", "/admin/users"),
    ("📈 Daily calls", "/admin/daily-calls"),
    ("🗂️ All daily calls", "/admin/all-daily-calls"),
    ("➕ Create plan", "/admin/create-plan"),
]

PAGE_TITLES = {
    DASHBOARD_PATH: "Dashboard",
    "/admin/users": "Users",
    "/admin/daily-calls": "Daily calls",
    "/admin/all-daily-calls": "All daily calls",
    "/admin/create-plan": "Create plan",
    "/admin/edit-plan/{planName}": "Edit plan",
    "/admin/chat/{planName}": "Plan chat",
}


def _render_sidebar(services, decision):
    profile = services.session_manager.profile
    with st.sidebar:
        if profile is not None:
            st.markdown(f"**{profile.name or profile.email}**")
            st.caption(profile.email)
        st.divider()
        for label, path in NAV_ITEMS:
            if st.button(label, key=f"nav_{path}", use_container_width=True,
                         type="primary" if decision.route == path else "secondary"):
                session_manager.navigate(path)
        st.divider()
        if st.button("🚪 Logout", use_container_width=True):
            session_manager.logout()


def render_admin_shell(services, decision):
    _render_sidebar(services, decision)

    title = PAGE_TITLES.get(decision.route, "Admin")
    plan_name = decision.params.get("planName")
    st.title(f"⚙️ {title}" + (f": {plan_name}" if plan_name else ""))
    st.info("This section's content is served by the plans and calls modules.")
