"""
Session state for one console process: startup hydration, login/logout and
the membership list of signed-in members.

SessionManager is an ordinary object handed to whoever needs it (views, the
credential flow, the route guard). Nothing here touches Streamlit, so tests
can drive it with a fake gateway and a throwaway store.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Optional, Set, Tuple

from infrastructure.gateway.auth_gateway import GatewayError
from infrastructure.repositories.sqlite_audit_repository import AuditAction
from infrastructure.storage.credential_store import CredentialStoreError
from use_cases.session_models import FieldState, Session, UserProfile, active_plan_names

log = logging.getLogger(__name__)


class SessionManager:
    def __init__(self, store, gateway, audit=None):
        self._store = store
        self._gateway = gateway
        self._audit = audit

        self._session = Session()
        self._profile: Optional[UserProfile] = None
        self._memberships: FieldState[Tuple[str, ...]] = FieldState()
        self._dialog_open = False

        self._alive = True
        self._hydration_started = False
        # Bumped by login/logout; async results carrying an older value are stale.
        self._generation = 0
        self._last_identity: tuple = (False, None, None)
        self._refetch_deferred = False
        self._tasks: Set[asyncio.Task] = set()

    # --- read side ---

    @property
    def session(self) -> Session:
        return self._session

    @property
    def profile(self) -> Optional[UserProfile]:
        return self._profile

    @property
    def role(self) -> Optional[str]:
        return self._profile.role if self._profile else None

    @property
    def memberships(self) -> FieldState[Tuple[str, ...]]:
        return self._memberships

    @property
    def dialog_open(self) -> bool:
        return self._dialog_open

    @property
    def is_alive(self) -> bool:
        return self._alive

    def current_token(self) -> Optional[str]:
        return self._session.token

    def open_dialog(self) -> None:
        self._dialog_open = True

    def close_dialog(self) -> None:
        self._dialog_open = False

    # --- lifecycle ---

    async def hydrate(self) -> None:
        """Reconcile the persisted token with the backend. Runs once per instance."""
        if self._hydration_started:
            return
        self._hydration_started = True
        generation = self._generation

        try:
            token = self._store.read_token()
        except CredentialStoreError as e:
            log.warning(f"⚠️ Could not read persisted token: {e}")
            token = None

        if token:
            self._session = replace(self._session, token=token)
            try:
                profile = await self._gateway.me()
            except Exception as e:
                if self._is_current(generation):
                    if isinstance(e, GatewayError):
                        log.warning(f"⚠️ Stored session rejected ({e.status}): {e.message}")
                    else:
                        log.warning("⚠️ Stored session could not be validated", exc_info=True)
                    self._audit_event(AuditAction.SESSION_EXPIRED, result="deny")
                    self.logout()
            else:
                if self._is_current(generation):
                    self._profile = profile
                    self._session = replace(self._session, authenticated=True)
                    self._persist(token, profile.role)
                    self._audit_event(AuditAction.SESSION_RESTORED)
                    log.info(f"✅ Session restored for role '{profile.role}'")
                else:
                    log.info("Discarding hydration result superseded by a newer login/logout")

        if self._alive:
            self._session = replace(self._session, is_hydrating=False)
            self._on_identity_change()

    def login(self, token: Optional[str], user: Optional[UserProfile]) -> None:
        self._generation += 1
        if token:
            self._persist(token, user.role if user else None)
            self._session = replace(self._session, token=token)
        if user is not None:
            self._profile = user
        self._session = replace(self._session, authenticated=True, is_hydrating=False)
        self._dialog_open = False
        self._audit_event(AuditAction.LOGIN_SUCCESS)
        log.info(f"✅ Signed in with role '{self.role}'")
        self._on_identity_change()

    def logout(self) -> None:
        """Forget the session in memory and in the store. Safe to call repeatedly."""
        self._generation += 1
        was_authenticated = self._session.authenticated
        if was_authenticated:
            self._audit_event(AuditAction.LOGOUT)

        self._session = Session(token=None, authenticated=False, is_hydrating=False)
        self._profile = None
        self._memberships = FieldState()
        self._refetch_deferred = False
        self._last_identity = (False, None, None)

        try:
            self._store.clear()
        except CredentialStoreError as e:
            log.warning(f"⚠️ Could not clear persisted credentials: {e}")

    def teardown(self) -> None:
        self._alive = False
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    # --- memberships ---

    async def refetch_memberships(self) -> None:
        if not self._session.authenticated or not self._session.token or self.role != "user":
            return
        generation = self._generation
        self._memberships = self._memberships.pending()

        try:
            memberships = await self._gateway.memberships()
        except GatewayError as e:
            if not self._is_current(generation):
                return
            log.error(f"❌ Failed to fetch memberships ({e.status}): {e.message}")
            if e.status == 401:
                self.logout()
                return
            self._memberships = self._memberships.failed(e.message)
            return

        if not self._is_current(generation):
            log.info("Discarding membership list for a superseded session")
            return

        plans = active_plan_names(memberships)
        self._memberships = self._memberships.resolved(plans)
        if self._profile is None:
            self._profile = UserProfile(name="", email="", role="user", memberships=plans)
        else:
            self._profile = replace(self._profile, memberships=plans)

    async def settle(self) -> None:
        """Wait for background work started by login/hydration."""
        if self._refetch_deferred:
            self._refetch_deferred = False
            await self.refetch_memberships()

        loop = asyncio.get_running_loop()
        while True:
            pending = [t for t in self._tasks if t.get_loop() is loop and not t.done()]
            if not pending:
                break
            await asyncio.gather(*pending)

    # --- internals ---

    def _is_current(self, generation: int) -> bool:
        return self._alive and generation == self._generation

    def _persist(self, token: str, role: Optional[str]) -> None:
        try:
            self._store.write(token, role)
        except CredentialStoreError as e:
            log.warning(f"⚠️ Could not persist credentials: {e}")

    def _on_identity_change(self) -> None:
        identity = (self._session.authenticated, self._session.token, self.role)
        previous, self._last_identity = self._last_identity, identity
        if identity != previous and self._session.authenticated and self.role == "user":
            self._schedule_refetch()

    def _schedule_refetch(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._refetch_deferred = True
            return
        task = loop.create_task(self.refetch_memberships())
        self._tasks.add(task)
        task.add_done_callback(self._forget_task)

    def _forget_task(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)

    def _audit_event(self, action: AuditAction, result: str = "success") -> None:
        if self._audit is None:
            return
        self._audit.log_action(
            action,
            target_type="session",
            actor_email=self._profile.email if self._profile else None,
            actor_role=self.role,
            result=result,
        )
