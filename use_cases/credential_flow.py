"""
Multi-step sign-in dialog: login, signup with OTP, password recovery and
Google sign-in.

`transition(state, event)` is a pure function over frozen dataclasses and
knows nothing about HTTP or rendering. CredentialFlowController performs the
gateway calls and feeds their outcome back through `transition`.
"""

import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Literal, Optional, Union

from infrastructure.gateway.auth_gateway import GatewayError
from infrastructure.repositories.sqlite_audit_repository import AuditAction
from use_cases.session_models import AuthResponse, SignupPayload

log = logging.getLogger(__name__)

Step = Literal["credentials", "otp", "forgotPassword", "resetPassword"]
Tab = Literal["login", "signup"]

OTP_LENGTH = 6

RESEND_INFO = "A new OTP has been sent to your email."
RESET_INFO = "Password reset! Please log in."
OTP_INCOMPLETE = "Please enter the 6-digit code."
PASSWORD_MISMATCH = "Passwords do not match."
PASSWORD_REQUIRED = "Please enter a new password."
EMAIL_REQUIRED = "Please enter your email."
FIELDS_REQUIRED = "Please fill in all required fields."
NO_GOOGLE_CREDENTIAL = "No credential received from Google."
GOOGLE_FAILED = "Google login failed. Please try again."


@dataclass(frozen=True)
class CredentialFlowState:
    step: Step = "credentials"
    active_tab: Tab = "login"
    pending_email: str = ""
    pending_signup_payload: Optional[SignupPayload] = None
    forgot_email: str = ""
    error: Optional[str] = None
    info: Optional[str] = None
    busy: bool = False


INITIAL_STATE = CredentialFlowState()


class InvalidTransitionError(ValueError):
    pass


# --- events ---

@dataclass(frozen=True)
class SubmitStarted:
    pass


@dataclass(frozen=True)
class RequestFailed:
    message: str


@dataclass(frozen=True)
class ValidationFailed:
    message: str


@dataclass(frozen=True)
class TabSelected:
    tab: Tab


@dataclass(frozen=True)
class SignupSucceeded:
    payload: SignupPayload


@dataclass(frozen=True)
class OtpResent:
    info: str = RESEND_INFO


@dataclass(frozen=True)
class ForgotPasswordOpened:
    email: str = ""


@dataclass(frozen=True)
class ResetCodeSent:
    email: str


@dataclass(frozen=True)
class PasswordResetSucceeded:
    info: str = RESET_INFO


@dataclass(frozen=True)
class BackPressed:
    pass


@dataclass(frozen=True)
class DialogClosed:
    pass


FlowEvent = Union[
    SubmitStarted,
    RequestFailed,
    ValidationFailed,
    TabSelected,
    SignupSucceeded,
    OtpResent,
    ForgotPasswordOpened,
    ResetCodeSent,
    PasswordResetSucceeded,
    BackPressed,
    DialogClosed,
]


def _require_step(state: CredentialFlowState, event: FlowEvent, *steps: str) -> None:
    if state.step not in steps:
        raise InvalidTransitionError(f"{type(event).__name__} is not allowed on step '{state.step}'")


def transition(state: CredentialFlowState, event: FlowEvent) -> CredentialFlowState:
    """Return the state that follows `event`; raise InvalidTransitionError if it cannot happen here."""
    if isinstance(event, DialogClosed):
        return INITIAL_STATE

    if isinstance(event, SubmitStarted):
        return replace(state, error=None, info=None, busy=True)

    if isinstance(event, RequestFailed):
        return replace(state, error=event.message, busy=False)

    if isinstance(event, ValidationFailed):
        return replace(state, error=event.message, info=None, busy=False)

    if isinstance(event, TabSelected):
        _require_step(state, event, "credentials")
        return replace(state, active_tab=event.tab)

    if isinstance(event, SignupSucceeded):
        _require_step(state, event, "credentials")
        if not event.payload.email:
            raise InvalidTransitionError("otp step needs the email the code was sent to")
        return replace(
            state,
            step="otp",
            pending_email=event.payload.email,
            pending_signup_payload=event.payload,
            error=None,
            busy=False,
        )

    if isinstance(event, OtpResent):
        _require_step(state, event, "otp")
        return replace(state, info=event.info, busy=False)

    if isinstance(event, ForgotPasswordOpened):
        _require_step(state, event, "credentials")
        return replace(state, step="forgotPassword", forgot_email=event.email, error=None, info=None)

    if isinstance(event, ResetCodeSent):
        _require_step(state, event, "forgotPassword")
        if not event.email:
            raise InvalidTransitionError("resetPassword step needs the email the code was sent to")
        return replace(state, step="resetPassword", forgot_email=event.email, error=None, busy=False)

    if isinstance(event, PasswordResetSucceeded):
        _require_step(state, event, "resetPassword")
        return replace(
            state,
            step="credentials",
            active_tab="login",
            info=event.info,
            error=None,
            forgot_email="",
            pending_signup_payload=None,
            busy=False,
        )

    if isinstance(event, BackPressed):
        if state.step == "otp":
            return replace(state, step="credentials", active_tab="signup", error=None, info=None, busy=False)
        if state.step in ("forgotPassword", "resetPassword"):
            return replace(state, step="credentials", active_tab="login", error=None, info=None, busy=False)
        raise InvalidTransitionError(f"No previous step from '{state.step}'")

    raise InvalidTransitionError(f"Unknown event {event!r}")


def validate_otp(otp: str) -> Optional[str]:
    otp = (otp or "").strip()
    if len(otp) != OTP_LENGTH or not otp.isdigit():
        return OTP_INCOMPLETE
    return None


def validate_required(*values: str) -> Optional[str]:
    if not all((v or "").strip() for v in values):
        return FIELDS_REQUIRED
    return None


def validate_new_password(new_password: str, confirm_password: str) -> Optional[str]:
    if not new_password:
        return PASSWORD_REQUIRED
    if new_password != confirm_password:
        return PASSWORD_MISMATCH
    return None


class CredentialFlowController:
    """Drives the dialog against the gateway and the session manager.

    Failures never escape: they end up in `state.error`. Responses that
    arrive after the dialog was closed are dropped.
    """

    def __init__(self, gateway, session_manager):
        self._gateway = gateway
        self._session_manager = session_manager
        self._state = INITIAL_STATE
        self._generation = 0

    @property
    def state(self) -> CredentialFlowState:
        return self._state

    def dispatch(self, event: FlowEvent) -> CredentialFlowState:
        self._state = transition(self._state, event)
        return self._state

    # --- synchronous navigation ---

    def open(self) -> None:
        self._session_manager.open_dialog()

    def close(self) -> CredentialFlowState:
        self._generation += 1
        self.dispatch(DialogClosed())
        self._session_manager.close_dialog()
        return self._state

    def select_tab(self, tab: Tab) -> CredentialFlowState:
        if self._state.step != "credentials" or self._state.busy:
            return self._state
        return self.dispatch(TabSelected(tab))

    def open_forgot_password(self, email: str = "") -> CredentialFlowState:
        if self._state.step != "credentials" or self._state.busy:
            return self._state
        return self.dispatch(ForgotPasswordOpened((email or "").strip()))

    def back(self) -> CredentialFlowState:
        if self._state.step == "credentials" or self._state.busy:
            return self._state
        return self.dispatch(BackPressed())

    def google_error(self) -> CredentialFlowState:
        return self.dispatch(RequestFailed(GOOGLE_FAILED))

    # --- submits ---

    async def _submit(
        self,
        expected_step: Optional[str],
        call: Callable[[], Awaitable],
        on_success: Callable[[object], None],
        fallback: str,
        validation_error: Optional[str] = None,
    ) -> CredentialFlowState:
        if self._state.busy:
            log.info("Ignoring submit while a request is outstanding")
            return self._state
        if expected_step is not None and self._state.step != expected_step:
            log.warning(f"Ignoring submit for '{expected_step}' while on '{self._state.step}'")
            return self._state
        if validation_error:
            return self.dispatch(ValidationFailed(validation_error))

        generation = self._generation
        self.dispatch(SubmitStarted())
        try:
            result = await call()
        except GatewayError as e:
            if generation == self._generation:
                self.dispatch(RequestFailed(e.message or fallback))
            return self._state
        except Exception:
            log.exception(f"❌ Unexpected failure: {fallback}")
            if generation == self._generation:
                self.dispatch(RequestFailed(fallback))
            return self._state

        if generation != self._generation:
            log.info("Discarding response for a dialog that was closed")
            return self._state
        try:
            on_success(result)
        except Exception:
            log.exception(f"❌ Could not apply response: {fallback}")
            self.dispatch(RequestFailed(fallback))
        return self._state

    def _audit(self, action: AuditAction, email: str, step: str) -> None:
        import auth

        auth.get_audit_repo().log_action(
            action,
            target_type="credential_flow",
            actor_email=email or None,
            metadata={"step": step},
        )

    def _signup_sent(self, payload: SignupPayload) -> None:
        self._audit(AuditAction.SIGNUP_REQUESTED, payload.email, self._state.step)
        self.dispatch(SignupSucceeded(payload))

    def _password_reset(self, email: str, message: str) -> None:
        self._audit(AuditAction.PASSWORD_RESET, email, self._state.step)
        self.dispatch(PasswordResetSucceeded(message or RESET_INFO))

    def _complete_login(self, res: AuthResponse) -> None:
        self._session_manager.login(res.token, res.to_profile())
        self.close()

    async def submit_login(self, email: str, password: str) -> CredentialFlowState:
        return await self._submit(
            "credentials",
            lambda: self._gateway.login(email.strip(), password),
            self._complete_login,
            "Login failed",
            validation_error=validate_required(email, password),
        )

    async def submit_signup(self, name: str, email: str, password: str) -> CredentialFlowState:
        payload = SignupPayload(name=name.strip(), email=email.strip(), password=password)
        return await self._submit(
            "credentials",
            lambda: self._gateway.signup(payload),
            lambda _: self._signup_sent(payload),
            "Signup failed",
            validation_error=validate_required(payload.name, payload.email, payload.password),
        )

    async def submit_otp(self, otp: str) -> CredentialFlowState:
        otp = (otp or "").strip()
        email = self._state.pending_email
        return await self._submit(
            "otp",
            lambda: self._gateway.verify_otp(email, otp),
            self._complete_login,
            "OTP Verification failed",
            validation_error=validate_otp(otp),
        )

    async def resend_otp(self) -> CredentialFlowState:
        payload = self._state.pending_signup_payload
        if payload is None:
            return self._state
        return await self._submit(
            "otp",
            lambda: self._gateway.signup(payload),
            lambda _: self.dispatch(OtpResent()),
            "Failed to resend OTP",
        )

    async def submit_forgot_password(self, email: str) -> CredentialFlowState:
        email = (email or "").strip()
        return await self._submit(
            "forgotPassword",
            lambda: self._gateway.forgot_password(email),
            lambda _: self.dispatch(ResetCodeSent(email)),
            "Failed to send reset email",
            validation_error=None if email else EMAIL_REQUIRED,
        )

    async def submit_reset_password(self, otp: str, new_password: str, confirm_password: str) -> CredentialFlowState:
        otp = (otp or "").strip()
        email = self._state.forgot_email
        return await self._submit(
            "resetPassword",
            lambda: self._gateway.reset_password(email, otp, new_password),
            lambda message: self._password_reset(email, message),
            "Failed to reset password",
            validation_error=validate_otp(otp) or validate_new_password(new_password, confirm_password),
        )

    async def google_login(self, credential: Optional[str]) -> CredentialFlowState:
        return await self._submit(
            None,
            lambda: self._gateway.google_login(credential),
            self._complete_login,
            "Google login failed",
            validation_error=None if credential else NO_GOOGLE_CREDENTIAL,
        )
