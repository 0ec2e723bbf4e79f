"""
Auth Flow Controller — login, registration with OTP, logout.

Login:         IDLE -> SUBMITTING -> SUCCESS | FAILED
Registration:  IDLE -> REQUESTING_OTP -> OTP_PENDING -> VERIFYING_OTP -> SUCCESS
               (a failed OTP request returns to IDLE; a failed verification
               stays in OTP_PENDING so the code can be retried)

Switching between login and registration, or closing the flow, resets every
piece of transient state. Responses that arrive after a reset are dropped:
they never change state and never write a session.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from bidhub_client.exceptions import ClientError, ValidationError
from bidhub_client.schemas import Role, Session

if TYPE_CHECKING:
    from bidhub_client.client import MarketplaceClient
    from bidhub_client.notices import NoticeBoard
    from bidhub_client.schemas import AuthResponse
    from bidhub_client.session import SessionStore

logger = logging.getLogger(__name__)

HOME_PATH = "/"


class AuthMode(str, Enum):
    LOGIN = "login"
    REGISTER = "register"


class AuthState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    REQUESTING_OTP = "requesting_otp"
    OTP_PENDING = "otp_pending"
    VERIFYING_OTP = "verifying_otp"
    SUCCESS = "success"
    FAILED = "failed"


_IN_FLIGHT = frozenset({AuthState.SUBMITTING, AuthState.REQUESTING_OTP, AuthState.VERIFYING_OTP})
_IDENTITY_FIELDS = ("name", "email", "password", "role")


@dataclass
class RegistrationAttempt:
    """Transient registration form state.

    Once ``otp_requested`` is set, the identity fields that were sent to
    request the code are locked for the rest of the attempt.
    """

    name: str
    email: str
    password: str
    role: Role
    otp_requested: bool = False
    otp_value: str = ""

    def __setattr__(self, name: str, value: object) -> None:
        if name in _IDENTITY_FIELDS and self.__dict__.get("otp_requested", False):
            msg = f"'{name}' cannot change after the verification code was requested"
            raise ValidationError(msg, details={"field": name})
        super().__setattr__(name, value)

    def same_identity(self, name: str, email: str, password: str, role: Role) -> bool:
        return (self.name, self.email, self.password, self.role) == (name, email, password, role)


def _require(fields: dict[str, str], message: str) -> None:
    missing = [field for field, value in fields.items() if not value or not value.strip()]
    if missing:
        raise ValidationError(message, details={"missing": missing})


class AuthFlowController:
    """Drives the login / registration modal against the API.

    Args:
        client: API client.
        session_store: Where successful logins are persisted.
        notices: Notice board for user feedback.
        on_success: Called with the new session after login or registration
                    (typically closes the modal).
        on_navigate: Called with a path to redirect to.
    """

    def __init__(
        self,
        client: MarketplaceClient,
        session_store: SessionStore,
        notices: NoticeBoard,
        on_success: Callable[[Session], None] | None = None,
        on_navigate: Callable[[str], None] | None = None,
    ) -> None:
        self._client = client
        self._session_store = session_store
        self._notices = notices
        self._on_success = on_success
        self._on_navigate = on_navigate

        self.mode = AuthMode.LOGIN
        self.state = AuthState.IDLE
        self.attempt: RegistrationAttempt | None = None
        self.last_error: ClientError | None = None
        self._generation = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_loading(self) -> bool:
        return self.state in _IN_FLIGHT

    def switch_mode(self, mode: AuthMode) -> None:
        """Select the login or registration tab, discarding transient state."""
        self.reset()
        self.mode = mode

    def close(self) -> None:
        """Close the modal, discarding transient state."""
        self.reset()

    def reset(self) -> None:
        self._generation += 1
        self.state = AuthState.IDLE
        self.attempt = None
        self.last_error = None

    async def login(self, email: str, password: str) -> Session | None:
        """Log in with email and password.

        Returns:
            The saved session, or None on failure or if the response went stale.
        """
        if self.is_loading:
            logger.debug("Login ignored, another auth request is in flight")
            return None
        self.mode = AuthMode.LOGIN
        try:
            _require({"email": email, "password": password}, "Please fill in all required fields")
        except ValidationError as exc:
            return self._fail(exc, AuthState.FAILED)

        generation = self._generation
        self.state = AuthState.SUBMITTING
        self.last_error = None
        try:
            response = await self._client.login(email.strip(), password)
        except ClientError as exc:
            if self._is_stale(generation, "login"):
                return None
            return self._fail(exc, AuthState.FAILED)

        if self._is_stale(generation, "login"):
            return None
        return self._complete(response, "Login successful!", AuthState.FAILED)

    async def request_registration_otp(
        self,
        name: str,
        email: str,
        password: str,
        role: Role | str,
    ) -> bool:
        """Request a signup verification code.

        Returns:
            True once the flow is in OTP_PENDING.
        """
        if self.is_loading:
            logger.debug("OTP request ignored, another auth request is in flight")
            return False
        self.mode = AuthMode.REGISTER
        try:
            _require(
                {"name": name, "email": email, "password": password, "role": str(role or "")},
                "Please fill in all required fields",
            )
            parsed_role = Role.parse(role)
        except ValidationError as exc:
            self._fail(exc, self._editable_state())
            return False
        except ValueError:
            self._fail(ValidationError("Please choose buyer or seller"), self._editable_state())
            return False

        email = email.strip()
        if self.attempt is not None and self.attempt.otp_requested:
            if not self.attempt.same_identity(name, email, password, parsed_role):
                exc = ValidationError(
                    "Registration details cannot change after the code was sent",
                    details={"email": self.attempt.email},
                )
                self._fail(exc, AuthState.OTP_PENDING)
                return False
        else:
            self.attempt = RegistrationAttempt(
                name=name, email=email, password=password, role=parsed_role
            )

        attempt = self.attempt
        previous_state = self._editable_state()
        generation = self._generation
        self.state = AuthState.REQUESTING_OTP
        self.last_error = None
        try:
            message = await self._client.request_otp(name, email, password, parsed_role)
        except ClientError as exc:
            if self._is_stale(generation, "OTP request"):
                return False
            self._fail(exc, previous_state)
            return False

        if self._is_stale(generation, "OTP request"):
            return False
        attempt.otp_requested = True
        self.state = AuthState.OTP_PENDING
        self._notices.success(message or "Verification code sent")
        logger.info("Signup OTP requested", extra={"role": parsed_role.value})
        return True

    async def verify_registration_otp(self, email: str, code: str) -> Session | None:
        """Verify the signup code; on success the new session is saved."""
        if self.is_loading:
            logger.debug("OTP verification ignored, another auth request is in flight")
            return None
        attempt = self.attempt
        if self.state is not AuthState.OTP_PENDING or attempt is None or not attempt.otp_requested:
            exc = ValidationError("Request a verification code first")
            return self._fail(exc, self._editable_state())
        if email.strip() != attempt.email:
            exc = ValidationError(
                "Email does not match the one the code was sent to",
                details={"email": attempt.email},
            )
            return self._fail(exc, AuthState.OTP_PENDING)
        try:
            _require({"otp": code}, "Please enter the verification code")
        except ValidationError as exc:
            return self._fail(exc, AuthState.OTP_PENDING)

        attempt.otp_value = code.strip()
        generation = self._generation
        self.state = AuthState.VERIFYING_OTP
        self.last_error = None
        try:
            response = await self._client.verify_otp(attempt.email, attempt.otp_value)
        except ClientError as exc:
            if self._is_stale(generation, "OTP verification"):
                return None
            return self._fail(exc, AuthState.OTP_PENDING)

        if self._is_stale(generation, "OTP verification"):
            return None
        return self._complete(response, "Registration successful!", AuthState.OTP_PENDING)

    def logout(self) -> None:
        """Clear the local session and go back to the home view."""
        try:
            self._session_store.clear()
        except ClientError as exc:
            self.last_error = exc
            self._notices.error(exc.message or "Logout failed. Please try again.")
            logger.warning("Logout failed", extra={"error_code": exc.error})
            return
        self.reset()
        self._notices.success("Logged out")
        self._navigate(HOME_PATH)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _editable_state(self) -> AuthState:
        if self.attempt is not None and self.attempt.otp_requested:
            return AuthState.OTP_PENDING
        return AuthState.IDLE

    def _is_stale(self, generation: int, what: str) -> bool:
        if generation != self._generation:
            logger.info("Discarding stale %s response after flow reset", what)
            return True
        return False

    def _fail(self, exc: ClientError, state: AuthState) -> None:
        self.state = state
        self.last_error = exc
        if isinstance(exc, ValidationError):
            self._notices.warning(exc.message)
        else:
            self._notices.error(exc.message or "Authentication failed. Please try again.")
        logger.info(
            "Auth step failed",
            extra={"error_code": exc.error, "state": state.value, "mode": self.mode.value},
        )

    def _complete(
        self, response: AuthResponse, message: str, failure_state: AuthState
    ) -> Session | None:
        try:
            session = self._session_store.save(response.token, response.user)
        except ClientError as exc:
            return self._fail(exc, failure_state)
        self.state = AuthState.SUCCESS
        self.attempt = None
        self.last_error = None
        self._notices.success(message)
        if self._on_success is not None:
            self._on_success(session)
        self._navigate(HOME_PATH)
        return session

    def _navigate(self, path: str) -> None:
        if self._on_navigate is not None:
            self._on_navigate(path)
