"""Sign-in / sign-up form flow.

Drives the two-tab auth page on top of the SessionManager:

  - one submission at a time (a second one while in flight is rejected)
  - sign-up fields are validated locally before any network call
  - a duplicate-account error switches to the sign-in tab with an info alert
  - a successful sign-up switches to the sign-in tab with a welcome alert
  - any authenticated session (sign-in here, OTP, another tab) navigates home

Sign-in outcomes are already announced by the manager's notifications.
Sign-up outcomes are shown as an inline alert; failures (local validation
included) also go to the notification channel.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from studio.config import settings
from studio.errors import ErrorKind, Result
from studio.models.identity import SessionState
from studio.notifications import Notifier
from studio.session import SessionManager, current_session_manager
from studio.validation import validate_sign_up

log = logging.getLogger("studio.auth_forms")

HOME = "/"


class AuthTab(str, Enum):
    SIGN_IN = "signin"
    SIGN_UP = "signup"


@dataclass(frozen=True)
class Alert:
    type: str          # success | error | info
    title: str
    description: str


class AuthFlow:
    def __init__(
        self,
        manager: Optional[SessionManager] = None,
        *,
        notifier: Optional[Notifier] = None,
        navigate: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._manager = manager or current_session_manager()
        self._notifier = notifier or self._manager.notifier
        self._navigate = navigate or (lambda path: None)
        self.active_tab = AuthTab.SIGN_IN
        self.alert: Optional[Alert] = None
        self._submitting = False
        self._unsubscribe = self._manager.subscribe(self._on_session)
        # Already signed in when the page opens
        if self._manager.is_authenticated:
            self._navigate(HOME)

    @property
    def is_loading(self) -> bool:
        return self._submitting

    def close(self) -> None:
        self._unsubscribe()

    def select_tab(self, tab: AuthTab) -> None:
        self.active_tab = tab

    def dismiss_alert(self) -> None:
        self.alert = None

    def _on_session(self, state: SessionState) -> None:
        if state.is_authenticated:
            self._navigate(HOME)

    def _show(self, type: str, title: str, description: str) -> None:
        self.alert = Alert(type=type, title=title, description=description)
        if type == "error":
            self._notifier.failure(title, description)
        elif type == "info":
            self._notifier.notify(title, description)

    async def sign_in(self, email: str, password: str) -> Result:
        if self._submitting:
            return Result.failure(ErrorKind.BUSY, "Sign in already in progress.")
        self._submitting = True
        try:
            return await self._manager.sign_in(email, password)
        finally:
            self._submitting = False

    async def sign_up(
        self,
        email: str,
        password: str,
        confirm_password: str,
        full_name: str,
        mobile_number: str,
    ) -> Result:
        if self._submitting:
            return Result.failure(ErrorKind.BUSY, "Sign up already in progress.")
        self._submitting = True
        try:
            return await self._sign_up(
                email, password, confirm_password, full_name, mobile_number
            )
        finally:
            self._submitting = False

    async def _sign_up(
        self,
        email: str,
        password: str,
        confirm_password: str,
        full_name: str,
        mobile_number: str,
    ) -> Result:
        invalid = validate_sign_up(
            email, full_name, password, confirm_password, mobile_number
        )
        if invalid is not None:
            self._show("error", invalid.title, invalid.message)
            return Result(error=invalid)

        result = await self._manager.sign_up(
            email.strip(), password, full_name.strip(), mobile_number.strip()
        )

        if result.error is None:
            self._show(
                "success",
                f"Welcome to {settings.studio_name}!",
                "Your account has been created successfully. "
                "Please check your email to confirm your account.",
            )
            self.active_tab = AuthTab.SIGN_IN
        elif result.error.kind is ErrorKind.DUPLICATE_ACCOUNT:
            self._show(
                "info",
                "Email Already Registered",
                "This email is already registered. "
                "Please sign in with your existing account.",
            )
            self.active_tab = AuthTab.SIGN_IN
        else:
            log.info("Sign up rejected: %s", result.error.kind.value)
            self._show("error", "Sign Up Failed", result.error.message)
        return result
