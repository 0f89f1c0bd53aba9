"""Process-wide session manager. Keeps local auth state in sync with the provider.

One SessionManager exists per process.  It:
  1. Subscribes to the provider's session push notifications
  2. Fetches the provider's current session snapshot in parallel
  3. Writes the resulting SessionState.  Either path clears the loading
     flag; once a push has landed the snapshot is discarded as stale
  4. Exposes sign-up / sign-in / sign-out / federated / phone-OTP actions
     that report every outcome on the notification channel
  5. Cancels its subscription on close, after which late pushes are ignored

Actions never write state themselves.  A successful sign-in or sign-out
reaches local state only through the provider callback, so there is a
single writer for every session change.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from studio.config import settings
from studio.errors import (
    RATE_LIMIT_MESSAGE,
    UNEXPECTED_MESSAGE,
    UNEXPECTED_SIGN_UP_MESSAGE,
    ErrorKind,
    Result,
    SessionScopeError,
    is_rate_limit_message,
)
from studio.models.identity import ProviderSession, SessionState, User
from studio.notifications import Notifier
from studio.providers.base import AuthChangeEvent, IdentityProvider, Subscription

log = logging.getLogger("studio.session")

Sleep = Callable[[float], Awaitable[Any]]
SessionListener = Callable[[SessionState], None]


def redact_pii(value: str) -> str:
    """Mask PII for logging: show first 3 and last 2 chars only."""
    if not value or len(value) <= 5:
        return "***"
    return value[:3] + "***" + value[-2:]


# ── Scope registry ───────────────────────────────────────────────

_active_manager: Optional["SessionManager"] = None


def current_session_manager() -> "SessionManager":
    """Return the running manager. Reading session state without one is a bug."""
    if _active_manager is None:
        raise SessionScopeError(
            "Session state must be used within an active SessionManager scope"
        )
    return _active_manager


@dataclass(frozen=True)
class RetryPolicy:
    """Delay schedule for rate-limited sign-up attempts.

    Attempt 0 waits ``initial_delay``; retry *n* waits ``backoff * n``.
    """

    max_retries: int = 2
    initial_delay: float = 0.5
    backoff: float = 1.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_retries=settings.sign_up_max_retries,
            initial_delay=settings.sign_up_initial_delay,
            backoff=settings.sign_up_backoff_seconds,
        )

    def delay_for(self, attempt: int) -> float:
        if attempt == 0:
            return self.initial_delay
        return self.backoff * attempt


class SessionManager:
    """Single owner of the authenticated-identity state.

    Typical lifecycle::

        async with SessionManager(provider, notifier) as manager:
            manager.subscribe(render_header)
            result = await manager.sign_in(email, password)
            ...
        # subscription cancelled here
    """

    def __init__(
        self,
        provider: IdentityProvider,
        notifier: Notifier,
        *,
        redirect_url: str | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self._notifier = notifier
        self._redirect_url = redirect_url or settings.redirect_url
        self._retry = retry_policy or RetryPolicy.from_settings()
        self._sleep = sleep

        self._state = SessionState()
        self._listeners: list[SessionListener] = []
        self._subscription: Optional[Subscription] = None
        self._closed = False
        self._pushed = False

    # ── State (read-only for everyone else) ──────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def user(self) -> Optional[User]:
        return self._state.user

    @property
    def session(self) -> Optional[ProviderSession]:
        return self._state.session

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    @property
    def is_active(self) -> bool:
        return self._subscription is not None and not self._closed

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call ``listener`` with every new SessionState. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return _unsubscribe

    # ── Scope ────────────────────────────────────────────────────

    async def start(self) -> None:
        """Register the provider callback and resolve the initial session."""
        global _active_manager
        if self._closed:
            raise SessionScopeError("A closed SessionManager cannot be restarted")
        if _active_manager is not None and _active_manager is not self:
            raise SessionScopeError("Only one SessionManager may be active per process")
        if self._subscription is not None:
            return

        _active_manager = self
        self._subscription = self._provider.on_auth_state_change(self._on_auth_change)

        try:
            snapshot = await self._provider.get_session()
        except Exception:
            log.exception("Initial session fetch failed; treating as anonymous")
            snapshot = None

        # A push that landed while the snapshot was in flight is newer
        if not self._closed and not self._pushed:
            self._write(snapshot)

    async def close(self) -> None:
        """Cancel the provider subscription. Safe to call multiple times."""
        global _active_manager
        self._closed = True
        if self._subscription is not None:
            self._subscription.unsubscribe()
        if _active_manager is self:
            _active_manager = None
        self._listeners.clear()
        log.info("SessionManager closed")

    async def __aenter__(self) -> "SessionManager":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ── Single writer ────────────────────────────────────────────

    def _on_auth_change(
        self, event: AuthChangeEvent, session: Optional[ProviderSession]
    ) -> None:
        if self._closed:
            return
        self._pushed = True
        log.info("Auth event %s (user=%s)", event.value,
                 redact_pii(session.user.email or "") if session else "-")
        self._write(session)

    def _write(self, session: Optional[ProviderSession]) -> None:
        self._state = SessionState(
            user=session.user if session else None,
            session=session,
            is_loading=False,
        )
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                log.exception("Session listener failed")

    # ── Actions ──────────────────────────────────────────────────

    async def sign_up(
        self, email: str, password: str, full_name: str, mobile_number: str
    ) -> Result:
        """Create an account, retrying while the provider is rate limiting.

        Profile rows are created server-side when the account is created;
        this method does not write one.  Errors are returned, not notified:
        the sign-up form owns that presentation.
        """
        metadata = {"full_name": full_name, "mobile_number": mobile_number}
        attempt = 0
        while True:
            await self._sleep(self._retry.delay_for(attempt))
            try:
                result = await self._provider.sign_up(
                    email, password, redirect_to=self._redirect_url, metadata=metadata
                )
            except Exception as exc:
                log.exception("Sign up error for %s", redact_pii(email))
                if is_rate_limit_message(str(exc)):
                    return Result.failure(ErrorKind.RATE_LIMITED, RATE_LIMIT_MESSAGE)
                return Result.failure(ErrorKind.UNEXPECTED, UNEXPECTED_SIGN_UP_MESSAGE)

            if result.ok:
                log.info("Sign up succeeded for %s", redact_pii(email))
                return result

            if result.error.kind is not ErrorKind.RATE_LIMITED:
                return result

            if attempt >= self._retry.max_retries:
                log.warning("Sign up rate limited after %d attempts", attempt + 1)
                return Result.failure(
                    ErrorKind.RATE_LIMITED, RATE_LIMIT_MESSAGE, status=result.error.status
                )

            attempt += 1
            log.info("Rate limiting detected, retrying... (attempt %d)", attempt)

    async def sign_in(self, email: str, password: str) -> Result:
        return await self._notified(
            "sign in",
            lambda: self._provider.sign_in_with_password(email, password),
            failure_title="Sign In Failed",
            success=(
                "Welcome Back!",
                f"You have successfully signed in to {settings.studio_name}.",
            ),
        )

    async def sign_out(self) -> Result:
        # Local state is cleared by the SIGNED_OUT push, not here.
        return await self._notified(
            "sign out",
            self._provider.sign_out,
            failure_title="Sign Out Failed",
            success=("See You Soon!", "You have been successfully signed out."),
        )

    async def sign_in_with_provider(self, provider: str = "google") -> Result:
        """Start federated sign-in. ``Result.data`` holds the redirect URL."""
        return await self._notified(
            f"{provider} sign in",
            lambda: self._provider.sign_in_with_oauth(
                provider, redirect_to=self._redirect_url
            ),
            failure_title=f"{provider.capitalize()} Sign In Failed",
        )

    async def sign_in_with_google(self) -> Result:
        return await self.sign_in_with_provider("google")

    async def send_phone_otp(self, phone: str) -> Result:
        return await self._notified(
            "send OTP",
            lambda: self._provider.sign_in_with_otp(phone, channel="sms"),
            failure_title="OTP Send Failed",
            success=("OTP Sent", "We sent a 6-digit code via SMS."),
        )

    async def verify_phone_otp(self, phone: str, token: str) -> Result:
        # On success the provider pushes SIGNED_IN, same path as sign_in.
        return await self._notified(
            "verify OTP",
            lambda: self._provider.verify_otp(phone, token, type="sms"),
            failure_title="OTP Verification Failed",
            success=("Verified", "Phone number verified successfully."),
        )

    async def _notified(
        self,
        action: str,
        call: Callable[[], Awaitable[Result]],
        *,
        failure_title: str,
        success: tuple[str, str] | None = None,
    ) -> Result:
        """Run a provider call, normalize exceptions and report the outcome."""
        try:
            result = await call()
        except Exception:
            log.exception("%s error", action.capitalize())
            self._notifier.failure(failure_title, UNEXPECTED_MESSAGE)
            return Result.failure(ErrorKind.UNEXPECTED, UNEXPECTED_MESSAGE)

        if result.error is not None:
            log.info("%s failed: %s", action.capitalize(), result.error.kind.value)
            self._notifier.failure(failure_title, result.error.message)
        elif success is not None:
            self._notifier.success(*success)
        return result
