"""Abstract base classes for the hosted identity and record-store services.

The booking funnel owns no persistent storage.  Sessions, user accounts and
submitted service requests all live in an external service reached through
these two interfaces.  Any backend (Supabase, a test fake, ...) implements
them.

Fallible calls return ``Result`` with an already-classified ``AppError``;
transport failures (connection refused, timeouts) are raised and left for
the caller's boundary to normalize.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Optional

from studio.errors import Result
from studio.models.identity import ProviderSession

log = logging.getLogger("studio.providers")


class AuthChangeEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


AuthListener = Callable[[AuthChangeEvent, Optional[ProviderSession]], None]


class Subscription:
    """Handle returned by ``on_auth_state_change``. Unsubscribing twice is a no-op."""

    def __init__(self, cancel: Callable[[], None]) -> None:
        self._cancel = cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._cancel()


class AuthListeners:
    """Listener fan-out shared by provider implementations."""

    def __init__(self) -> None:
        self._listeners: list[AuthListener] = []

    def add(self, listener: AuthListener) -> Subscription:
        self._listeners.append(listener)
        return Subscription(lambda: self._remove(listener))

    def _remove(self, listener: AuthListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def emit(self, event: AuthChangeEvent, session: Optional[ProviderSession]) -> None:
        log.debug("Auth event %s (listeners: %d)", event.value, len(self._listeners))
        for listener in list(self._listeners):
            listener(event, session)

    def __len__(self) -> int:
        return len(self._listeners)


class IdentityProvider(ABC):
    """Hosted authentication service."""

    @abstractmethod
    def on_auth_state_change(self, listener: AuthListener) -> Subscription:
        """Register ``listener`` for session push notifications.

        The listener is called with the event and the new session (or
        ``None`` after sign-out).  It stops being called once the returned
        subscription is cancelled.
        """

    @abstractmethod
    async def get_session(self) -> Optional[ProviderSession]:
        """Return the current session snapshot, or ``None`` when signed out."""

    @abstractmethod
    async def sign_up(
        self,
        email: str,
        password: str,
        *,
        redirect_to: str,
        metadata: dict[str, Any],
    ) -> Result:
        """Create an account; ``metadata`` is stored as the user's profile data."""

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> Result:
        """Verify credentials and start a session."""

    @abstractmethod
    async def sign_out(self) -> Result:
        """Terminate the current session."""

    @abstractmethod
    async def sign_in_with_oauth(self, provider: str, *, redirect_to: str) -> Result:
        """Start a federated sign-in. ``Result.data`` is the URL to redirect to."""

    @abstractmethod
    async def sign_in_with_otp(self, phone: str, *, channel: str = "sms") -> Result:
        """Send a one-time code to ``phone``."""

    @abstractmethod
    async def verify_otp(self, phone: str, token: str, *, type: str = "sms") -> Result:
        """Check a one-time code; success starts a session."""

    @abstractmethod
    async def get_user(self, access_token: str) -> Result:
        """Resolve an access token to its user. ``Result.data`` is a ``User``."""


class RecordStore(ABC):
    """Hosted table store."""

    @abstractmethod
    async def insert(self, table: str, rows: list[dict[str, Any]]) -> Result:
        """Insert ``rows`` into ``table``."""

    @abstractmethod
    async def select(
        self,
        table: str,
        *,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> Result:
        """Fetch rows matching every equality filter. ``Result.data`` is a list of dicts."""

    @abstractmethod
    async def update(self, table: str, record_id: str, fields: dict[str, Any]) -> Result:
        """Update the row whose ``id`` is ``record_id``."""
