"""Error taxonomy shared by the session manager, forms and provider adapters.

Provider error messages are classified exactly once, in the adapter that
talks to the hosted service.  Everything above that layer branches on
``ErrorKind`` and never inspects message text.

Kinds by origin:
  local      validation, auth_required, too_fast, busy   (no network call)
  transient  rate_limited                                 (retried, then normalized)
  permanent  duplicate_account, invalid_credentials,
             rejected                                     (message passed through)
  other      unexpected                                   (exception at a boundary)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

RATE_LIMIT_MESSAGE = "Too many sign-up attempts. Please wait a moment before trying again."
UNEXPECTED_MESSAGE = "An unexpected error occurred. Please try again."
UNEXPECTED_SIGN_UP_MESSAGE = "An unexpected error occurred during sign up. Please try again."

_RATE_LIMIT_MARKERS = ("429", "rate limit", "too many requests")

_DUPLICATE_MARKERS = (
    "already registered",
    "already exists",
    "already been registered",
    "email already",
    "duplicate key",
    "unique constraint",
    "already in use",
)

_INVALID_CREDENTIAL_MARKERS = (
    "invalid login credentials",
    "invalid credentials",
    "token has expired or is invalid",
)


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTH_REQUIRED = "auth_required"
    TOO_FAST = "too_fast"
    BUSY = "busy"
    RATE_LIMITED = "rate_limited"
    DUPLICATE_ACCOUNT = "duplicate_account"
    INVALID_CREDENTIALS = "invalid_credentials"
    REJECTED = "rejected"
    UNEXPECTED = "unexpected"


LOCAL_KINDS = frozenset(
    {ErrorKind.VALIDATION, ErrorKind.AUTH_REQUIRED, ErrorKind.TOO_FAST, ErrorKind.BUSY}
)


@dataclass(frozen=True)
class AppError:
    """A classified failure. ``message`` is safe to show to the user."""

    kind: ErrorKind
    message: str
    title: str = ""
    field: Optional[str] = None
    status: Optional[int] = None

    @property
    def is_local(self) -> bool:
        return self.kind in LOCAL_KINDS


@dataclass(frozen=True)
class Result:
    """Uniform outcome of every fallible operation."""

    error: Optional[AppError] = None
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any = None) -> "Result":
        return cls(error=None, data=data)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, **kwargs: Any) -> "Result":
        return cls(error=AppError(kind=kind, message=message, **kwargs))


class SessionScopeError(RuntimeError):
    """Session state used outside an active SessionManager scope."""


def is_rate_limit_message(message: str) -> bool:
    lowered = (message or "").lower()
    return any(marker in lowered for marker in _RATE_LIMIT_MARKERS)


def classify_provider_error(message: str, status: int | None = None) -> AppError:
    """Map a raw provider error onto an ``AppError``.

    Rate-limit errors keep the raw message here; callers that retry decide
    when to swap in ``RATE_LIMIT_MESSAGE``.
    """
    message = message or UNEXPECTED_MESSAGE
    lowered = message.lower()

    if status == 429 or is_rate_limit_message(message):
        kind = ErrorKind.RATE_LIMITED
    elif any(marker in lowered for marker in _DUPLICATE_MARKERS):
        kind = ErrorKind.DUPLICATE_ACCOUNT
    elif any(marker in lowered for marker in _INVALID_CREDENTIAL_MARKERS):
        kind = ErrorKind.INVALID_CREDENTIALS
    elif status is not None and status >= 500:
        kind = ErrorKind.UNEXPECTED
    else:
        kind = ErrorKind.REJECTED
    return AppError(kind=kind, message=message, status=status)
