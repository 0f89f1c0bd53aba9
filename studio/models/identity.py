"""Identity models: provider user, token bundle and the local session snapshot."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


class User(BaseModel):
    id: str
    email: Optional[str] = None
    phone: Optional[str] = None
    user_metadata: dict[str, Any] = {}

    @property
    def display_name(self) -> str:
        return self.user_metadata.get("full_name") or self.email or self.phone or ""


class ProviderSession(BaseModel):
    """Token bundle issued by the identity provider."""

    access_token: str
    refresh_token: str = ""
    token_type: str = "bearer"
    expires_at: Optional[float] = None  # unix seconds
    user: User

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class SessionState(BaseModel):
    """Immutable snapshot of the process-wide authenticated identity."""

    model_config = {"frozen": True}

    user: Optional[User] = None
    session: Optional[ProviderSession] = None
    is_loading: bool = True

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def status(self) -> str:
        if self.is_loading:
            return "loading"
        return "authenticated" if self.is_authenticated else "anonymous"
