"""Supabase implementation of the identity provider and record store.

Talks to the hosted auth (GoTrue, ``/auth/v1``) and table (PostgREST,
``/rest/v1``) endpoints over httpx.  The session token bundle lives in
memory on this client; every change to it is pushed to registered
listeners, the same way the browser SDK does:

  INITIAL_SESSION   scheduled on the event loop when a listener registers
  SIGNED_IN         password sign-in, OTP verification, sign-up with session
  TOKEN_REFRESHED   expired session refreshed inside get_session()
  SIGNED_OUT        sign-out, or a refresh that the server refuses

HTTP error bodies are classified into ``AppError`` here.  Connection
errors and timeouts are raised as ``httpx.HTTPError``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Optional

import httpx

from studio.config import settings
from studio.errors import (
    UNEXPECTED_MESSAGE,
    ErrorKind,
    Result,
    classify_provider_error,
)
from studio.models.identity import ProviderSession, User

from .base import (
    AuthChangeEvent,
    AuthListener,
    AuthListeners,
    IdentityProvider,
    RecordStore,
    Subscription,
)

logger = logging.getLogger(__name__)

# Sign-out against a session the server no longer knows still signs out locally
_GONE_STATUSES = {401, 403, 404}


class SupabaseClient(IdentityProvider, RecordStore):
    """IdentityProvider + RecordStore backed by a Supabase project."""

    def __init__(
        self,
        url: str | None = None,
        anon_key: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._url = (url or settings.supabase_url).rstrip("/")
        self._anon_key = anon_key or settings.supabase_anon_key
        if not self._url or not self._anon_key:
            raise ValueError(
                "Supabase URL and anon key must be provided via constructor "
                "arguments or SUPABASE_URL / SUPABASE_ANON_KEY env vars."
            )
        self._client = httpx.AsyncClient(
            base_url=self._url,
            timeout=timeout or settings.supabase_timeout,
            transport=transport,
            headers={"apikey": self._anon_key},
        )
        self._clock = clock
        self._listeners = AuthListeners()
        self._session: Optional[ProviderSession] = None

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key in ("msg", "error_description", "message", "error"):
                value = body.get(key)
                if isinstance(value, str) and value:
                    return value
        return response.text or response.reason_phrase

    def _error_result(self, response: httpx.Response) -> Result:
        message = self._error_message(response)
        logger.info("Supabase %s %s -> %d: %s",
                    response.request.method, response.request.url.path,
                    response.status_code, message)
        return Result(error=classify_provider_error(message, response.status_code))

    def _parse_session(self, data: dict[str, Any]) -> Optional[ProviderSession]:
        if not data.get("access_token") or not data.get("user"):
            return None
        expires_at = data.get("expires_at")
        if expires_at is None and data.get("expires_in") is not None:
            expires_at = self._clock() + float(data["expires_in"])
        return ProviderSession(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token", ""),
            token_type=data.get("token_type", "bearer"),
            expires_at=expires_at,
            user=User.model_validate(data["user"]),
        )

    def _set_session(
        self, session: Optional[ProviderSession], event: AuthChangeEvent
    ) -> None:
        self._session = session
        self._listeners.emit(event, session)

    def _bearer(self) -> dict[str, str]:
        token = self._session.access_token if self._session else self._anon_key
        return {"Authorization": f"Bearer {token}"}

    async def _refresh(self) -> None:
        if self._session is None:
            return
        response = await self._client.post(
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": self._session.refresh_token},
        )
        session = None if response.is_error else self._parse_session(response.json())
        if session is None:
            logger.warning("Session refresh refused (%d); signing out locally",
                           response.status_code)
            self._set_session(None, AuthChangeEvent.SIGNED_OUT)
            return
        self._set_session(session, AuthChangeEvent.TOKEN_REFRESHED)

    # ------------------------------------------------------------------
    # IdentityProvider interface
    # ------------------------------------------------------------------

    def on_auth_state_change(self, listener: AuthListener) -> Subscription:
        subscription = self._listeners.add(listener)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            loop.call_soon(self._emit_initial, subscription, listener)
        return subscription

    def _emit_initial(self, subscription: Subscription, listener: AuthListener) -> None:
        if subscription.active:
            listener(AuthChangeEvent.INITIAL_SESSION, self._session)

    async def get_session(self) -> Optional[ProviderSession]:
        session = self._session
        if session and session.is_expired(self._clock()) and session.refresh_token:
            await self._refresh()
        return self._session

    async def sign_up(
        self,
        email: str,
        password: str,
        *,
        redirect_to: str,
        metadata: dict[str, Any],
    ) -> Result:
        response = await self._client.post(
            "/auth/v1/signup",
            params={"redirect_to": redirect_to},
            json={"email": email, "password": password, "data": metadata},
        )
        if response.is_error:
            return self._error_result(response)

        data = response.json()
        session = self._parse_session(data)
        if session is not None:
            self._set_session(session, AuthChangeEvent.SIGNED_IN)
            return Result.success(session.user)
        # Email confirmation pending: the body is the bare user object
        return Result.success(User.model_validate(data.get("user", data)))

    async def sign_in_with_password(self, email: str, password: str) -> Result:
        response = await self._client.post(
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if response.is_error:
            return self._error_result(response)
        session = self._parse_session(response.json())
        if session is None:
            return Result.failure(ErrorKind.UNEXPECTED, UNEXPECTED_MESSAGE)
        self._set_session(session, AuthChangeEvent.SIGNED_IN)
        return Result.success(session)

    async def sign_out(self) -> Result:
        if self._session is not None:
            response = await self._client.post(
                "/auth/v1/logout", headers=self._bearer()
            )
            if response.is_error and response.status_code not in _GONE_STATUSES:
                return self._error_result(response)
        self._set_session(None, AuthChangeEvent.SIGNED_OUT)
        return Result.success()

    async def sign_in_with_oauth(self, provider: str, *, redirect_to: str) -> Result:
        url = httpx.URL(
            f"{self._url}/auth/v1/authorize",
            params={"provider": provider, "redirect_to": redirect_to},
        )
        return Result.success(str(url))

    async def sign_in_with_otp(self, phone: str, *, channel: str = "sms") -> Result:
        response = await self._client.post(
            "/auth/v1/otp",
            json={"phone": phone, "channel": channel, "create_user": True},
        )
        if response.is_error:
            return self._error_result(response)
        return Result.success()

    async def verify_otp(self, phone: str, token: str, *, type: str = "sms") -> Result:
        response = await self._client.post(
            "/auth/v1/verify",
            json={"phone": phone, "token": token, "type": type},
        )
        if response.is_error:
            return self._error_result(response)
        session = self._parse_session(response.json())
        if session is not None:
            self._set_session(session, AuthChangeEvent.SIGNED_IN)
        return Result.success(session)

    async def get_user(self, access_token: str) -> Result:
        response = await self._client.get(
            "/auth/v1/user", headers={"Authorization": f"Bearer {access_token}"}
        )
        if response.is_error:
            return self._error_result(response)
        return Result.success(User.model_validate(response.json()))

    # ------------------------------------------------------------------
    # RecordStore interface
    # ------------------------------------------------------------------

    async def insert(self, table: str, rows: list[dict[str, Any]]) -> Result:
        response = await self._client.post(
            f"/rest/v1/{table}",
            json=rows,
            headers={**self._bearer(), "Prefer": "return=minimal"},
        )
        if response.is_error:
            return self._error_result(response)
        return Result.success()

    async def select(
        self,
        table: str,
        *,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> Result:
        params: dict[str, Any] = {"select": "*"}
        for column, value in (filters or {}).items():
            params[column] = f"eq.{value}"
        if order_by:
            params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"
        if limit is not None:
            params["limit"] = limit

        response = await self._client.get(
            f"/rest/v1/{table}", params=params, headers=self._bearer()
        )
        if response.is_error:
            return self._error_result(response)
        return Result.success(response.json())

    async def update(self, table: str, record_id: str, fields: dict[str, Any]) -> Result:
        response = await self._client.patch(
            f"/rest/v1/{table}",
            params={"id": f"eq.{record_id}"},
            json=fields,
            headers={**self._bearer(), "Prefer": "return=minimal"},
        )
        if response.is_error:
            return self._error_result(response)
        return Result.success()
