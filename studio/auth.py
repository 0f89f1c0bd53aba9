"""Authentication dependencies for the admin API endpoints.

Admin routes take the caller's provider access token as a Bearer token:

  missing / rejected token               → 401 Unauthorized
  valid token, user lacks the admin role → 403 Forbidden
  valid token, admin role                → allow
"""

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from studio.models.identity import User
from studio.providers import get_identity_provider, get_record_store
from studio.providers.base import IdentityProvider, RecordStore
from studio.service_requests import ServiceRequestAdmin

log = logging.getLogger("studio.auth")

_bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> User:
    """FastAPI dependency: resolve the Bearer access token to a user."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing access token.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await provider.get_user(credentials.credentials)
    if result.error is not None:
        log.info("Access token rejected: %s", result.error.kind.value)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired access token.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return result.data


async def require_admin(
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_record_store),
) -> User:
    """FastAPI dependency: only users holding the admin role pass."""
    if not await ServiceRequestAdmin(store).is_admin(user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You don't have admin privileges.",
        )
    return user
