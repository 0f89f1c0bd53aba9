"""Identity provider and record store abstractions and implementations."""

from functools import lru_cache

from .base import (
    AuthChangeEvent,
    AuthListener,
    AuthListeners,
    IdentityProvider,
    RecordStore,
    Subscription,
)
from .supabase import SupabaseClient

__all__ = [
    "AuthChangeEvent",
    "AuthListener",
    "AuthListeners",
    "IdentityProvider",
    "RecordStore",
    "Subscription",
    "SupabaseClient",
    "get_identity_provider",
    "get_record_store",
]


@lru_cache
def _supabase() -> SupabaseClient:
    return SupabaseClient()


def get_identity_provider() -> IdentityProvider:
    return _supabase()


def get_record_store() -> RecordStore:
    return _supabase()
