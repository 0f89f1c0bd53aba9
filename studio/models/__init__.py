"""Data models for the booking funnel."""

from .booking import BookingDraft, RequestStatus, ServiceRequest
from .catalog import DEFAULT_CATALOG, AddOn, Catalog, Service
from .identity import ProviderSession, SessionState, User

__all__ = [
    "AddOn",
    "BookingDraft",
    "Catalog",
    "DEFAULT_CATALOG",
    "ProviderSession",
    "RequestStatus",
    "Service",
    "ServiceRequest",
    "SessionState",
    "User",
]
