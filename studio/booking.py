"""Booking form engine.

Owns one BookingDraft for the lifetime of a booking form.  Field setters
only mutate the draft; pricing is recomputed on every read; everything is
checked at submit time.

Submit gates, in order (each rejects without a network call):
  1. busy        a previous submit is still awaiting the record store
  2. auth        no signed-in user: notify and hand off to the sign-in flow
  3. complete    a required field is empty
  4. debounce    less than the debounce window since the last accepted attempt

Only an attempt that reaches the record store starts the debounce window.

A valid draft is sent as one ``service_requests`` insert.  Success clears
the draft; failure keeps it for correction.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Optional

from studio.config import settings
from studio.errors import UNEXPECTED_MESSAGE, ErrorKind, Result
from studio.models.booking import BookingDraft, ServiceRequest
from studio.models.catalog import DEFAULT_CATALOG, Catalog
from studio.models.identity import User
from studio.notifications import Notifier
from studio.pricing import PriceQuote, format_price, quote
from studio.providers.base import RecordStore
from studio.ratelimit import Debouncer
from studio.session import SessionManager, current_session_manager, redact_pii
from studio.validation import missing_booking_fields

log = logging.getLogger("studio.booking")

SERVICE_REQUESTS_TABLE = "service_requests"


def build_service_request(
    draft: BookingDraft,
    price: PriceQuote,
    user: Optional[User],
    currency_symbol: str = "₹",
) -> ServiceRequest:
    """Map a complete draft onto a ``service_requests`` row."""
    service_name = price.service.name if price.service else (draft.service_id or "")
    when = draft.booking_date.strftime("%b %d, %Y") if draft.booking_date else ""
    day = draft.booking_date.isoformat() if draft.booking_date else ""
    add_ons = ", ".join(a.name for a in price.add_ons) or "none"
    description = (
        f"{price.hours} hour(s) on {when} at {draft.time_slot}. Add-ons: {add_ons}."
    )
    return ServiceRequest(
        user_id=user.id if user else None,
        service_type=service_name,
        full_name=draft.client_name.strip(),
        email=draft.client_email.strip(),
        phone=draft.client_phone.strip(),
        project_title=f"{service_name} Session",
        project_description=description,
        budget_range=format_price(price.total, currency_symbol),
        timeline=f"{day} {draft.time_slot or ''}".strip(),
        additional_notes=draft.notes,
    )


class BookingForm:
    """One booking form instance and its draft."""

    def __init__(
        self,
        store: RecordStore,
        notifier: Notifier,
        *,
        manager: Optional[SessionManager] = None,
        catalog: Catalog = DEFAULT_CATALOG,
        debouncer: Optional[Debouncer] = None,
        on_auth_required: Optional[Callable[[], None]] = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._manager = manager
        self._catalog = catalog
        self._debouncer = debouncer or Debouncer(settings.submit_debounce_seconds)
        self._on_auth_required = on_auth_required
        self._draft = BookingDraft()
        self._busy = False

    # ── Read side ────────────────────────────────────────────────

    @property
    def draft(self) -> BookingDraft:
        """A copy of the draft; mutate through the setters."""
        return self._draft.model_copy(deep=True)

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def quote(self) -> PriceQuote:
        return quote(self._draft, self._catalog)

    @property
    def total(self) -> int:
        return self.quote.total

    @property
    def is_busy(self) -> bool:
        return self._busy

    @property
    def can_submit(self) -> bool:
        """Whether the submit control is enabled."""
        return not self._busy

    # ── Field setters ────────────────────────────────────────────

    def select_service(self, service_id: Optional[str]) -> None:
        self._draft.service_id = service_id or None

    def select_date(self, booking_date: Optional[date]) -> None:
        self._draft.booking_date = booking_date

    def select_time(self, time_slot: Optional[str]) -> None:
        self._draft.time_slot = time_slot or None

    def set_duration(self, hours: Optional[int]) -> None:
        self._draft.duration_hours = hours

    def toggle_add_on(self, add_on_id: str) -> None:
        ids = list(self._draft.add_on_ids)
        if add_on_id in ids:
            ids.remove(add_on_id)
        else:
            ids.append(add_on_id)
        self._draft.add_on_ids = ids

    def set_notes(self, notes: str) -> None:
        self._draft.notes = notes

    def set_contact(
        self,
        name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> None:
        if name is not None:
            self._draft.client_name = name
        if email is not None:
            self._draft.client_email = email
        if phone is not None:
            self._draft.client_phone = phone

    def reset(self) -> None:
        self._draft = BookingDraft()

    # ── Submit ───────────────────────────────────────────────────

    async def submit(self) -> Result:
        if self._busy:
            return Result.failure(ErrorKind.BUSY, "A booking is already being submitted.")

        manager = self._manager or current_session_manager()
        user = manager.user
        if user is None:
            message = "Please sign in to book a session."
            self._notifier.failure("Authentication Required", message)
            if self._on_auth_required is not None:
                self._on_auth_required()
            return Result.failure(ErrorKind.AUTH_REQUIRED, message)

        missing = missing_booking_fields(self._draft)
        if missing:
            message = "Please fill in all required fields to complete your booking."
            self._notifier.failure("Missing Information", message)
            return Result.failure(
                ErrorKind.VALIDATION, message, title="Missing Information",
                field=missing[0],
            )

        if not self._debouncer.try_acquire():
            message = "Please wait a moment before submitting again."
            self._notifier.failure("Too Fast", message)
            return Result.failure(ErrorKind.TOO_FAST, message, title="Too Fast")

        request = build_service_request(
            self._draft, self.quote, user, settings.currency_symbol
        )

        self._busy = True
        try:
            result = await self._store.insert(
                SERVICE_REQUESTS_TABLE, [request.to_insert_row()]
            )
        except Exception:
            log.exception("Booking insert failed")
            self._notifier.failure("Submission failed", UNEXPECTED_MESSAGE)
            return Result.failure(ErrorKind.UNEXPECTED, UNEXPECTED_MESSAGE)
        finally:
            self._busy = False

        if result.error is not None:
            self._notifier.failure("Submission failed", result.error.message)
            return result

        log.info("Booking submitted: %s for %s (total %d)",
                 request.service_type, redact_pii(request.email), self.total)
        self.reset()
        self._notifier.success(
            "Booking Submitted!",
            "We'll contact you within 24 hours to confirm your session.",
        )
        return Result.success(request)
