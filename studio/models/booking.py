"""Pydantic models for the booking draft and submitted service requests."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class BookingDraft(BaseModel):
    """In-progress booking form state.

    Fields are filled in one at a time as the user interacts with the form.
    Nothing here is persisted; a successful submit sends the whole draft
    as one record and then clears it.
    """

    model_config = {"validate_assignment": True}

    service_id: Optional[str] = None
    booking_date: Optional[date] = None
    time_slot: Optional[str] = None
    duration_hours: Optional[int] = Field(default=None, ge=1)
    add_on_ids: list[str] = []
    notes: str = ""

    # Contact details (all required to submit)
    client_name: str = ""
    client_email: str = ""
    client_phone: str = ""


class RequestStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ServiceRequest(BaseModel):
    """One row of the ``service_requests`` table."""

    id: Optional[str] = None
    user_id: Optional[str] = None
    service_type: str
    full_name: str
    email: str
    phone: str
    project_title: str = ""
    project_description: str = ""
    budget_range: str = ""
    timeline: str = ""
    additional_notes: str = ""
    status: RequestStatus = RequestStatus.PENDING
    created_at: Optional[datetime] = None

    def to_insert_row(self) -> dict:
        """Columns for an insert; id and created_at are assigned by the database."""
        return self.model_dump(mode="json", exclude={"id", "created_at"})
