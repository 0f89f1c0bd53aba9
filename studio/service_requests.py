"""Service requests: project inquiries from the service pages and admin review.

Each service page (recording, mixing, podcast, dubbing, vocal chain) has a
project inquiry form.  Submitting one inserts a ``service_requests`` row for
the signed-in user.  Admins list those rows and move them through
pending -> in-progress -> completed / cancelled.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from pydantic import BaseModel, ValidationError

from studio.booking import SERVICE_REQUESTS_TABLE
from studio.config import settings
from studio.errors import UNEXPECTED_MESSAGE, ErrorKind, Result
from studio.models.booking import RequestStatus, ServiceRequest
from studio.notifications import Notifier
from studio.providers.base import RecordStore
from studio.session import SessionManager, current_session_manager, redact_pii
from studio.validation import missing_fields

log = logging.getLogger("studio.service_requests")

USER_ROLES_TABLE = "user_roles"

SERVICE_TYPES = (
    "Recording Studio",
    "Mixing & Mastering",
    "Podcast Production",
    "Voice Dubbing",
    "Vocal Chain Setup",
)

# Inquiry attribute -> label shown to the user
REQUIRED_INQUIRY_FIELDS = {
    "full_name": "full name",
    "email": "email",
    "phone": "phone",
    "project_title": "project title",
    "project_description": "project description",
}


class ProjectInquiry(BaseModel):
    """Fields of a service page's project inquiry form."""

    model_config = {"str_strip_whitespace": True}

    full_name: str
    email: str
    phone: str
    project_title: str = ""
    project_description: str = ""
    budget_range: str = ""
    timeline: str = ""
    additional_notes: str = ""


async def submit_service_request(
    service_type: str,
    inquiry: ProjectInquiry,
    *,
    store: RecordStore,
    notifier: Notifier,
    manager: Optional[SessionManager] = None,
    on_auth_required: Optional[Callable[[], None]] = None,
    on_success: Optional[Callable[[], None]] = None,
) -> Result:
    """Insert one inquiry for the signed-in user.

    Blank required fields are rejected before the store is called.
    ``on_success`` runs after the success notification (the service pages
    navigate home there).
    """
    user = (manager or current_session_manager()).user
    if user is None:
        message = "Please sign in to submit a service request."
        notifier.failure("Authentication Required", message)
        if on_auth_required is not None:
            on_auth_required()
        return Result.failure(ErrorKind.AUTH_REQUIRED, message)

    missing = missing_fields(inquiry, REQUIRED_INQUIRY_FIELDS)
    if missing:
        message = "Please fill in: " + ", ".join(missing) + "."
        notifier.failure("Missing Information", message)
        return Result.failure(
            ErrorKind.VALIDATION, message, title="Missing Information", field=missing[0]
        )

    request = ServiceRequest(
        user_id=user.id,
        service_type=service_type,
        **inquiry.model_dump(),
    )
    try:
        result = await store.insert(SERVICE_REQUESTS_TABLE, [request.to_insert_row()])
    except Exception:
        log.exception("Service request insert failed")
        notifier.failure("Error", "Failed to submit request. Please try again.")
        return Result.failure(ErrorKind.UNEXPECTED, UNEXPECTED_MESSAGE)

    if result.error is not None:
        notifier.failure("Submission failed", result.error.message)
        return result

    log.info("Service request submitted: %s for %s",
             service_type, redact_pii(inquiry.email))
    notifier.success(
        "Request submitted successfully!",
        "We'll get back to you within 24 hours with a detailed quote.",
    )
    if on_success is not None:
        on_success()
    return Result.success(request)


class ServiceRequestAdmin:
    """Admin-side review of submitted service requests."""

    def __init__(self, store: RecordStore, notifier: Optional[Notifier] = None) -> None:
        self._store = store
        self._notifier = notifier

    def _fail(self, title: str, result: Result) -> Result:
        if self._notifier is not None:
            self._notifier.failure(title, result.error.message)
        return result

    async def is_admin(self, user_id: str) -> bool:
        result = await self._store.select(
            USER_ROLES_TABLE,
            filters={"user_id": user_id, "role": settings.admin_role},
            order_by=None,
            limit=1,
        )
        if result.error is not None:
            log.warning("Admin check failed for %s: %s", user_id, result.error.message)
            return False
        return bool(result.data)

    async def list_requests(self, status: Optional[RequestStatus] = None) -> Result:
        """Service requests, newest first. ``Result.data`` is a list of ServiceRequest."""
        filters = {"status": status.value} if status is not None else None
        result = await self._store.select(
            SERVICE_REQUESTS_TABLE, filters=filters, order_by="created_at", descending=True
        )
        if result.error is not None:
            return self._fail("Error fetching requests", result)

        requests = []
        for row in result.data or []:
            try:
                requests.append(ServiceRequest.model_validate(row))
            except ValidationError:
                log.warning("Skipping malformed service request row %s", row.get("id"))
        return Result.success(requests)

    async def update_status(self, request_id: str, status: str) -> Result:
        try:
            new_status = RequestStatus(status)
        except ValueError:
            allowed = ", ".join(s.value for s in RequestStatus)
            return Result.failure(
                ErrorKind.VALIDATION, f"Status must be one of: {allowed}.", field="status"
            )

        result = await self._store.update(
            SERVICE_REQUESTS_TABLE, request_id, {"status": new_status.value}
        )
        if result.error is not None:
            return self._fail("Error updating status", result)

        log.info("Service request %s -> %s", request_id, new_status.value)
        if self._notifier is not None:
            self._notifier.success(
                "Status updated", "Request status has been updated successfully."
            )
        return Result.success(new_status)
