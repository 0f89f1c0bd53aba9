"""FastAPI application: catalog, price quotes and admin review of service requests.

Endpoints:

  GET   /health                              Health check
  GET   /api/catalog                         Services, add-ons, time slots, durations
  POST  /api/quote                           Price a (partial) booking selection
  GET   /api/admin/service-requests          List requests, newest first (?status=)
  PATCH /api/admin/service-requests/{id}     Change a request's status

Admin endpoints need a Bearer provider access token of a user with the
admin role (see studio.auth).
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

# Configure root logger early so every studio.* logger has a handler
# when run via `uvicorn studio.app:app`.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)-20s %(levelname)-7s %(message)s",
)

from studio.auth import require_admin
from studio.config import settings
from studio.errors import ErrorKind, Result
from studio.models.booking import BookingDraft, RequestStatus
from studio.models.catalog import DEFAULT_CATALOG
from studio.models.identity import User
from studio.pricing import quote
from studio.providers import get_record_store
from studio.providers.base import RecordStore
from studio.service_requests import ServiceRequestAdmin

log = logging.getLogger("studio.app")

_START_TIME = time.time()


class QuoteRequest(BaseModel):
    service_id: Optional[str] = None
    duration_hours: Optional[int] = Field(default=None, ge=1)
    add_on_ids: list[str] = []


class StatusUpdate(BaseModel):
    status: str


def _raise_for(result: Result) -> None:
    """Translate a failed Result into an HTTP error."""
    if result.error is None:
        return
    if result.error.kind is ErrorKind.VALIDATION:
        raise HTTPException(status_code=422, detail=result.error.message)
    raise HTTPException(status_code=502, detail=result.error.message)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=f"{settings.studio_name} Booking API",
        description="Studio catalog, price quotes and service request review",
        version="0.1.0",
    )

    # ── Health check ───────────────────────────────────────────

    @app.get("/health")
    async def health() -> JSONResponse:
        uptime = round(time.time() - _START_TIME, 1)
        return JSONResponse({"status": "ok", "uptime": uptime})

    # ── Catalog + pricing ──────────────────────────────────────

    @app.get("/api/catalog")
    async def get_catalog() -> dict:
        return DEFAULT_CATALOG.to_dict()

    @app.post("/api/quote")
    async def post_quote(body: QuoteRequest) -> dict:
        """Price a selection. Unknown ids and a missing duration are tolerated."""
        draft = BookingDraft(
            service_id=body.service_id,
            duration_hours=body.duration_hours,
            add_on_ids=list(dict.fromkeys(body.add_on_ids)),
        )
        return quote(draft, DEFAULT_CATALOG).to_dict()

    # ── Admin: service requests ────────────────────────────────

    @app.get("/api/admin/service-requests")
    async def list_service_requests(
        status: Optional[RequestStatus] = Query(default=None),
        admin: User = Depends(require_admin),
        store: RecordStore = Depends(get_record_store),
    ) -> list[dict]:
        result = await ServiceRequestAdmin(store).list_requests(status)
        _raise_for(result)
        return [r.model_dump(mode="json") for r in result.data]

    @app.patch("/api/admin/service-requests/{request_id}")
    async def update_service_request(
        request_id: str,
        body: StatusUpdate,
        admin: User = Depends(require_admin),
        store: RecordStore = Depends(get_record_store),
    ) -> dict:
        result = await ServiceRequestAdmin(store).update_status(request_id, body.status)
        _raise_for(result)
        log.info("Admin %s set request %s to %s", admin.id, request_id, result.data.value)
        return {"id": request_id, "status": result.data.value}

    return app


# ── Module-level app instance for uvicorn ──────────────────────

app = create_app()


if __name__ == "__main__":
    import uvicorn

    for warning in settings.validate_startup():
        log.warning(warning)

    log_config = uvicorn.config.LOGGING_CONFIG
    log_config["formatters"]["default"]["fmt"] = (
        "%(asctime)s %(name)-12s %(levelname)-8s %(message)s"
    )

    uvicorn.run(
        "studio.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=log_config,
    )
