"""Booking price calculation.

total = service hourly rate * hours + sum of selected add-on prices

Hours default to 1 while no duration is chosen.  Missing or unknown
selections contribute nothing, so a quote can be computed for any draft.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from studio.models.booking import BookingDraft
from studio.models.catalog import DEFAULT_CATALOG, AddOn, Catalog, Service


@dataclass(frozen=True)
class PriceQuote:
    service: Optional[Service]
    hours: int
    service_total: int
    add_ons: tuple[AddOn, ...]
    add_on_total: int

    @property
    def total(self) -> int:
        return self.service_total + self.add_on_total

    def to_dict(self) -> dict:
        return {
            "service_id": self.service.id if self.service else None,
            "hours": self.hours,
            "service_total": self.service_total,
            "add_ons": [{"id": a.id, "name": a.name, "price": a.price} for a in self.add_ons],
            "add_on_total": self.add_on_total,
            "total": self.total,
        }


def quote(draft: BookingDraft, catalog: Catalog = DEFAULT_CATALOG) -> PriceQuote:
    service = catalog.service(draft.service_id)
    hours = draft.duration_hours or 1
    add_ons = tuple(catalog.resolve_add_ons(draft.add_on_ids))
    return PriceQuote(
        service=service,
        hours=hours,
        service_total=(service.price if service else 0) * hours,
        add_ons=add_ons,
        add_on_total=sum(a.price for a in add_ons),
    )


def calculate_total(draft: BookingDraft, catalog: Catalog = DEFAULT_CATALOG) -> int:
    return quote(draft, catalog).total


def format_price(amount: int, symbol: str = "₹") -> str:
    return f"{symbol}{amount:,}"
