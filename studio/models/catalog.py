"""Static service and add-on catalog with hourly and flat prices."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional


@dataclass(frozen=True)
class Service:
    """A bookable studio service, priced per hour in whole currency units."""

    id: str
    name: str
    price: int


@dataclass(frozen=True)
class AddOn:
    """An optional extra with a flat price."""

    id: str
    name: str
    price: int


@dataclass(frozen=True)
class Catalog:
    services: tuple[Service, ...]
    add_ons: tuple[AddOn, ...]
    time_slots: tuple[str, ...] = ()
    durations: tuple[int, ...] = ()
    _service_index: dict[str, Service] = field(init=False, repr=False, compare=False)
    _add_on_index: dict[str, AddOn] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_service_index", {s.id: s for s in self.services})
        object.__setattr__(self, "_add_on_index", {a.id: a for a in self.add_ons})

    def service(self, service_id: Optional[str]) -> Optional[Service]:
        if not service_id:
            return None
        return self._service_index.get(service_id)

    def add_on(self, add_on_id: str) -> Optional[AddOn]:
        return self._add_on_index.get(add_on_id)

    def resolve_add_ons(self, add_on_ids: Iterable[str]) -> list[AddOn]:
        """Known add-ons for ``add_on_ids``; unknown ids are skipped."""
        found = (self.add_on(a) for a in add_on_ids)
        return [a for a in found if a is not None]

    def to_dict(self) -> dict:
        return {
            "services": [vars(s) for s in self.services],
            "add_ons": [vars(a) for a in self.add_ons],
            "time_slots": list(self.time_slots),
            "durations": list(self.durations),
        }


SERVICES = (
    Service("music-production", "Music Production", 2500),
    Service("voice-dubbing", "Voice Dubbing", 1500),
    Service("mixing-mastering", "Mixing & Mastering", 2000),
    Service("vocal-recording", "Vocal Recording", 1200),
    Service("podcast-video", "Podcast & Video Shooting", 3000),
    Service("vocal-chain", "Vocal Chain Setup", 1800),
)

ADD_ONS = (
    AddOn("video-shoot", "Video Shoot", 1500),
    AddOn("extra-mixing", "Additional Mixing", 800),
    AddOn("mastering", "Professional Mastering", 1000),
    AddOn("backup-vocals", "Backup Vocals Recording", 1200),
)

TIME_SLOTS = (
    "09:00 AM", "10:00 AM", "11:00 AM", "12:00 PM",
    "01:00 PM", "02:00 PM", "03:00 PM", "04:00 PM",
    "05:00 PM", "06:00 PM", "07:00 PM", "08:00 PM",
)

DURATION_OPTIONS = (1, 2, 3, 4, 6, 8)  # 8 = full day

DEFAULT_CATALOG = Catalog(
    services=SERVICES,
    add_ons=ADD_ONS,
    time_slots=TIME_SLOTS,
    durations=DURATION_OPTIONS,
)
