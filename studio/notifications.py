"""User-facing notification channel (toasts).

Every success or failure outcome in the funnel is reported here.  Calls are
fire-and-forget: ``notify`` never blocks and never raises, and consumers
(a UI bridge, a WebSocket pusher, tests) read from their own
asyncio.Queue.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TypedDict

log = logging.getLogger("studio.notifications")

DEFAULT = "default"
DESTRUCTIVE = "destructive"


class Notification(TypedDict):
    title: str
    description: str
    variant: str       # default | destructive
    timestamp: float


class Notifier:
    """Broadcasts notifications to every subscriber queue."""

    def __init__(self, maxsize: int = 100) -> None:
        self._maxsize = maxsize
        self._subscribers: list[asyncio.Queue[Notification]] = []
        self._history: list[Notification] = []

    def subscribe(self) -> asyncio.Queue[Notification]:
        """Create a new subscriber queue and return it."""
        q: asyncio.Queue[Notification] = asyncio.Queue(maxsize=self._maxsize)
        self._subscribers.append(q)
        log.debug("Notification subscriber added (total: %d)", len(self._subscribers))
        return q

    def unsubscribe(self, q: asyncio.Queue[Notification]) -> None:
        try:
            self._subscribers.remove(q)
        except ValueError:
            pass
        log.debug("Notification subscriber removed (total: %d)", len(self._subscribers))

    def notify(self, title: str, description: str = "", variant: str = DEFAULT) -> None:
        note: Notification = {
            "title": title,
            "description": description,
            "variant": variant,
            "timestamp": time.time(),
        }
        self._history.append(note)
        if len(self._history) > self._maxsize:
            del self._history[0]
        if variant == DESTRUCTIVE:
            log.info("Notify [%s]: %s - %s", variant, title, description)
        else:
            log.debug("Notify [%s]: %s - %s", variant, title, description)

        for q in self._subscribers:
            try:
                q.put_nowait(note)
            except asyncio.QueueFull:
                # Drop oldest notification to make room
                try:
                    q.get_nowait()
                    q.put_nowait(note)
                except (asyncio.QueueEmpty, asyncio.QueueFull):
                    pass

    def success(self, title: str, description: str = "") -> None:
        self.notify(title, description, DEFAULT)

    def failure(self, title: str, description: str = "") -> None:
        self.notify(title, description, DESTRUCTIVE)

    @property
    def history(self) -> list[Notification]:
        return list(self._history)

    @property
    def last(self) -> Notification | None:
        return self._history[-1] if self._history else None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
