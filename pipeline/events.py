"""
Event bus - fan out pipeline events to subscribers.

Subscribers are plain callables. A failing subscriber is logged and
skipped; it never fails the submission that produced the event.
"""

import threading
from typing import Callable, Union

from models import ContributionValidated, AchievementUnlocked

Event = Union[ContributionValidated, AchievementUnlocked]


class EventBus:
    """In-process, synchronous, at-least-once publisher."""

    def __init__(self):
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[Event], None]] = []

    def subscribe(self, callback: Callable[[Event], None]) -> None:
        """Add callback for events."""
        with self._lock:
            self._callbacks.append(callback)

    def unsubscribe(self, callback: Callable[[Event], None]) -> None:
        """Remove callback."""
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def publish(self, event: Event) -> None:
        """Deliver to every subscriber."""
        with self._lock:
            callbacks = list(self._callbacks)
        for cb in callbacks:
            try:
                cb(event)
            except Exception as e:
                print(f"[Events] Subscriber error on {event.event_id}: {e}")


class EventLog:
    """
    Subscriber that keeps delivered events, deduplicated by event id.

    What a downstream consumer is expected to do with at-least-once delivery.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._seen: set[str] = set()
        self.events: list[Event] = []
        self.deliveries = 0

    def __call__(self, event: Event) -> None:
        with self._lock:
            self.deliveries += 1
            if event.event_id in self._seen:
                return
            self._seen.add(event.event_id)
            self.events.append(event)

    def of_kind(self, kind: str) -> list[Event]:
        with self._lock:
            return [e for e in self.events if e.kind == kind]
