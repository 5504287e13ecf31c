# Overview: In-process change-event channel used by the entity store to notify subscribers after commit.

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Iterable

logger = logging.getLogger(__name__)

CHANGE_ADDED = "added"
CHANGE_MODIFIED = "modified"
CHANGE_REMOVED = "removed"


@dataclass(frozen=True)
class ChangeEvent:
    """
    One committed change to a record.

    data is the record snapshot after the change (before it, for removals).
    """
    collection: str
    entity_id: str
    change: str
    data: dict[str, Any] | None = None


class Subscription:
    def __init__(self, bus: "EventBus", collection: str, callback: Callable[[ChangeEvent], Any]):
        self._bus = bus
        self.collection = collection
        self.callback = callback
        self.active = True

    def deliver(self, event: ChangeEvent) -> None:
        if not self.active:
            return
        try:
            self.callback(event)
        except Exception:
            logger.exception(
                "Subscriber failed handling %s event for %s/%s",
                event.change, event.collection, event.entity_id,
            )

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._bus.remove(self)


class EventBus:
    """
    Per-collection fan-out of ChangeEvents.

    Delivery is synchronous and at-least-once: a subscriber that raises is
    logged and skipped, and the remaining subscribers still receive the event.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: dict[str, list[Subscription]] = defaultdict(list)

    def subscribe(self, collection: str, callback: Callable[[ChangeEvent], Any]) -> Subscription:
        subscription = Subscription(self, collection, callback)
        with self._lock:
            self._subscribers[collection].append(subscription)
        return subscription

    def remove(self, subscription: Subscription) -> None:
        with self._lock:
            subs = self._subscribers.get(subscription.collection, [])
            if subscription in subs:
                subs.remove(subscription)

    def subscriber_count(self, collection: str) -> int:
        with self._lock:
            return len(self._subscribers.get(collection, []))

    def publish(self, events: Iterable[ChangeEvent]) -> None:
        for event in events:
            with self._lock:
                targets = list(self._subscribers.get(event.collection, []))
            for subscription in targets:
                subscription.deliver(event)
