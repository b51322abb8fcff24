"""
Realtime Change Feed

In-process publish/subscribe hub for row changes. Routes publish an
event after every committed INSERT/UPDATE/DELETE on ``orders`` and
``menu_items``; WebSocket handlers subscribe with a filter (table,
owner, record, event types) and forward matching events to clients,
which re-fetch on notification.

Each subscriber owns a bounded asyncio queue. A subscriber that stops
draining its queue loses events rather than blocking publishers.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass
class ChangeEvent:
    """One committed row change."""
    table: str
    event: ChangeType
    record_id: str
    owner_id: str
    new: Optional[dict[str, Any]] = None
    old: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "event": self.event.value,
            "record_id": self.record_id,
            "owner_id": self.owner_id,
            "new": self.new,
            "old": self.old,
        }


@dataclass(eq=False)
class Subscription:
    table: str
    events: frozenset[ChangeType]
    owner_id: Optional[str] = None
    record_id: Optional[str] = None
    queue: asyncio.Queue = field(default_factory=lambda: asyncio.Queue(maxsize=100))

    def matches(self, change: ChangeEvent) -> bool:
        if change.table != self.table or change.event not in self.events:
            return False
        if self.owner_id is not None and change.owner_id != self.owner_id:
            return False
        if self.record_id is not None and change.record_id != self.record_id:
            return False
        return True


class ChangeFeed:
    """Fan-out of change events to filtered subscribers."""

    def __init__(self):
        self._subscriptions: set[Subscription] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(
        self,
        table: str,
        events: Optional[Iterable[ChangeType]] = None,
        owner_id: Optional[str] = None,
        record_id: Optional[str] = None,
    ) -> Subscription:
        subscription = Subscription(
            table=table,
            events=frozenset(events or ChangeType),
            owner_id=owner_id,
            record_id=record_id,
        )
        self._subscriptions.add(subscription)
        logger.debug(f"Subscribed to {table} ({self.subscriber_count} active)")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self._subscriptions.discard(subscription)
        logger.debug(f"Unsubscribed from {subscription.table} ({self.subscriber_count} active)")

    def publish(self, change: ChangeEvent) -> int:
        """Queue ``change`` for every matching subscriber; returns how many."""
        delivered = 0
        for subscription in list(self._subscriptions):
            if not subscription.matches(change):
                continue
            try:
                subscription.queue.put_nowait(change)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(
                    f"Subscriber queue full, dropping {change.event.value} "
                    f"on {change.table} {change.record_id}"
                )
        return delivered


@lru_cache()
def get_change_feed() -> ChangeFeed:
    return ChangeFeed()
