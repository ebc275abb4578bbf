"""
Change-stream interface for the Pet Moments tables.

The persistent store pushes row-level change events (insert, update, delete)
to subscribers of a table. ``LocalChangeStream`` is the in-process
implementation: ``SQLAlchemyFeedStore`` publishes to it after every committed
write, which is all a single portal process needs. A hosted realtime service
can be plugged in by implementing ``ChangeStream``.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

ALL_EVENTS = "*"
EVENT_TYPES = ("INSERT", "UPDATE", "DELETE")


@dataclass(frozen=True)
class ChangeEvent:
    """A committed row change."""

    event_type: str
    table: str
    new_row: Dict[str, Any] = field(default_factory=dict)
    old_row: Dict[str, Any] = field(default_factory=dict)


ChangeCallback = Callable[[ChangeEvent], None]


class Subscription:
    """Handle returned by ``ChangeStream.subscribe``."""

    def __init__(
        self,
        stream: "ChangeStream",
        table: str,
        callback: ChangeCallback,
        event: str = ALL_EVENTS,
    ):
        self.stream = stream
        self.table = table
        self.callback = callback
        self.event = event.upper() if event != ALL_EVENTS else event
        self.active = True

    def matches(self, change: ChangeEvent) -> bool:
        return (
            self.active
            and change.table == self.table
            and self.event in (ALL_EVENTS, change.event_type)
        )

    def unsubscribe(self) -> None:
        """Stop receiving events. Safe to call more than once."""
        if self.active:
            self.active = False
            self.stream.remove(self)

    def __repr__(self) -> str:
        return (
            f"<Subscription(table={self.table!r}, event={self.event!r}, "
            f"active={self.active})>"
        )


class ChangeStream(ABC):
    """Row change notifications per table."""

    @abstractmethod
    def subscribe(
        self, table: str, callback: ChangeCallback, event: str = ALL_EVENTS
    ) -> Subscription:
        """
        Register ``callback`` for changes to ``table``.

        Args:
            table: Table name, e.g. ``"pet_posts"``
            callback: Called with each ``ChangeEvent``; must not block
            event: ``"INSERT"``, ``"UPDATE"``, ``"DELETE"`` or ``"*"``
        """

    @abstractmethod
    def remove(self, subscription: Subscription) -> None:
        """Drop a subscription. Called by ``Subscription.unsubscribe``."""


class LocalChangeStream(ChangeStream):
    """In-process change stream."""

    def __init__(self) -> None:
        self._subscriptions: List[Subscription] = []

    def subscribe(
        self, table: str, callback: ChangeCallback, event: str = ALL_EVENTS
    ) -> Subscription:
        if event != ALL_EVENTS and event.upper() not in EVENT_TYPES:
            raise ValueError(f"Unknown change event type: {event}")
        subscription = Subscription(self, table, callback, event)
        self._subscriptions.append(subscription)
        logger.debug(f"Subscribed to {event} changes on {table}")
        return subscription

    def remove(self, subscription: Subscription) -> None:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            return
        logger.debug(f"Unsubscribed from changes on {subscription.table}")

    def publish(self, change: ChangeEvent) -> int:
        """
        Deliver ``change`` to matching subscribers.

        A failing callback is logged and does not stop delivery to the
        others; the write that produced the event has already committed.

        Returns:
            Number of subscribers the event was delivered to
        """
        delivered = 0
        for subscription in list(self._subscriptions):
            if not subscription.matches(change):
                continue
            try:
                subscription.callback(change)
                delivered += 1
            except Exception as e:
                logger.error(
                    f"Change subscriber for {change.table} failed: {e}",
                    extra={
                        "exception_data": {
                            "table": change.table,
                            "event_type": change.event_type,
                        }
                    },
                )
        return delivered

    def subscriber_count(self, table: Optional[str] = None) -> int:
        if table is None:
            return len(self._subscriptions)
        return sum(1 for s in self._subscriptions if s.table == table)
