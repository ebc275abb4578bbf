"""
Debounced feed refresh driven by the change stream.

Bursts of post, reaction and comment changes collapse into one refresh per
debounce window. The coordinator's only state is the pending refresh task.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from ..models import Post, PostComment, PostReaction
from ..store.changes import ALL_EVENTS, ChangeEvent, ChangeStream, Subscription

logger = logging.getLogger(__name__)

WATCHED_TABLES = (
    Post.__tablename__,
    PostReaction.__tablename__,
    PostComment.__tablename__,
)

RefreshCallback = Callable[[], Awaitable[Any]]


class RealtimeInvalidationCoordinator:
    """Schedules at most one pending refresh at a time."""

    def __init__(
        self,
        change_stream: ChangeStream,
        refresh: RefreshCallback,
        debounce_seconds: float = 0.5,
        tables: Sequence[str] = WATCHED_TABLES,
    ):
        """
        Args:
            change_stream: Stream to subscribe to
            refresh: Coroutine function reloading the first feed page
            debounce_seconds: Delay between the first event and the refresh
            tables: Tables to watch, one subscription each
        """
        self.change_stream = change_stream
        self.refresh = refresh
        self.debounce_seconds = debounce_seconds
        self.tables = tuple(tables)
        self._subscriptions: List[Subscription] = []
        self._pending: Optional["asyncio.Task[None]"] = None
        self.refresh_count = 0

    @property
    def is_running(self) -> bool:
        return bool(self._subscriptions)

    @property
    def refresh_pending(self) -> bool:
        return self._pending is not None

    def start(self) -> None:
        if self._subscriptions:
            return
        for table in self.tables:
            self._subscriptions.append(
                self.change_stream.subscribe(table, self.handle_event, ALL_EVENTS)
            )
        logger.info(f"Realtime refresh watching {', '.join(self.tables)}")

    def stop(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        logger.info("Realtime refresh stopped")

    def handle_event(self, event: ChangeEvent) -> None:
        """Change-stream callback. Events during a pending window are coalesced."""
        if self._pending is not None:
            return
        logger.debug(f"{event.event_type} on {event.table}, refresh scheduled")
        self._pending = asyncio.get_running_loop().create_task(self._refresh_later())

    async def _refresh_later(self) -> None:
        try:
            await asyncio.sleep(self.debounce_seconds)
            self.refresh_count += 1
            await self.refresh()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Realtime feed refresh failed: {e}")
        finally:
            if self._pending is asyncio.current_task():
                self._pending = None

    async def wait_idle(self) -> None:
        """Wait for the pending refresh, if any."""
        pending = self._pending
        if pending is not None:
            await asyncio.gather(pending, return_exceptions=True)
