"""
Notification fan-out to post owners.

When a viewer reacts to or comments on someone else's post, the author gets a
notification row (read by the portal's notifications page) and, if a sink is
configured, a push through the external delivery transport. Fan-out is best
effort: it runs detached from the engagement action and its failures are only
logged.
"""

import logging
from typing import Any, Coroutine, Optional, Protocol, runtime_checkable

from ..exceptions import NotificationException
from ..models import Notification
from ..schemas.notification import NotificationCreate, NotificationKind
from ..store.base import FeedStore
from .dispatch import DetachedDispatcher

logger = logging.getLogger(__name__)


@runtime_checkable
class NotificationSink(Protocol):
    """External push transport. The feed calls it but does not implement it."""

    async def deliver(self, notification: NotificationCreate) -> None: ...


class NotificationFanout:
    """Writes owner notifications for engagement on their posts."""

    def __init__(
        self,
        store: FeedStore,
        dispatcher: Optional[DetachedDispatcher] = None,
        sink: Optional[NotificationSink] = None,
    ):
        self.store = store
        self.dispatcher = dispatcher or DetachedDispatcher("notifications")
        self.sink = sink

    async def notify(
        self,
        target_owner_id: int,
        kind: NotificationKind,
        acting_owner_id: Optional[int] = None,
        summary: Optional[str] = None,
    ) -> Optional[Notification]:
        """
        Notify ``target_owner_id`` of an engagement event.

        Args:
            target_owner_id: Author of the post
            kind: Reaction or comment
            acting_owner_id: Owner who acted; no notification to oneself
            summary: Optional message overriding the default text

        Returns:
            The written notification, or ``None`` when nothing was sent

        Raises:
            NotificationException: If the owner lookup or the write fails
        """
        if acting_owner_id is not None and acting_owner_id == target_owner_id:
            return None

        try:
            user_id = await self.store.get_owner_user_id(target_owner_id)
            if not user_id:
                logger.debug(
                    f"Owner {target_owner_id} has no user id, skipping {kind.value} notification"
                )
                return None

            notification = NotificationCreate.for_kind(user_id, kind, summary)
            row = await self.store.insert_notification(notification)
            if self.sink is not None:
                await self.sink.deliver(notification)
        except NotificationException:
            raise
        except Exception as e:
            raise NotificationException(
                f"Failed to notify owner {target_owner_id}",
                operation=f"notify_{kind.value}",
                original_error=e,
            ) from e

        logger.info(f"Sent {kind.value} notification to owner {target_owner_id}")
        return row

    def dispatch(
        self,
        target_owner_id: int,
        kind: NotificationKind,
        acting_owner_id: Optional[int] = None,
        summary: Optional[str] = None,
    ) -> Any:
        """Run ``notify`` detached; errors are logged and never retried."""
        coro: Coroutine[Any, Any, Any] = self.notify(
            target_owner_id, kind, acting_owner_id=acting_owner_id, summary=summary
        )
        return self.dispatcher.dispatch(coro, label=f"notify-{kind.value}")
