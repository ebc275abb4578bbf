"""
Optimistic engagement actions on the viewer's feed.

Reactions and comments change the in-memory feed before the store call is
made; the call itself runs as an ``asyncio.Task`` returned to the caller. On
failure the local change is undone and the task raises
``EngagementException``. On success the post author is notified, detached.
"""

import asyncio
import itertools
import logging
from typing import Any, Callable, Dict, Optional, Tuple

from ..exceptions import EngagementException
from ..schemas.feed import AssembledPost, FeedComment
from ..schemas.notification import NotificationKind
from ..schemas.post import CommentCreate, parse_with_settings
from ..store.base import FeedStore
from ..utils.config import MomentsSettings
from ..utils.datetime_utils import ensure_utc, get_current_utc
from .notifications import NotificationFanout
from .state import FeedState

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[EngagementException], Any]


def _retrieve_exception(task: "asyncio.Task[Any]") -> None:
    # Failures are already logged and reported through on_error.
    if not task.cancelled():
        task.exception()


class EngagementStore:
    """
    Reaction and comment actions for one viewer's feed.

    Reaction calls for one post run in click order. Each toggle flips the
    local flag at once; a failed call restores the last state the store
    confirmed, unless a later toggle for the same post is still queued.
    Comments are not deduplicated.
    """

    def __init__(
        self,
        store: FeedStore,
        state: FeedState,
        fanout: Optional[NotificationFanout] = None,
        settings: Optional[MomentsSettings] = None,
        on_error: Optional[ErrorCallback] = None,
    ):
        """
        Args:
            store: Store client
            state: The viewer's feed, mutated in place
            fanout: Notification fan-out; no notifications when omitted
            settings: Limits (comment length, fallback owner name)
            on_error: Called with the exception when an action is rolled back
        """
        self.store = store
        self.state = state
        self.fanout = fanout
        self.settings = settings or MomentsSettings()
        self.on_error = on_error
        self._reaction_tasks: Dict[int, "asyncio.Task[None]"] = {}
        self._confirmed: Dict[int, Tuple[bool, int]] = {}
        self._placeholder_ids = itertools.count(-1, -1)

    def reaction_in_flight(self, post_id: int) -> bool:
        task = self._reaction_tasks.get(post_id)
        return task is not None and not task.done()

    def toggle_reaction(
        self, post_id: int, viewer_owner_id: int
    ) -> "asyncio.Task[None]":
        """
        Like or unlike a post.

        The flag and count change before this returns. Awaiting the returned
        task raises ``EngagementException`` if the store rejected the change.
        A toggle made while an earlier one is in flight waits for it before
        calling the store, so the stored state ends on the last click.

        Raises:
            EngagementException: If the post is not in the feed
        """
        post = self.state.require(post_id)

        previous = self._reaction_tasks.get(post_id)
        if previous is not None and previous.done():
            previous = None
        if previous is None:
            self._confirmed[post_id] = (post.reacted_by_me, post.reactions_count)
        else:
            logger.debug(f"Queueing reaction on post {post_id} behind pending call")

        reacted = not post.reacted_by_me
        post.reacted_by_me = reacted
        post.reactions_count = max(0, post.reactions_count + (1 if reacted else -1))

        task = asyncio.get_running_loop().create_task(
            self._commit_reaction(
                post, viewer_owner_id, reacted, post.reactions_count, previous
            )
        )
        self._reaction_tasks[post_id] = task
        task.add_done_callback(lambda t: self._forget_reaction(post_id, t))
        task.add_done_callback(_retrieve_exception)
        return task

    def _forget_reaction(self, post_id: int, task: "asyncio.Task[None]") -> None:
        if self._reaction_tasks.get(post_id) is task:
            del self._reaction_tasks[post_id]
            self._confirmed.pop(post_id, None)

    async def _commit_reaction(
        self,
        post: AssembledPost,
        viewer_owner_id: int,
        reacted: bool,
        count: int,
        previous: Optional["asyncio.Task[None]"],
    ) -> None:
        if previous is not None:
            # The earlier call reports its own failure.
            await asyncio.gather(previous, return_exceptions=True)

        try:
            if reacted:
                await self.store.upsert_reaction(post.id, viewer_owner_id)
            else:
                await self.store.delete_reaction(post.id, viewer_owner_id)
        except Exception as e:
            # A later toggle decides the final state; a refresh may have
            # swapped in a newer copy, which is left alone.
            latest = self._reaction_tasks.get(post.id) is asyncio.current_task()
            if latest and self.state.get(post.id) is post:
                post.reacted_by_me, post.reactions_count = self._confirmed[post.id]
            raise self._fail(
                "Could not update your reaction", post.id, "toggle_reaction", e
            ) from e

        self._confirmed[post.id] = (reacted, count)
        if reacted and post.pet_owner_id != viewer_owner_id:
            self._notify(post, viewer_owner_id, NotificationKind.REACTION)

    def add_comment(
        self,
        post_id: int,
        viewer_owner_id: int,
        text: str,
        display_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> "asyncio.Task[FeedComment]":
        """
        Append a comment to a post.

        A placeholder comment with a negative id is shown until the store
        confirms; it then takes the stored id and timestamp.

        Raises:
            SchemaValidationException: If the text is blank or too long
            EngagementException: If the post is not in the feed
        """
        payload = parse_with_settings(CommentCreate, {"content": text}, self.settings)
        post = self.state.require(post_id)

        placeholder = FeedComment(
            id=next(self._placeholder_ids),
            pet_owner_id=viewer_owner_id,
            content=payload.content,
            created_at=get_current_utc(),
            owner_name=display_name or self.settings.fallback_owner_name,
            owner_avatar=avatar_url,
        )
        post.comments.append(placeholder)
        post.comments_count += 1

        task = asyncio.get_running_loop().create_task(
            self._commit_comment(post, viewer_owner_id, placeholder)
        )
        task.add_done_callback(_retrieve_exception)
        return task

    async def _commit_comment(
        self, post: AssembledPost, viewer_owner_id: int, placeholder: FeedComment
    ) -> FeedComment:
        try:
            row = await self.store.insert_comment(
                post.id, viewer_owner_id, placeholder.content
            )
        except Exception as e:
            if any(c is placeholder for c in post.comments):
                post.comments = [c for c in post.comments if c is not placeholder]
                post.comments_count = max(0, post.comments_count - 1)
            raise self._fail(
                "Could not post your comment", post.id, "add_comment", e
            ) from e

        placeholder.id = row.id
        placeholder.created_at = ensure_utc(row.created_at)

        if post.pet_owner_id != viewer_owner_id:
            self._notify(post, viewer_owner_id, NotificationKind.COMMENT)
        return placeholder

    def _notify(
        self, post: AssembledPost, viewer_owner_id: int, kind: NotificationKind
    ) -> None:
        if self.fanout is None:
            return
        self.fanout.dispatch(
            post.pet_owner_id, kind, acting_owner_id=viewer_owner_id
        )

    def _fail(
        self, message: str, post_id: int, operation: str, error: Exception
    ) -> EngagementException:
        exception = EngagementException(
            message, post_id=post_id, operation=operation, original_error=error
        )
        exception.log_error(logger)
        if self.on_error is not None:
            try:
                self.on_error(exception)
            except Exception as callback_error:
                logger.warning(f"Engagement error callback failed: {callback_error}")
        return exception
