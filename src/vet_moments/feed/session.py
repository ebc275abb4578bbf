"""
Viewer session: the boundary between the UI and the feed core.

A ``MomentsSession`` wires the feed components for one viewer around a shared
``FeedState`` and exposes the operations the Pet Moments page calls.

Example:
    async with MomentsSession(owner_id, store, change_stream=stream) as moments:
        page = await moments.load()
        task = moments.toggle_reaction(page.posts[0].id)
        await task
"""

import asyncio
import logging
from typing import Any, Optional, Set, Union

from ..models import Post
from ..schemas.feed import FeedComment, FeedPage
from ..schemas.post import PostCreate, PostUpdate
from ..store.base import FeedStore
from ..store.changes import ChangeStream
from ..utils.config import MomentsSettings
from .assembly import FeedAssemblyService
from .dispatch import DetachedDispatcher
from .engagement import EngagementStore, ErrorCallback
from .notifications import NotificationFanout, NotificationSink
from .posts import MediaUploader, PostService
from .realtime import RealtimeInvalidationCoordinator
from .state import FeedState

logger = logging.getLogger(__name__)


class MomentsSession:
    """Feed, engagement, authoring and realtime refresh for one viewer."""

    def __init__(
        self,
        viewer_owner_id: int,
        store: FeedStore,
        settings: Optional[MomentsSettings] = None,
        uploader: Optional[MediaUploader] = None,
        change_stream: Optional[ChangeStream] = None,
        sink: Optional[NotificationSink] = None,
        on_error: Optional[ErrorCallback] = None,
        display_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ):
        """
        Args:
            viewer_owner_id: Owner id of the signed-in viewer
            store: Store client
            settings: Limits and timings
            uploader: Object store client for post media
            change_stream: Enables realtime refresh when given
            sink: External push transport for notifications
            on_error: Called when an engagement action is rolled back
            display_name: Shown on the viewer's placeholder comments
            avatar_url: Shown on the viewer's placeholder comments
        """
        self.viewer_owner_id = viewer_owner_id
        self.settings = settings or MomentsSettings()
        self.display_name = display_name
        self.avatar_url = avatar_url

        self.state = FeedState()
        self.following: Set[int] = set()
        self.dispatcher = DetachedDispatcher(f"moments-{viewer_owner_id}")
        self.fanout = NotificationFanout(store, self.dispatcher, sink)
        self.assembly = FeedAssemblyService(store, self.settings)
        self.engagement = EngagementStore(
            store, self.state, self.fanout, self.settings, on_error
        )
        self.posts = PostService(store, uploader, self.settings)
        self.realtime: Optional[RealtimeInvalidationCoordinator] = None
        if change_stream is not None:
            self.realtime = RealtimeInvalidationCoordinator(
                change_stream,
                self.refresh_first_page,
                debounce_seconds=self.settings.debounce_seconds,
            )

        self._following_only = False
        self._fetch_lock = asyncio.Lock()

    async def __aenter__(self) -> "MomentsSession":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def following_only(self) -> bool:
        """Show only the viewer's and followed owners' posts."""
        return self._following_only

    @following_only.setter
    def following_only(self, value: bool) -> None:
        # Takes effect on the next fetch; callers reload with reset=True.
        self._following_only = bool(value)

    async def load(self) -> FeedPage:
        """Load the following set, then the first page."""
        self.following = await self.posts.following_ids(self.viewer_owner_id)
        return await self.fetch_feed(0, reset=True)

    async def fetch_feed(
        self, offset: Optional[int] = None, reset: bool = False
    ) -> FeedPage:
        """
        Fetch a page and apply it to the feed.

        Pages are applied in the order fetches were issued. A failed fetch
        leaves the feed as it was.

        Args:
            offset: Candidate offset; defaults to where the last page ended
            reset: Replace the feed with this page instead of appending

        Raises:
            FeedAssemblyException: If the page cannot be assembled
        """
        async with self._fetch_lock:
            if reset:
                offset = 0
            elif offset is None:
                offset = self.state.next_offset

            page = await self.assembly.fetch_page(
                self.viewer_owner_id,
                offset=offset,
                page_size=self.settings.page_size,
                following_only=self._following_only,
                following=self.following,
            )

            if reset or offset == 0:
                self.state.replace(page.posts)
            else:
                self.state.extend(page.posts)
            self.state.next_offset = page.next_offset
            self.state.has_more = page.has_more
            return page

    async def refresh_first_page(self) -> None:
        """Reload the first page unless the viewer has scrolled past it."""
        if self.state.next_offset > self.settings.page_size:
            logger.debug("Viewer is past the first page, skipping refresh")
            return
        await self.fetch_feed(0, reset=True)

    def toggle_reaction(self, post_id: int) -> "asyncio.Task[None]":
        return self.engagement.toggle_reaction(post_id, self.viewer_owner_id)

    def add_comment(self, post_id: int, text: str) -> "asyncio.Task[FeedComment]":
        return self.engagement.add_comment(
            post_id,
            self.viewer_owner_id,
            text,
            display_name=self.display_name,
            avatar_url=self.avatar_url,
        )

    async def create_post(self, data: Union[PostCreate, dict]) -> int:
        """Publish a post, then reload the first page so it shows up."""
        post_id = await self.posts.create_post(self.viewer_owner_id, data)
        await self.fetch_feed(0, reset=True)
        return post_id

    async def edit_post(self, post_id: int, data: Union[PostUpdate, dict]) -> Post:
        updated = await self.posts.edit_post(post_id, self.viewer_owner_id, data)
        local = self.state.get(post_id)
        if local is not None:
            local.content = updated.content
            local.visibility = updated.visibility
        return updated

    async def delete_post(self, post_id: int) -> None:
        await self.posts.delete_post(post_id, self.viewer_owner_id)
        self.state.remove(post_id)

    async def follow_owner(self, target_owner_id: int) -> None:
        await self.posts.follow(self.viewer_owner_id, target_owner_id)
        self.following.add(target_owner_id)

    async def unfollow_owner(self, target_owner_id: int) -> None:
        await self.posts.unfollow(self.viewer_owner_id, target_owner_id)
        self.following.discard(target_owner_id)

    def start_realtime(self) -> None:
        if self.realtime is None:
            logger.warning("No change stream configured, realtime refresh disabled")
            return
        self.realtime.start()

    async def close(self) -> None:
        """Stop realtime refresh and wait for outstanding notifications."""
        if self.realtime is not None:
            self.realtime.stop()
        await self.dispatcher.drain()
