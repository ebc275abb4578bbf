"""
Tests for notification fan-out.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from vet_moments.exceptions import NotificationException, TransactionException
from vet_moments.feed.dispatch import DetachedDispatcher
from vet_moments.feed.notifications import NotificationFanout, NotificationSink
from vet_moments.schemas import NotificationKind

from .conftest import OwnerFactory, RecordingSink


class TestNotificationFanout:
    """Test cases for NotificationFanout."""

    @pytest.mark.asyncio
    async def test_notify_writes_row_and_delivers(self, feed_store, owners):
        author, follower, _ = owners
        sink = RecordingSink()
        fanout = NotificationFanout(feed_store, sink=sink)

        row = await fanout.notify(
            author.id, NotificationKind.COMMENT, acting_owner_id=follower.id
        )

        assert row.user_id == author.user_id
        assert row.title == "New comment"
        assert row.message == "Someone commented on your post"
        assert sink.delivered[0].user_id == author.user_id

    @pytest.mark.asyncio
    async def test_no_self_notification(self, feed_store, owners):
        author = owners[0]
        store = Mock(wraps=feed_store)
        store.insert_notification = AsyncMock()
        fanout = NotificationFanout(store)

        result = await fanout.notify(
            author.id, NotificationKind.REACTION, acting_owner_id=author.id
        )

        assert result is None
        store.insert_notification.assert_not_called()

    @pytest.mark.asyncio
    async def test_owner_without_user_id_skipped(
        self, feed_store, test_session_manager
    ):
        owner = await OwnerFactory.create(test_session_manager, user_id=None)
        fanout = NotificationFanout(feed_store)

        assert await fanout.notify(owner.id, NotificationKind.REACTION) is None

    @pytest.mark.asyncio
    async def test_store_failure_wrapped(self):
        store = Mock()
        store.get_owner_user_id = AsyncMock(return_value="user_1")
        store.insert_notification = AsyncMock(
            side_effect=TransactionException("Database transaction failed")
        )
        fanout = NotificationFanout(store)

        with pytest.raises(NotificationException) as exc_info:
            await fanout.notify(1, NotificationKind.REACTION, acting_owner_id=2)

        assert exc_info.value.operation == "notify_reaction"

    @pytest.mark.asyncio
    async def test_dispatch_swallows_failures(self, caplog):
        store = Mock()
        store.get_owner_user_id = AsyncMock(side_effect=RuntimeError("db down"))
        dispatcher = DetachedDispatcher("notifications")
        fanout = NotificationFanout(store, dispatcher=dispatcher)

        task = fanout.dispatch(1, NotificationKind.COMMENT, acting_owner_id=2)
        await dispatcher.drain()

        assert task.done()
        assert "Failed to notify owner 1" in caplog.text

    @pytest.mark.asyncio
    async def test_summary_overrides_message(self, feed_store, owners):
        author, follower, _ = owners
        fanout = NotificationFanout(feed_store)

        row = await fanout.notify(
            author.id,
            NotificationKind.COMMENT,
            acting_owner_id=follower.id,
            summary="Victor: adorable",
        )

        assert row.message == "Victor: adorable"

    def test_recording_sink_satisfies_protocol(self):
        assert isinstance(RecordingSink(), NotificationSink)
