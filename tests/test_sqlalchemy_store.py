"""
Tests for the SQLAlchemy feed store against SQLite.
"""

from unittest.mock import AsyncMock, Mock

import pytest
from sqlalchemy.exc import OperationalError

from vet_moments.exceptions import DatabaseException, TransactionException
from vet_moments.models import MediaType, PostVisibility
from vet_moments.schemas import NotificationCreate, NotificationKind
from vet_moments.store import SQLAlchemyFeedStore

from .conftest import PatientFactory, PostFactory


@pytest.fixture
def events(change_stream):
    """Every change published by the store, in order."""
    received = []
    for table in (
        "pet_posts",
        "pet_post_media",
        "pet_post_reactions",
        "pet_post_comments",
        "notifications",
    ):
        change_stream.subscribe(table, received.append)
    return received


class TestPostReads:
    """Test cases for post and join-table reads."""

    @pytest.mark.asyncio
    async def test_fetch_posts_newest_first(self, feed_store, owners):
        author = owners[0]
        first = await PostFactory.create(feed_store, author.id, "first")
        second = await PostFactory.create(feed_store, author.id, "second")
        third = await PostFactory.create(feed_store, author.id, "third")

        posts = await feed_store.fetch_posts(0, 10)

        assert [p.id for p in posts] == [third.id, second.id, first.id]

    @pytest.mark.asyncio
    async def test_fetch_posts_offset_and_limit(self, feed_store, owners):
        author = owners[0]
        created = [
            await PostFactory.create(feed_store, author.id, f"post {i}")
            for i in range(5)
        ]

        page = await feed_store.fetch_posts(2, 2)

        assert [p.id for p in page] == [created[2].id, created[1].id]

    @pytest.mark.asyncio
    async def test_fetch_posts_by_owner(self, feed_store, owners):
        author, follower, _ = owners
        await PostFactory.create(feed_store, author.id, "by author")
        mine = await PostFactory.create(feed_store, follower.id, "by follower")

        posts = await feed_store.fetch_posts(0, 10, owner_ids=[follower.id])

        assert [p.id for p in posts] == [mine.id]
        assert await feed_store.fetch_posts(0, 10, owner_ids=[]) == []

    @pytest.mark.asyncio
    async def test_empty_id_lists_skip_queries(self, test_session_manager):
        store = SQLAlchemyFeedStore(test_session_manager)
        test_session_manager.execute_in_transaction = AsyncMock()

        assert await store.fetch_media([]) == []
        assert await store.reaction_counts([]) == {}
        assert await store.comment_counts([]) == {}
        assert await store.reacted_post_ids([], 1) == set()
        assert await store.fetch_recent_comments([], 10) == []
        assert await store.fetch_owners([]) == {}
        assert await store.fetch_patients([]) == {}
        test_session_manager.execute_in_transaction.assert_not_called()

    @pytest.mark.asyncio
    async def test_counts_and_reacted(self, feed_store, owners):
        author, follower, stranger = owners
        post = await PostFactory.create(feed_store, author.id)
        quiet = await PostFactory.create(feed_store, author.id)
        await feed_store.upsert_reaction(post.id, follower.id)
        await feed_store.upsert_reaction(post.id, stranger.id)
        await feed_store.insert_comment(post.id, follower.id, "lovely")

        ids = [post.id, quiet.id]

        assert await feed_store.reaction_counts(ids) == {post.id: 2}
        assert await feed_store.comment_counts(ids) == {post.id: 1}
        assert await feed_store.reacted_post_ids(ids, follower.id) == {post.id}
        assert await feed_store.reacted_post_ids(ids, author.id) == set()

    @pytest.mark.asyncio
    async def test_recent_comments_newest_first_with_limit(self, feed_store, owners):
        author, follower, _ = owners
        post = await PostFactory.create(feed_store, author.id)
        for i in range(4):
            await feed_store.insert_comment(post.id, follower.id, f"comment {i}")

        comments = await feed_store.fetch_recent_comments([post.id], limit=3)

        assert [c.content for c in comments] == ["comment 3", "comment 2", "comment 1"]

    @pytest.mark.asyncio
    async def test_owner_and_patient_lookups(
        self, feed_store, test_session_manager, owners
    ):
        author, follower, _ = owners
        pet = await PatientFactory.create(test_session_manager, author.id, name="Rex")

        found = await feed_store.fetch_owners([author.id, follower.id, 9999])
        patients = await feed_store.fetch_patients([pet.id])

        assert set(found) == {author.id, follower.id}
        assert found[author.id].full_name == "Alice Author"
        assert patients[pet.id].name == "Rex"
        assert await feed_store.get_owner_user_id(author.id) == author.user_id
        assert await feed_store.get_owner_user_id(9999) is None


class TestPostWrites:
    """Test cases for post writes and their change events."""

    @pytest.mark.asyncio
    async def test_insert_post_publishes(self, feed_store, owners, events):
        author = owners[0]

        post = await feed_store.insert_post(
            author.id, "hello", PostVisibility.PRIVATE, media_count=2
        )

        assert post.id is not None
        assert post.media_count == 2
        assert events[-1].event_type == "INSERT"
        assert events[-1].table == "pet_posts"
        assert events[-1].new_row["visibility"] == "private"

    @pytest.mark.asyncio
    async def test_insert_post_accepts_string_visibility(self, feed_store, owners):
        post = await feed_store.insert_post(owners[0].id, "hello", "public")

        assert post.visibility == PostVisibility.PUBLIC

    @pytest.mark.asyncio
    async def test_insert_media(self, feed_store, owners, events):
        post = await PostFactory.create(feed_store, owners[0].id, media_count=1)

        media = await feed_store.insert_media(post.id, "https://cdn/a.mp4", "video")

        assert media.media_type == MediaType.VIDEO
        assert [m.id for m in await feed_store.fetch_media([post.id])] == [media.id]
        assert events[-1].table == "pet_post_media"

    @pytest.mark.asyncio
    async def test_update_post(self, feed_store, owners, events):
        post = await PostFactory.create(feed_store, owners[0].id, "before")

        updated = await feed_store.update_post(
            post.id, {"content": "after", "visibility": "private"}
        )

        assert updated.content == "after"
        assert updated.visibility == PostVisibility.PRIVATE
        assert events[-1].event_type == "UPDATE"
        assert events[-1].old_row["content"] == "before"
        assert events[-1].new_row["content"] == "after"

    @pytest.mark.asyncio
    async def test_update_missing_post(self, feed_store):
        assert await feed_store.update_post(9999, {"content": "x"}) is None

    @pytest.mark.asyncio
    async def test_delete_post_cascades(self, feed_store, owners, events):
        author, follower, _ = owners
        post = await PostFactory.create(feed_store, author.id, media_count=1)
        await feed_store.insert_media(post.id, "https://cdn/a.jpg", "image")
        await feed_store.upsert_reaction(post.id, follower.id)
        await feed_store.insert_comment(post.id, follower.id, "nice")

        assert await feed_store.delete_post(post.id) is True

        assert await feed_store.get_post(post.id) is None
        assert await feed_store.fetch_media([post.id]) == []
        assert await feed_store.reaction_counts([post.id]) == {}
        assert await feed_store.comment_counts([post.id]) == {}
        assert events[-1].event_type == "DELETE"
        assert events[-1].old_row["id"] == post.id

    @pytest.mark.asyncio
    async def test_delete_missing_post(self, feed_store):
        assert await feed_store.delete_post(9999) is False


class TestReactions:
    """Test cases for reaction upsert and delete."""

    @pytest.mark.asyncio
    async def test_upsert_is_idempotent(self, feed_store, owners, events):
        author, follower, _ = owners
        post = await PostFactory.create(feed_store, author.id)

        await feed_store.upsert_reaction(post.id, follower.id)
        await feed_store.upsert_reaction(post.id, follower.id)

        assert await feed_store.reaction_counts([post.id]) == {post.id: 1}
        reaction_events = [e for e in events if e.table == "pet_post_reactions"]
        assert len(reaction_events) == 2
        assert reaction_events[0].new_row["reaction"] == "like"

    @pytest.mark.asyncio
    async def test_delete_reaction(self, feed_store, owners, events):
        author, follower, _ = owners
        post = await PostFactory.create(feed_store, author.id)
        await feed_store.upsert_reaction(post.id, follower.id)

        await feed_store.delete_reaction(post.id, follower.id)
        await feed_store.delete_reaction(post.id, follower.id)

        assert await feed_store.reaction_counts([post.id]) == {}
        deletes = [e for e in events if e.event_type == "DELETE"]
        assert len(deletes) == 1

    @pytest.mark.asyncio
    async def test_reaction_on_missing_post_fails(self, feed_store, owners):
        with pytest.raises(DatabaseException):
            await feed_store.upsert_reaction(9999, owners[1].id)


class TestFollowsAndNotifications:
    """Test cases for the follow graph and notification writes."""

    @pytest.mark.asyncio
    async def test_follow_and_unfollow(self, feed_store, owners):
        author, follower, stranger = owners

        await feed_store.insert_follow(follower.id, author.id)
        await feed_store.insert_follow(follower.id, author.id)
        await feed_store.insert_follow(follower.id, stranger.id)

        assert await feed_store.fetch_following(follower.id) == {author.id, stranger.id}

        await feed_store.delete_follow(follower.id, stranger.id)
        await feed_store.delete_follow(follower.id, stranger.id)

        assert await feed_store.fetch_following(follower.id) == {author.id}
        assert await feed_store.fetch_following(author.id) == set()

    @pytest.mark.asyncio
    async def test_insert_notification(self, feed_store, owners, events):
        notification = NotificationCreate.for_kind(
            owners[0].user_id, NotificationKind.COMMENT
        )

        row = await feed_store.insert_notification(notification)

        assert row.id is not None
        assert row.is_read is False
        assert row.notification_type == "moment"
        assert events[-1].table == "notifications"


class TestStoreErrors:
    """Error propagation from the session manager."""

    @pytest.mark.asyncio
    async def test_transaction_errors_pass_through(self):
        manager = Mock()
        manager.engine.dialect.name = "sqlite"
        manager.execute_in_transaction = AsyncMock(
            side_effect=TransactionException("Database transaction failed")
        )
        store = SQLAlchemyFeedStore(manager)

        with pytest.raises(TransactionException):
            await store.fetch_posts(0, 10)

    @pytest.mark.asyncio
    async def test_commit_errors_wrapped(self):
        manager = Mock()
        manager.engine.dialect.name = "sqlite"
        manager.execute_in_transaction = AsyncMock(
            side_effect=OperationalError("COMMIT", {}, Exception("disk I/O error"))
        )
        store = SQLAlchemyFeedStore(manager)

        with pytest.raises(DatabaseException) as exc_info:
            await store.get_post(1)

        assert exc_info.value.details["operation"] == "get_post"
        assert isinstance(exc_info.value.original_error, OperationalError)

    def test_unsupported_dialect(self):
        manager = Mock()
        manager.engine.dialect.name = "mysql"
        store = SQLAlchemyFeedStore(manager)

        with pytest.raises(DatabaseException, match="not supported"):
            store._insert(object)
