"""
Tests for feed page assembly.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from vet_moments.exceptions import FeedAssemblyException, TransactionException
from vet_moments.feed.assembly import FeedAssemblyService
from vet_moments.models import PostVisibility
from vet_moments.utils.config import MomentsSettings

from .conftest import OwnerFactory, PatientFactory, PostFactory


@pytest.fixture
def assembly(feed_store, settings):
    return FeedAssemblyService(feed_store, settings)


class TestVisibilityInPages:
    """Visibility is applied to every fetched page."""

    @pytest.mark.asyncio
    async def test_owners_only_post_for_follower_and_stranger(
        self, assembly, feed_store, owners
    ):
        author, follower, stranger = owners
        await feed_store.insert_follow(follower.id, author.id)
        post = await PostFactory.create(
            feed_store, author.id, "for my followers", PostVisibility.OWNERS_ONLY
        )

        follower_page = await assembly.fetch_page(follower.id, 0, 20)
        stranger_page = await assembly.fetch_page(stranger.id, 0, 20)

        assert [p.id for p in follower_page.posts] == [post.id]
        assert stranger_page.posts == []

    @pytest.mark.asyncio
    async def test_private_post_only_for_author(self, assembly, feed_store, owners):
        author, follower, _ = owners
        await feed_store.insert_follow(follower.id, author.id)
        post = await PostFactory.create(
            feed_store, author.id, "diary", PostVisibility.PRIVATE
        )

        assert [p.id for p in (await assembly.fetch_page(author.id)).posts] == [post.id]
        assert (await assembly.fetch_page(follower.id)).posts == []

    @pytest.mark.asyncio
    async def test_filtered_rows_still_advance_offset(
        self, assembly, feed_store, owners
    ):
        """Hidden rows are consumed, so the page may be short while more remain."""
        author, _, stranger = owners
        for i in range(3):
            await PostFactory.create(
                feed_store, author.id, f"hidden {i}", PostVisibility.PRIVATE
            )
        visible = await PostFactory.create(feed_store, author.id, "public")

        page = await assembly.fetch_page(stranger.id, 0, 2)

        assert [p.id for p in page.posts] == [visible.id]
        assert page.next_offset == 2
        assert page.has_more is True

        page = await assembly.fetch_page(stranger.id, page.next_offset, 2)

        assert page.posts == []
        assert page.next_offset == 4
        assert page.has_more is True

        page = await assembly.fetch_page(stranger.id, page.next_offset, 2)

        assert page.next_offset == 4
        assert page.has_more is False

    @pytest.mark.asyncio
    async def test_following_only(self, assembly, feed_store, owners):
        author, follower, stranger = owners
        await feed_store.insert_follow(follower.id, author.id)
        followed = await PostFactory.create(feed_store, author.id, "followed")
        own = await PostFactory.create(feed_store, follower.id, "own")
        await PostFactory.create(feed_store, stranger.id, "public stranger")

        page = await assembly.fetch_page(follower.id, following_only=True)

        assert [p.id for p in page.posts] == [own.id, followed.id]

    @pytest.mark.asyncio
    async def test_uses_supplied_following_set(self, feed_store, owners, settings):
        author, follower, _ = owners
        await PostFactory.create(
            feed_store, author.id, "followers", PostVisibility.OWNERS_ONLY
        )
        store = Mock(wraps=feed_store)
        store.fetch_following = AsyncMock()
        service = FeedAssemblyService(store, settings)

        page = await service.fetch_page(follower.id, following={author.id})

        assert len(page.posts) == 1
        store.fetch_following.assert_not_called()


class TestAssembledPosts:
    """Joined fields of assembled posts."""

    @pytest.mark.asyncio
    async def test_joins_media_counts_names_and_patient(
        self, assembly, feed_store, test_session_manager, owners
    ):
        author, follower, stranger = owners
        pet = await PatientFactory.create(
            test_session_manager, author.id, name="Biscuit"
        )
        post = await PostFactory.create(
            feed_store, author.id, "Hello", patient_id=pet.id, media_count=2
        )
        await feed_store.insert_media(post.id, "https://cdn/1.jpg", "image")
        await feed_store.insert_media(post.id, "https://cdn/2.mp4", "video")
        await feed_store.upsert_reaction(post.id, follower.id)
        await feed_store.upsert_reaction(post.id, stranger.id)
        await feed_store.insert_comment(post.id, stranger.id, "cute")

        page = await assembly.fetch_page(follower.id)
        item = page.posts[0]

        assert item.owner_name == "Alice Author"
        assert item.patient_name == "Biscuit"
        assert item.media_count == 2
        assert [m.media_type for m in item.media] == ["image", "video"]
        assert item.reactions_count == 2
        assert item.reacted_by_me is True
        assert item.comments_count == 1
        assert item.comments[0].content == "cute"
        assert item.comments[0].owner_name == "Owner"

    @pytest.mark.asyncio
    async def test_not_reacted_by_other_viewer(self, assembly, feed_store, owners):
        author, follower, stranger = owners
        post = await PostFactory.create(feed_store, author.id)
        await feed_store.upsert_reaction(post.id, follower.id)

        page = await assembly.fetch_page(stranger.id)

        assert page.posts[0].reactions_count == 1
        assert page.posts[0].reacted_by_me is False

    @pytest.mark.asyncio
    async def test_recent_comments_capped_and_oldest_first(
        self, feed_store, owners
    ):
        author, follower, _ = owners
        post = await PostFactory.create(feed_store, author.id)
        for i in range(5):
            await feed_store.insert_comment(post.id, follower.id, f"comment {i}")
        service = FeedAssemblyService(feed_store, MomentsSettings(comments_per_post=3))

        item = (await service.fetch_page(author.id)).posts[0]

        assert item.comments_count == 5
        assert [c.content for c in item.comments] == [
            "comment 2",
            "comment 3",
            "comment 4",
        ]
        assert item.comments[0].owner_name == "Victor Viewer"

    def test_missing_author_profile_uses_fallback(self, settings):
        service = FeedAssemblyService(Mock(), settings)

        assert service.owner_name(None) == "Owner"
        assert service.owner_name(OwnerFactory.build(full_name=None)) == "Owner"

    @pytest.mark.asyncio
    async def test_empty_feed(self, assembly, owners):
        page = await assembly.fetch_page(owners[0].id)

        assert page.is_empty
        assert page.next_offset == 0
        assert page.has_more is False


class TestAssemblyFailures:
    """Store failures surface as a single FeedAssemblyException."""

    @pytest.mark.asyncio
    async def test_lookup_failure_wrapped(self, feed_store, owners, settings):
        author = owners[0]
        await PostFactory.create(feed_store, author.id)
        store = Mock(wraps=feed_store)
        store.comment_counts = AsyncMock(
            side_effect=TransactionException("Database transaction failed")
        )
        service = FeedAssemblyService(store, settings)

        with pytest.raises(FeedAssemblyException) as exc_info:
            await service.fetch_page(author.id)

        assert exc_info.value.message == "Could not load the feed"
        assert isinstance(exc_info.value.original_error, TransactionException)

    @pytest.mark.asyncio
    async def test_candidate_query_failure_wrapped(self, settings):
        store = Mock()
        store.fetch_following = AsyncMock(return_value=set())
        store.fetch_posts = AsyncMock(side_effect=RuntimeError("boom"))
        service = FeedAssemblyService(store, settings)

        with pytest.raises(FeedAssemblyException):
            await service.fetch_page(1)
