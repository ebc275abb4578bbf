"""
Tests for the SQLAlchemy models.
"""

from datetime import datetime

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from vet_moments.models import (
    Owner,
    OwnerFollow,
    Post,
    PostReaction,
    PostVisibility,
    ReactionKind,
)

from .conftest import OwnerFactory


class TestBaseModel:
    """Test cases for BaseModel helpers."""

    def test_to_dict_converts_enums_and_datetimes(self):
        post = Post(
            id=5,
            pet_owner_id=1,
            content="hello",
            media_count=0,
            visibility=PostVisibility.PUBLIC,
            created_at=datetime(2024, 3, 1, 8, 0),
        )

        data = post.to_dict()

        assert data["id"] == 5
        assert data["visibility"] == "public"
        assert data["created_at"] == "2024-03-01T08:00:00"

    def test_repr(self):
        assert repr(Owner(id=7)) == "<Owner(id=7)>"

    def test_get_table_name(self):
        assert Post.get_table_name() == "pet_posts"
        assert OwnerFollow.get_table_name() == "owner_follows"

    def test_update_fields(self):
        owner = OwnerFactory.build()

        owner.update_fields(full_name="Renamed")

        assert owner.full_name == "Renamed"
        with pytest.raises(AttributeError):
            owner.update_fields(nickname="nope")


class TestOwner:
    """Test cases for Owner model."""

    @pytest.mark.parametrize(
        "full_name, expected",
        [("  Alice  ", "Alice"), ("   ", "Owner"), (None, "Owner")],
    )
    def test_display_name(self, full_name, expected):
        assert Owner(full_name=full_name).display_name() == expected

    def test_display_name_custom_fallback(self):
        assert Owner(full_name="").display_name("Pet parent") == "Pet parent"


class TestConstraints:
    """Database constraints enforced on SQLite."""

    @pytest.mark.asyncio
    async def test_defaults_applied_on_insert(self, test_session_manager, owners):
        author = owners[0]
        async with test_session_manager.get_transaction() as session:
            post = Post(pet_owner_id=author.id, content="defaults")
            session.add(post)
            await session.flush()

            assert post.visibility == PostVisibility.OWNERS_ONLY
            assert post.media_count == 0
            assert post.created_at is not None

    @pytest.mark.asyncio
    async def test_reaction_unique_per_owner(self, test_session_manager, owners):
        author, follower, _ = owners
        async with test_session_manager.get_transaction() as session:
            post = Post(pet_owner_id=author.id, content="like me")
            session.add(post)
            await session.flush()
            post_id = post.id
            session.add(PostReaction(post_id=post_id, pet_owner_id=follower.id))

        with pytest.raises(IntegrityError):
            async with test_session_manager.get_transaction() as session:
                session.add(
                    PostReaction(
                        post_id=post_id,
                        pet_owner_id=follower.id,
                        reaction=ReactionKind.LIKE,
                    )
                )

    @pytest.mark.asyncio
    async def test_self_follow_rejected(self, test_session_manager, owners):
        author = owners[0]

        with pytest.raises(IntegrityError):
            async with test_session_manager.get_transaction() as session:
                session.add(
                    OwnerFollow(
                        follower_owner_id=author.id, following_owner_id=author.id
                    )
                )

    @pytest.mark.asyncio
    async def test_post_requires_existing_owner(self, test_session_manager):
        with pytest.raises(IntegrityError):
            async with test_session_manager.get_transaction() as session:
                session.add(Post(pet_owner_id=9999, content="orphan"))

        async with test_session_manager.get_session() as session:
            result = await session.execute(select(Post))
            assert result.scalars().all() == []
