"""
Post models for the vet-moments package.

This module contains the Pet Moments post, its attached media, the
per-owner reactions and the append-only comment thread.
"""

import enum
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, enum_values


class PostVisibility(enum.Enum):
    """Who may read a post."""

    PUBLIC = "public"
    OWNERS_ONLY = "owners_only"  # followers of the author
    PRIVATE = "private"  # author only


class MediaType(enum.Enum):
    """Kind of media attached to a post."""

    IMAGE = "image"
    VIDEO = "video"


class ReactionKind(enum.Enum):
    """Reaction kinds. Only likes are exercised by the feed."""

    LIKE = "like"


class Post(BaseModel):
    """
    A Pet Moments post.

    ``media_count`` is written once at creation from the number of files the
    author supplied. Media rows are uploaded afterwards, so the live count may
    lag behind it.
    """

    __tablename__ = "pet_posts"

    pet_owner_id: Mapped[int] = mapped_column(
        ForeignKey("pet_owner_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Author",
    )

    patient_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("patients.id", ondelete="SET NULL"),
        nullable=True,
        comment="Pet the post is about",
    )

    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    media_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    visibility: Mapped[PostVisibility] = mapped_column(
        Enum(
            PostVisibility,
            name="post_visibility",
            values_callable=enum_values,
        ),
        nullable=False,
        default=PostVisibility.OWNERS_ONLY,
    )

    __table_args__ = (
        CheckConstraint("media_count >= 0", name="ck_pet_posts_media_count"),
        Index("idx_pet_posts_feed_order", "created_at", "id"),
    )


class PostMedia(BaseModel):
    """A media file attached to exactly one post, deleted with it."""

    __tablename__ = "pet_post_media"

    post_id: Mapped[int] = mapped_column(
        ForeignKey("pet_posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    media_url: Mapped[str] = mapped_column(String(1000), nullable=False)

    media_type: Mapped[MediaType] = mapped_column(
        Enum(MediaType, name="post_media_type", values_callable=enum_values),
        nullable=False,
        default=MediaType.IMAGE,
    )


class PostReaction(BaseModel):
    """One reaction per (post, owner). Toggled by delete/insert, never updated."""

    __tablename__ = "pet_post_reactions"

    post_id: Mapped[int] = mapped_column(
        ForeignKey("pet_posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    pet_owner_id: Mapped[int] = mapped_column(
        ForeignKey("pet_owner_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    reaction: Mapped[ReactionKind] = mapped_column(
        Enum(ReactionKind, name="post_reaction_kind", values_callable=enum_values),
        nullable=False,
        default=ReactionKind.LIKE,
    )

    __table_args__ = (
        UniqueConstraint(
            "post_id", "pet_owner_id", name="uq_pet_post_reactions_post_owner"
        ),
    )


class PostComment(BaseModel):
    """An append-only comment on a post."""

    __tablename__ = "pet_post_comments"

    post_id: Mapped[int] = mapped_column(
        ForeignKey("pet_posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    pet_owner_id: Mapped[int] = mapped_column(
        ForeignKey("pet_owner_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    content: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        Index("idx_pet_post_comments_post_created", "post_id", "created_at"),
    )
