"""
Owner-side models for the vet-moments package.

This module contains the pet owner profile, the pets (patients) a post may
reference and the directed follow graph between owners.
"""

from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel


class Owner(BaseModel):
    """
    Pet owner profile.

    The identity subsystem owns this record; the feed reads the display
    fields and uses ``user_id`` to address notifications.
    """

    __tablename__ = "pet_owner_profiles"

    user_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        unique=True,
        comment="Identity provider user id",
    )

    full_name: Mapped[Optional[str]] = mapped_column(
        String(200), nullable=True, comment="Display name"
    )

    profile_picture_url: Mapped[Optional[str]] = mapped_column(
        String(500), nullable=True, comment="Avatar URL"
    )

    def display_name(self, fallback: str = "Owner") -> str:
        """Display name with the portal's fallback for empty names."""
        return (self.full_name or "").strip() or fallback


class Patient(BaseModel):
    """A pet registered to an owner. Posts may reference one."""

    __tablename__ = "patients"

    owner_id: Mapped[int] = mapped_column(
        ForeignKey("pet_owner_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class OwnerFollow(BaseModel):
    """Directed follow edge: ``follower_owner_id`` follows ``following_owner_id``."""

    __tablename__ = "owner_follows"

    follower_owner_id: Mapped[int] = mapped_column(
        ForeignKey("pet_owner_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    following_owner_id: Mapped[int] = mapped_column(
        ForeignKey("pet_owner_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        UniqueConstraint(
            "follower_owner_id",
            "following_owner_id",
            name="uq_owner_follows_pair",
        ),
        CheckConstraint(
            "follower_owner_id <> following_owner_id",
            name="ck_owner_follows_no_self_follow",
        ),
        Index("idx_owner_follows_following", "following_owner_id"),
    )
