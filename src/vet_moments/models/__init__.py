"""
Database models for the vet-moments package.

This module contains SQLAlchemy models for the Pet Moments tables of the
veterinary clinic portal.
"""

# Base model will be imported by all other models
from .base import Base, BaseModel
from .notification import Notification
from .owner import Owner, OwnerFollow, Patient
from .post import (
    MediaType,
    Post,
    PostComment,
    PostMedia,
    PostReaction,
    PostVisibility,
    ReactionKind,
)

__all__ = [
    "Base",
    "BaseModel",
    "Owner",
    "Patient",
    "OwnerFollow",
    "Post",
    "PostVisibility",
    "PostMedia",
    "MediaType",
    "PostReaction",
    "ReactionKind",
    "PostComment",
    "Notification",
]
