"""
Feed Pydantic schemas for assembled pages.

These are the shapes handed to the UI layer. ``AssembledPost`` instances are
held in the viewer's in-memory feed and mutated in place by optimistic
engagement actions, so they are regular (non-frozen) models.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.post import MediaType, PostVisibility
from ..utils.datetime_utils import ensure_utc


class FeedMedia(BaseModel):
    """A media item of an assembled post."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: int = Field(..., description="Media row id")
    media_url: str = Field(..., description="Public URL in the object store")
    media_type: MediaType = Field(..., description="image or video")


class FeedComment(BaseModel):
    """A recent comment shown under a post."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Comment id; negative for local placeholders")
    pet_owner_id: int = Field(..., description="Comment author")
    content: str = Field(..., description="Comment text")
    created_at: datetime = Field(..., description="Creation timestamp (UTC)")
    owner_name: str = Field("Owner", description="Author display name")
    owner_avatar: Optional[str] = Field(None, description="Author avatar URL")

    @field_validator("created_at")
    @classmethod
    def validate_created_at(cls, v: datetime) -> datetime:
        """Normalize to aware UTC."""
        return ensure_utc(v)

    @property
    def is_placeholder(self) -> bool:
        """True until the store confirms the comment."""
        return self.id < 0


class AssembledPost(BaseModel):
    """A post joined with its media, engagement counts and display names."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Post id")
    pet_owner_id: int = Field(..., description="Author")
    patient_id: Optional[int] = Field(None, description="Linked pet")
    content: Optional[str] = Field(None, description="Post text")
    media_count: int = Field(0, description="File count recorded at creation", ge=0)
    visibility: PostVisibility = Field(..., description="Post visibility")
    created_at: datetime = Field(..., description="Creation timestamp (UTC)")
    owner_name: str = Field("Owner", description="Author display name")
    owner_avatar: Optional[str] = Field(None, description="Author avatar URL")
    patient_name: Optional[str] = Field(None, description="Linked pet name")
    media: List[FeedMedia] = Field(default_factory=list)
    reactions_count: int = Field(0, ge=0)
    comments_count: int = Field(0, ge=0)
    reacted_by_me: bool = Field(False)
    comments: List[FeedComment] = Field(default_factory=list)

    @field_validator("created_at")
    @classmethod
    def validate_created_at(cls, v: datetime) -> datetime:
        """Normalize to aware UTC."""
        return ensure_utc(v)


class FeedPage(BaseModel):
    """One page of the feed."""

    posts: List[AssembledPost] = Field(default_factory=list)
    next_offset: int = Field(
        ..., description="Offset of the next candidate row to request", ge=0
    )
    has_more: bool = Field(
        False, description="Whether the candidate range was full"
    )

    @property
    def is_empty(self) -> bool:
        return not self.posts
