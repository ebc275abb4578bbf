"""
Abstract persistent store client used by the feed core.

Every feed component receives a ``FeedStore`` through its constructor. The
methods are single statements against the Pet Moments tables; none of them
applies visibility rules, which the feed enforces itself after every read.

Read methods return model instances detached from any session. Methods taking
a list of ids return an empty result for an empty list without querying.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Set

from ..models import (
    Notification,
    Owner,
    Patient,
    Post,
    PostComment,
    PostMedia,
    PostVisibility,
    ReactionKind,
)
from ..schemas.notification import NotificationCreate


class FeedStore(ABC):
    """Store client for posts, media, engagement, follows and notifications."""

    # Reads

    @abstractmethod
    async def fetch_posts(
        self, offset: int, limit: int, owner_ids: Optional[Sequence[int]] = None
    ) -> List[Post]:
        """
        Candidate posts, newest first (``created_at`` then ``id`` descending).

        Args:
            offset: Number of rows to skip
            limit: Maximum number of rows
            owner_ids: Restrict to these authors when given
        """

    @abstractmethod
    async def fetch_media(self, post_ids: Sequence[int]) -> List[PostMedia]:
        """Media rows of the given posts in insertion order."""

    @abstractmethod
    async def reaction_counts(self, post_ids: Sequence[int]) -> Dict[int, int]:
        """Reaction count per post id; posts without reactions are absent."""

    @abstractmethod
    async def reacted_post_ids(
        self, post_ids: Sequence[int], owner_id: int
    ) -> Set[int]:
        """Ids among ``post_ids`` that ``owner_id`` has reacted to."""

    @abstractmethod
    async def comment_counts(self, post_ids: Sequence[int]) -> Dict[int, int]:
        """Comment count per post id; posts without comments are absent."""

    @abstractmethod
    async def fetch_recent_comments(
        self, post_ids: Sequence[int], limit: int
    ) -> List[PostComment]:
        """The latest ``limit`` comments across ``post_ids``, newest first."""

    @abstractmethod
    async def fetch_owners(self, owner_ids: Sequence[int]) -> Dict[int, Owner]:
        """Owner profiles by id. Unknown ids are absent."""

    @abstractmethod
    async def fetch_patients(self, patient_ids: Sequence[int]) -> Dict[int, Patient]:
        """Patients by id. Unknown ids are absent."""

    @abstractmethod
    async def fetch_following(self, owner_id: int) -> Set[int]:
        """Ids of the owners ``owner_id`` follows."""

    @abstractmethod
    async def get_post(self, post_id: int) -> Optional[Post]:
        """A single post, or ``None``."""

    @abstractmethod
    async def get_owner_user_id(self, owner_id: int) -> Optional[str]:
        """Identity user id of an owner, or ``None`` if unknown or unset."""

    # Writes

    @abstractmethod
    async def insert_post(
        self,
        owner_id: int,
        content: Optional[str],
        visibility: PostVisibility,
        patient_id: Optional[int] = None,
        media_count: int = 0,
    ) -> Post:
        """Insert a post and return it with its generated id."""

    @abstractmethod
    async def insert_media(
        self, post_id: int, media_url: str, media_type: Any
    ) -> PostMedia:
        """Record an uploaded media file."""

    @abstractmethod
    async def update_post(
        self, post_id: int, changes: Dict[str, Any]
    ) -> Optional[Post]:
        """Apply column changes; ``None`` if the post does not exist."""

    @abstractmethod
    async def delete_post(self, post_id: int) -> bool:
        """Delete a post and, by cascade, its media and engagement."""

    @abstractmethod
    async def upsert_reaction(
        self, post_id: int, owner_id: int, reaction: ReactionKind = ReactionKind.LIKE
    ) -> None:
        """Insert the reaction, or update it if the (post, owner) row exists."""

    @abstractmethod
    async def delete_reaction(self, post_id: int, owner_id: int) -> None:
        """Remove the (post, owner) reaction if present."""

    @abstractmethod
    async def insert_comment(
        self, post_id: int, owner_id: int, content: str
    ) -> PostComment:
        """Append a comment and return it with its id and ``created_at``."""

    @abstractmethod
    async def insert_follow(
        self, follower_owner_id: int, following_owner_id: int
    ) -> None:
        """Create the follow edge. An existing edge is left as is."""

    @abstractmethod
    async def delete_follow(
        self, follower_owner_id: int, following_owner_id: int
    ) -> None:
        """Remove the follow edge if present."""

    @abstractmethod
    async def insert_notification(
        self, notification: NotificationCreate
    ) -> Notification:
        """Write a notification row."""
