"""
Async SQLAlchemy implementation of the feed store.

Each public method runs one unit of work in its own transaction through
``SessionManager.execute_in_transaction``. Failures surface as
``DatabaseException`` (usually its ``TransactionException`` subclass) with the
SQLAlchemy error attached as ``original_error``.

Committed writes are published to the optional ``LocalChangeStream`` so that
in-process subscribers (the realtime coordinator) see them.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Set

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.session import SessionManager
from ..exceptions import DatabaseException
from ..models import (
    MediaType,
    Notification,
    Owner,
    OwnerFollow,
    Patient,
    Post,
    PostComment,
    PostMedia,
    PostReaction,
    PostVisibility,
    ReactionKind,
)
from ..schemas.notification import NotificationCreate
from ..utils.datetime_utils import get_current_utc
from .base import FeedStore
from .changes import ChangeEvent, LocalChangeStream

logger = logging.getLogger(__name__)


class SQLAlchemyFeedStore(FeedStore):
    """``FeedStore`` over the Pet Moments tables."""

    def __init__(
        self,
        session_manager: SessionManager,
        change_stream: Optional[LocalChangeStream] = None,
    ):
        """
        Args:
            session_manager: Session manager bound to the portal database
            change_stream: Stream committed writes are published to
        """
        self.session_manager = session_manager
        self.change_stream = change_stream
        self._dialect = session_manager.engine.dialect.name

    async def _run(self, operation: Any, *args: Any) -> Any:
        try:
            return await self.session_manager.execute_in_transaction(operation, *args)
        except DatabaseException:
            raise
        except SQLAlchemyError as e:
            # Commit-time failures happen outside the operation itself.
            logger.error(f"Store operation {operation.__name__} failed: {e}")
            raise DatabaseException(
                "Database operation failed",
                details={"operation": operation.__name__.lstrip("_")},
                original_error=e,
            )

    def _publish(
        self,
        event_type: str,
        table: str,
        new_row: Optional[Dict[str, Any]] = None,
        old_row: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self.change_stream is None:
            return
        self.change_stream.publish(
            ChangeEvent(
                event_type=event_type,
                table=table,
                new_row=new_row or {},
                old_row=old_row or {},
            )
        )

    def _insert(self, model: Any) -> Any:
        """Dialect-specific INSERT supporting ON CONFLICT clauses."""
        if self._dialect == "postgresql":
            return postgresql_insert(model)
        if self._dialect == "sqlite":
            return sqlite_insert(model)
        raise DatabaseException(
            f"Upserts are not supported on dialect '{self._dialect}'",
            error_code="DATABASE_DIALECT_ERROR",
        )

    # Reads

    async def fetch_posts(
        self, offset: int, limit: int, owner_ids: Optional[Sequence[int]] = None
    ) -> List[Post]:
        if owner_ids is not None and not owner_ids:
            return []
        return await self._run(self._fetch_posts, offset, limit, owner_ids)

    async def _fetch_posts(
        self,
        session: AsyncSession,
        offset: int,
        limit: int,
        owner_ids: Optional[Sequence[int]],
    ) -> List[Post]:
        stmt = select(Post).order_by(Post.created_at.desc(), Post.id.desc())
        if owner_ids is not None:
            stmt = stmt.where(Post.pet_owner_id.in_(list(owner_ids)))
        stmt = stmt.offset(offset).limit(limit)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def fetch_media(self, post_ids: Sequence[int]) -> List[PostMedia]:
        if not post_ids:
            return []
        return await self._run(self._fetch_media, post_ids)

    async def _fetch_media(
        self, session: AsyncSession, post_ids: Sequence[int]
    ) -> List[PostMedia]:
        result = await session.execute(
            select(PostMedia)
            .where(PostMedia.post_id.in_(list(post_ids)))
            .order_by(PostMedia.id)
        )
        return list(result.scalars().all())

    async def reaction_counts(self, post_ids: Sequence[int]) -> Dict[int, int]:
        if not post_ids:
            return {}
        return await self._run(self._reaction_counts, post_ids)

    async def _reaction_counts(
        self, session: AsyncSession, post_ids: Sequence[int]
    ) -> Dict[int, int]:
        result = await session.execute(
            select(PostReaction.post_id, func.count(PostReaction.id))
            .where(PostReaction.post_id.in_(list(post_ids)))
            .group_by(PostReaction.post_id)
        )
        return {post_id: count for post_id, count in result.all()}

    async def reacted_post_ids(
        self, post_ids: Sequence[int], owner_id: int
    ) -> Set[int]:
        if not post_ids:
            return set()
        return await self._run(self._reacted_post_ids, post_ids, owner_id)

    async def _reacted_post_ids(
        self, session: AsyncSession, post_ids: Sequence[int], owner_id: int
    ) -> Set[int]:
        result = await session.execute(
            select(PostReaction.post_id).where(
                PostReaction.post_id.in_(list(post_ids)),
                PostReaction.pet_owner_id == owner_id,
            )
        )
        return set(result.scalars().all())

    async def comment_counts(self, post_ids: Sequence[int]) -> Dict[int, int]:
        if not post_ids:
            return {}
        return await self._run(self._comment_counts, post_ids)

    async def _comment_counts(
        self, session: AsyncSession, post_ids: Sequence[int]
    ) -> Dict[int, int]:
        result = await session.execute(
            select(PostComment.post_id, func.count(PostComment.id))
            .where(PostComment.post_id.in_(list(post_ids)))
            .group_by(PostComment.post_id)
        )
        return {post_id: count for post_id, count in result.all()}

    async def fetch_recent_comments(
        self, post_ids: Sequence[int], limit: int
    ) -> List[PostComment]:
        if not post_ids:
            return []
        return await self._run(self._fetch_recent_comments, post_ids, limit)

    async def _fetch_recent_comments(
        self, session: AsyncSession, post_ids: Sequence[int], limit: int
    ) -> List[PostComment]:
        result = await session.execute(
            select(PostComment)
            .where(PostComment.post_id.in_(list(post_ids)))
            .order_by(PostComment.created_at.desc(), PostComment.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def fetch_owners(self, owner_ids: Sequence[int]) -> Dict[int, Owner]:
        if not owner_ids:
            return {}
        return await self._run(self._fetch_owners, owner_ids)

    async def _fetch_owners(
        self, session: AsyncSession, owner_ids: Sequence[int]
    ) -> Dict[int, Owner]:
        result = await session.execute(
            select(Owner).where(Owner.id.in_(list(owner_ids)))
        )
        return {owner.id: owner for owner in result.scalars().all()}

    async def fetch_patients(self, patient_ids: Sequence[int]) -> Dict[int, Patient]:
        if not patient_ids:
            return {}
        return await self._run(self._fetch_patients, patient_ids)

    async def _fetch_patients(
        self, session: AsyncSession, patient_ids: Sequence[int]
    ) -> Dict[int, Patient]:
        result = await session.execute(
            select(Patient).where(Patient.id.in_(list(patient_ids)))
        )
        return {patient.id: patient for patient in result.scalars().all()}

    async def fetch_following(self, owner_id: int) -> Set[int]:
        return await self._run(self._fetch_following, owner_id)

    async def _fetch_following(self, session: AsyncSession, owner_id: int) -> Set[int]:
        result = await session.execute(
            select(OwnerFollow.following_owner_id).where(
                OwnerFollow.follower_owner_id == owner_id
            )
        )
        return set(result.scalars().all())

    async def get_post(self, post_id: int) -> Optional[Post]:
        return await self._run(self._get_post, post_id)

    async def _get_post(self, session: AsyncSession, post_id: int) -> Optional[Post]:
        return await session.get(Post, post_id)

    async def get_owner_user_id(self, owner_id: int) -> Optional[str]:
        return await self._run(self._get_owner_user_id, owner_id)

    async def _get_owner_user_id(
        self, session: AsyncSession, owner_id: int
    ) -> Optional[str]:
        result = await session.execute(
            select(Owner.user_id).where(Owner.id == owner_id)
        )
        return result.scalar_one_or_none()

    # Writes

    async def insert_post(
        self,
        owner_id: int,
        content: Optional[str],
        visibility: PostVisibility,
        patient_id: Optional[int] = None,
        media_count: int = 0,
    ) -> Post:
        post = await self._run(
            self._insert_post, owner_id, content, visibility, patient_id, media_count
        )
        logger.info(f"Post {post.id} created by owner {owner_id}")
        self._publish("INSERT", Post.__tablename__, new_row=post.to_dict())
        return post

    async def _insert_post(
        self,
        session: AsyncSession,
        owner_id: int,
        content: Optional[str],
        visibility: PostVisibility,
        patient_id: Optional[int],
        media_count: int,
    ) -> Post:
        post = Post(
            pet_owner_id=owner_id,
            content=content,
            visibility=PostVisibility(visibility),
            patient_id=patient_id,
            media_count=media_count,
        )
        session.add(post)
        await session.flush()
        return post

    async def insert_media(
        self, post_id: int, media_url: str, media_type: Any
    ) -> PostMedia:
        media = await self._run(self._insert_media, post_id, media_url, media_type)
        self._publish("INSERT", PostMedia.__tablename__, new_row=media.to_dict())
        return media

    async def _insert_media(
        self, session: AsyncSession, post_id: int, media_url: str, media_type: Any
    ) -> PostMedia:
        media = PostMedia(
            post_id=post_id, media_url=media_url, media_type=MediaType(media_type)
        )
        session.add(media)
        await session.flush()
        return media

    async def update_post(
        self, post_id: int, changes: Dict[str, Any]
    ) -> Optional[Post]:
        outcome = await self._run(self._update_post, post_id, changes)
        if outcome is None:
            return None
        post, old_row = outcome
        self._publish(
            "UPDATE", Post.__tablename__, new_row=post.to_dict(), old_row=old_row
        )
        return post

    async def _update_post(
        self, session: AsyncSession, post_id: int, changes: Dict[str, Any]
    ) -> Optional[tuple]:
        post = await session.get(Post, post_id)
        if post is None:
            return None
        old_row = post.to_dict()
        if "visibility" in changes:
            changes = {**changes, "visibility": PostVisibility(changes["visibility"])}
        post.update_fields(**changes)
        await session.flush()
        return post, old_row

    async def delete_post(self, post_id: int) -> bool:
        old_row = await self._run(self._delete_post, post_id)
        if old_row is None:
            return False
        logger.info(f"Post {post_id} deleted")
        self._publish("DELETE", Post.__tablename__, old_row=old_row)
        return True

    async def _delete_post(
        self, session: AsyncSession, post_id: int
    ) -> Optional[Dict[str, Any]]:
        post = await session.get(Post, post_id)
        if post is None:
            return None
        old_row = post.to_dict()
        # Media, reactions and comments go with it through ON DELETE CASCADE.
        await session.execute(delete(Post).where(Post.id == post_id))
        return old_row

    async def upsert_reaction(
        self, post_id: int, owner_id: int, reaction: ReactionKind = ReactionKind.LIKE
    ) -> None:
        row = await self._run(self._upsert_reaction, post_id, owner_id, reaction)
        self._publish("INSERT", PostReaction.__tablename__, new_row=row)

    async def _upsert_reaction(
        self,
        session: AsyncSession,
        post_id: int,
        owner_id: int,
        reaction: ReactionKind,
    ) -> Dict[str, Any]:
        now = get_current_utc()
        stmt = self._insert(PostReaction).values(
            post_id=post_id,
            pet_owner_id=owner_id,
            reaction=ReactionKind(reaction),
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["post_id", "pet_owner_id"],
            set_={
                "reaction": stmt.excluded.reaction,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await session.execute(stmt)
        result = await session.execute(
            select(PostReaction).where(
                PostReaction.post_id == post_id,
                PostReaction.pet_owner_id == owner_id,
            )
        )
        return result.scalar_one().to_dict()

    async def delete_reaction(self, post_id: int, owner_id: int) -> None:
        old_row = await self._run(self._delete_reaction, post_id, owner_id)
        if old_row is not None:
            self._publish("DELETE", PostReaction.__tablename__, old_row=old_row)

    async def _delete_reaction(
        self, session: AsyncSession, post_id: int, owner_id: int
    ) -> Optional[Dict[str, Any]]:
        result = await session.execute(
            select(PostReaction).where(
                PostReaction.post_id == post_id,
                PostReaction.pet_owner_id == owner_id,
            )
        )
        reaction = result.scalar_one_or_none()
        if reaction is None:
            return None
        old_row = reaction.to_dict()
        await session.delete(reaction)
        await session.flush()
        return old_row

    async def insert_comment(
        self, post_id: int, owner_id: int, content: str
    ) -> PostComment:
        comment = await self._run(self._insert_comment, post_id, owner_id, content)
        self._publish("INSERT", PostComment.__tablename__, new_row=comment.to_dict())
        return comment

    async def _insert_comment(
        self, session: AsyncSession, post_id: int, owner_id: int, content: str
    ) -> PostComment:
        comment = PostComment(post_id=post_id, pet_owner_id=owner_id, content=content)
        session.add(comment)
        await session.flush()
        return comment

    async def insert_follow(
        self, follower_owner_id: int, following_owner_id: int
    ) -> None:
        await self._run(self._insert_follow, follower_owner_id, following_owner_id)

    async def _insert_follow(
        self, session: AsyncSession, follower_owner_id: int, following_owner_id: int
    ) -> None:
        now = get_current_utc()
        stmt = (
            self._insert(OwnerFollow)
            .values(
                follower_owner_id=follower_owner_id,
                following_owner_id=following_owner_id,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(
                index_elements=["follower_owner_id", "following_owner_id"]
            )
        )
        await session.execute(stmt)

    async def delete_follow(
        self, follower_owner_id: int, following_owner_id: int
    ) -> None:
        await self._run(self._delete_follow, follower_owner_id, following_owner_id)

    async def _delete_follow(
        self, session: AsyncSession, follower_owner_id: int, following_owner_id: int
    ) -> None:
        await session.execute(
            delete(OwnerFollow).where(
                OwnerFollow.follower_owner_id == follower_owner_id,
                OwnerFollow.following_owner_id == following_owner_id,
            )
        )

    async def insert_notification(
        self, notification: NotificationCreate
    ) -> Notification:
        row = await self._run(self._insert_notification, notification)
        self._publish("INSERT", Notification.__tablename__, new_row=row.to_dict())
        return row

    async def _insert_notification(
        self, session: AsyncSession, notification: NotificationCreate
    ) -> Notification:
        row = Notification(**notification.model_dump())
        session.add(row)
        await session.flush()
        return row
