"""
Feed page assembly.

A page is built from one candidate query, the visibility policy, and a fixed
number of batched lookups for the surviving posts (media, reaction counts,
the viewer's reactions, comment counts, recent comments, then owners and
patients). The number of store round-trips does not grow with the page size.
"""

import asyncio
import logging
from collections import defaultdict
from typing import AbstractSet, Any, Awaitable, Dict, List, Optional, Sequence

from ..exceptions import FeedAssemblyException
from ..models import Owner, Patient, Post, PostComment, PostMedia
from ..schemas.feed import AssembledPost, FeedComment, FeedMedia, FeedPage
from ..store.base import FeedStore
from ..utils.config import MomentsSettings
from .visibility import filter_visible

logger = logging.getLogger(__name__)


async def _gather(*lookups: Awaitable[Any]) -> List[Any]:
    """Run lookups concurrently; raise the first failure once all have settled."""
    results = await asyncio.gather(*lookups, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)


class FeedAssemblyService:
    """Builds feed pages for a viewer."""

    def __init__(self, store: FeedStore, settings: Optional[MomentsSettings] = None):
        self.store = store
        self.settings = settings or MomentsSettings()

    async def fetch_page(
        self,
        viewer_owner_id: int,
        offset: int = 0,
        page_size: Optional[int] = None,
        following_only: bool = False,
        following: Optional[AbstractSet[int]] = None,
    ) -> FeedPage:
        """
        Assemble one page of the feed.

        Rows the viewer may not see are dropped without fetching replacements,
        so a page can hold fewer than ``page_size`` posts while more remain.

        Args:
            viewer_owner_id: Owner id of the viewer
            offset: Candidate row offset
            page_size: Candidate rows to request (defaults to settings)
            following_only: Restrict candidates to the viewer and followed owners
            following: Owner ids the viewer follows; loaded when omitted

        Returns:
            The page, with ``next_offset`` pointing past the consumed candidates

        Raises:
            FeedAssemblyException: If any store lookup fails
        """
        page_size = page_size or self.settings.page_size
        try:
            return await self._assemble(
                viewer_owner_id, offset, page_size, following_only, following
            )
        except FeedAssemblyException:
            raise
        except Exception as e:
            logger.error(
                f"Feed assembly failed for owner {viewer_owner_id} at offset {offset}: {e}",
                extra={
                    "exception_data": {
                        "viewer_owner_id": viewer_owner_id,
                        "offset": offset,
                        "following_only": following_only,
                    }
                },
            )
            raise FeedAssemblyException(
                "Could not load the feed",
                operation="fetch_page",
                original_error=e,
            ) from e

    async def _assemble(
        self,
        viewer_owner_id: int,
        offset: int,
        page_size: int,
        following_only: bool,
        following: Optional[AbstractSet[int]],
    ) -> FeedPage:
        if following is None:
            following = await self.store.fetch_following(viewer_owner_id)

        owner_ids = None
        if following_only:
            owner_ids = sorted({viewer_owner_id} | set(following))

        raw = await self.store.fetch_posts(offset, page_size, owner_ids)
        next_offset = offset + len(raw)
        has_more = len(raw) == page_size

        visible = filter_visible(raw, viewer_owner_id, following)
        if not visible:
            return FeedPage(posts=[], next_offset=next_offset, has_more=has_more)

        post_ids = [post.id for post in visible]
        media, reaction_counts, reacted, comment_counts, recent = await _gather(
            self.store.fetch_media(post_ids),
            self.store.reaction_counts(post_ids),
            self.store.reacted_post_ids(post_ids, viewer_owner_id),
            self.store.comment_counts(post_ids),
            self.store.fetch_recent_comments(
                post_ids, self.settings.recent_comments_limit
            ),
        )

        comments_by_post = self._group_comments(recent)

        author_ids = {post.pet_owner_id for post in visible}
        author_ids.update(
            c.pet_owner_id for comments in comments_by_post.values() for c in comments
        )
        patient_ids = {post.patient_id for post in visible if post.patient_id}
        owners, patients = await _gather(
            self.store.fetch_owners(sorted(author_ids)),
            self.store.fetch_patients(sorted(patient_ids)),
        )

        media_by_post: Dict[int, List[PostMedia]] = defaultdict(list)
        for item in media:
            media_by_post[item.post_id].append(item)

        posts = [
            self._build_post(
                post,
                owners=owners,
                patients=patients,
                media=media_by_post.get(post.id, []),
                reactions_count=reaction_counts.get(post.id, 0),
                reacted_by_me=post.id in reacted,
                comments_count=comment_counts.get(post.id, 0),
                comments=comments_by_post.get(post.id, []),
            )
            for post in visible
        ]

        logger.debug(
            f"Assembled {len(posts)} of {len(raw)} candidate posts for owner "
            f"{viewer_owner_id} at offset {offset}"
        )
        return FeedPage(posts=posts, next_offset=next_offset, has_more=has_more)

    def _group_comments(
        self, recent: Sequence[PostComment]
    ) -> Dict[int, List[PostComment]]:
        """Keep the newest few per post, then show them oldest first."""
        grouped: Dict[int, List[PostComment]] = defaultdict(list)
        for comment in recent:
            bucket = grouped[comment.post_id]
            if len(bucket) < self.settings.comments_per_post:
                bucket.append(comment)
        return {post_id: list(reversed(items)) for post_id, items in grouped.items()}

    def owner_name(self, owner: Optional[Owner]) -> str:
        if owner is None:
            return self.settings.fallback_owner_name
        return owner.display_name(self.settings.fallback_owner_name)

    def _build_post(
        self,
        post: Post,
        owners: Dict[int, Owner],
        patients: Dict[int, Patient],
        media: List[PostMedia],
        reactions_count: int,
        reacted_by_me: bool,
        comments_count: int,
        comments: List[PostComment],
    ) -> AssembledPost:
        author = owners.get(post.pet_owner_id)
        patient = patients.get(post.patient_id) if post.patient_id else None
        return AssembledPost(
            id=post.id,
            pet_owner_id=post.pet_owner_id,
            patient_id=post.patient_id,
            content=post.content,
            media_count=post.media_count or 0,
            visibility=post.visibility,
            created_at=post.created_at,
            owner_name=self.owner_name(author),
            owner_avatar=author.profile_picture_url if author else None,
            patient_name=patient.name if patient else None,
            media=[FeedMedia.model_validate(item) for item in media],
            reactions_count=reactions_count,
            comments_count=comments_count,
            reacted_by_me=reacted_by_me,
            comments=[
                FeedComment(
                    id=c.id,
                    pet_owner_id=c.pet_owner_id,
                    content=c.content,
                    created_at=c.created_at,
                    owner_name=self.owner_name(owners.get(c.pet_owner_id)),
                    owner_avatar=(
                        owners[c.pet_owner_id].profile_picture_url
                        if c.pet_owner_id in owners
                        else None
                    ),
                )
                for c in comments
            ],
        )
