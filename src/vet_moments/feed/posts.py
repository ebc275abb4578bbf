"""
Post authoring and the follow graph.

Inputs are validated by the schemas before any store call. Media bytes are
handed to an external uploader which returns a public URL; only the URL is
recorded.
"""

import logging
import uuid
from typing import Any, Optional, Protocol, Set, Union, runtime_checkable

from ..exceptions import BusinessRuleException, FeedException, PostException
from ..models import Post, PostVisibility
from ..schemas.post import MediaFile, PostCreate, PostUpdate, parse_with_settings
from ..store.base import FeedStore
from ..utils.config import MomentsSettings
from ..utils.validation import media_extension, media_type_for

logger = logging.getLogger(__name__)


@runtime_checkable
class MediaUploader(Protocol):
    """Object store client. Returns the public URL of the stored file."""

    async def upload(self, path: str, file: MediaFile) -> str: ...


def media_path(post_id: int, filename: str) -> str:
    """Object store key for a post's media file."""
    return f"posts/{post_id}/{uuid.uuid4().hex}.{media_extension(filename)}"


class PostService:
    """Create, edit and delete posts; follow and unfollow owners."""

    def __init__(
        self,
        store: FeedStore,
        uploader: Optional[MediaUploader] = None,
        settings: Optional[MomentsSettings] = None,
    ):
        self.store = store
        self.uploader = uploader
        self.settings = settings or MomentsSettings()

    async def create_post(
        self, owner_id: int, data: Union[PostCreate, dict]
    ) -> int:
        """
        Publish a post and upload its media.

        The post row is written first with ``media_count`` set to the number
        of files, then each file is uploaded and recorded. An upload failure
        leaves the post in place with the media recorded so far.

        Args:
            owner_id: Author
            data: ``PostCreate`` or an equivalent mapping

        Returns:
            Id of the new post

        Raises:
            SchemaValidationException: If the input is invalid
            PostException: If the insert or an upload fails
        """
        payload = parse_with_settings(PostCreate, data, self.settings)
        if payload.media and self.uploader is None:
            raise PostException(
                "Media uploads are not configured", operation="create_post"
            )

        visibility = payload.visibility
        if "visibility" not in payload.model_fields_set:
            visibility = PostVisibility(self.settings.default_visibility)

        try:
            post = await self.store.insert_post(
                owner_id,
                payload.content,
                visibility,
                patient_id=payload.patient_id,
                media_count=len(payload.media),
            )
        except Exception as e:
            raise PostException(
                "Could not publish your post", operation="create_post", original_error=e
            ) from e

        for media_file in payload.media:
            try:
                url = await self.uploader.upload(  # type: ignore[union-attr]
                    media_path(post.id, media_file.filename), media_file
                )
                await self.store.insert_media(
                    post.id, url, media_type_for(media_file.filename)
                )
            except Exception as e:
                logger.error(
                    f"Media upload for post {post.id} failed: {e}",
                    extra={
                        "exception_data": {
                            "post_id": post.id,
                            "filename": media_file.filename,
                        }
                    },
                )
                raise PostException(
                    f"Could not upload {media_file.filename}",
                    post_id=post.id,
                    operation="upload_media",
                    original_error=e,
                ) from e

        return post.id

    async def _owned_post(self, post_id: int, owner_id: int, action: str) -> Post:
        try:
            post = await self.store.get_post(post_id)
        except Exception as e:
            raise PostException(
                "Could not load the post",
                post_id=post_id,
                operation=action,
                original_error=e,
            ) from e
        if post is None:
            raise PostException("Post not found", post_id=post_id, operation=action)
        if post.pet_owner_id != owner_id:
            raise BusinessRuleException(
                f"Only the author can {action.split('_')[0]} this post",
                rule_name="post_owner_only",
                context={"post_id": post_id, "owner_id": owner_id},
            )
        return post

    async def edit_post(
        self, post_id: int, owner_id: int, data: Union[PostUpdate, dict]
    ) -> Post:
        """
        Change a post's text and/or visibility.

        Raises:
            SchemaValidationException: If the input is invalid
            BusinessRuleException: If ``owner_id`` is not the author
            PostException: If the post is missing or the update fails
        """
        payload = parse_with_settings(PostUpdate, data, self.settings)
        await self._owned_post(post_id, owner_id, "edit_post")
        try:
            updated = await self.store.update_post(post_id, payload.changes())
        except Exception as e:
            raise PostException(
                "Could not save your changes",
                post_id=post_id,
                operation="edit_post",
                original_error=e,
            ) from e
        if updated is None:
            raise PostException(
                "Post not found", post_id=post_id, operation="edit_post"
            )
        return updated

    async def delete_post(self, post_id: int, owner_id: int) -> None:
        """
        Delete a post with its media, reactions and comments.

        Raises:
            BusinessRuleException: If ``owner_id`` is not the author
            PostException: If the post is missing or the delete fails
        """
        await self._owned_post(post_id, owner_id, "delete_post")
        try:
            await self.store.delete_post(post_id)
        except Exception as e:
            raise PostException(
                "Could not delete the post",
                post_id=post_id,
                operation="delete_post",
                original_error=e,
            ) from e

    async def follow(self, follower_owner_id: int, target_owner_id: int) -> None:
        """
        Follow an owner. Following someone already followed is a no-op.

        Raises:
            BusinessRuleException: On an attempt to follow oneself
            FeedException: If the store rejects the write
        """
        if follower_owner_id == target_owner_id:
            raise BusinessRuleException(
                "You cannot follow yourself",
                rule_name="no_self_follow",
                context={"owner_id": follower_owner_id},
            )
        await self._follow_call(
            self.store.insert_follow,
            "follow",
            "Could not follow this owner",
            follower_owner_id,
            target_owner_id,
        )
        logger.info(f"Owner {follower_owner_id} now follows {target_owner_id}")

    async def unfollow(self, follower_owner_id: int, target_owner_id: int) -> None:
        await self._follow_call(
            self.store.delete_follow,
            "unfollow",
            "Could not unfollow this owner",
            follower_owner_id,
            target_owner_id,
        )

    async def following_ids(self, owner_id: int) -> Set[int]:
        return await self._follow_call(
            self.store.fetch_following,
            "following_ids",
            "Could not load who you follow",
            owner_id,
        )

    async def _follow_call(
        self, call: Any, operation: str, message: str, *args: int
    ) -> Any:
        try:
            return await call(*args)
        except Exception as e:
            raise FeedException(message, operation=operation, original_error=e) from e
