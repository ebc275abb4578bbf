"""
Per-viewer visibility policy for Pet Moments posts.

The store returns candidate rows without any visibility filtering; these
functions decide which of them a viewer may see and are applied after every
fetch.
"""

from typing import AbstractSet, Any, Iterable, List, TypeVar

from ..models.post import PostVisibility

PostT = TypeVar("PostT")


def _visibility_of(post: Any) -> PostVisibility:
    value = post.visibility
    if isinstance(value, PostVisibility):
        return value
    return PostVisibility(value)


def is_visible(post: Any, viewer_owner_id: int, following: AbstractSet[int]) -> bool:
    """
    Decide whether ``viewer_owner_id`` may see ``post``.

    Authors always see their own posts. Public posts are visible to everyone,
    owners-only posts to the author's followers, private posts to nobody else.

    Args:
        post: Object with ``pet_owner_id`` and ``visibility`` (enum or value)
        viewer_owner_id: Owner id of the viewer
        following: Owner ids the viewer follows
    """
    if post.pet_owner_id == viewer_owner_id:
        return True

    visibility = _visibility_of(post)
    if visibility is PostVisibility.PUBLIC:
        return True
    if visibility is PostVisibility.OWNERS_ONLY:
        return post.pet_owner_id in following
    return False


def filter_visible(
    posts: Iterable[PostT], viewer_owner_id: int, following: AbstractSet[int]
) -> List[PostT]:
    """Keep the posts ``viewer_owner_id`` may see, preserving order."""
    return [post for post in posts if is_visible(post, viewer_owner_id, following)]
