"""
The viewer's in-memory feed: an ordered collection of assembled posts.
"""

from typing import Dict, Iterator, List, Optional, Sequence

from ..exceptions import EngagementException
from ..schemas.feed import AssembledPost


class FeedState:
    """
    Ordered posts keyed by id.

    Pages are appended in the order they are applied. A post id appears at
    most once; a later page carrying the same id replaces the earlier object
    in place, keeping its position.
    """

    def __init__(self, posts: Optional[Sequence[AssembledPost]] = None):
        self._posts: Dict[int, AssembledPost] = {}
        self.next_offset = 0
        self.has_more = True
        if posts:
            self.extend(posts)

    def __len__(self) -> int:
        return len(self._posts)

    def __iter__(self) -> Iterator[AssembledPost]:
        return iter(list(self._posts.values()))

    def __contains__(self, post_id: object) -> bool:
        return post_id in self._posts

    @property
    def posts(self) -> List[AssembledPost]:
        return list(self._posts.values())

    @property
    def post_ids(self) -> List[int]:
        return list(self._posts)

    def get(self, post_id: int) -> Optional[AssembledPost]:
        return self._posts.get(post_id)

    def require(self, post_id: int) -> AssembledPost:
        """
        Get a post that must be present.

        Raises:
            EngagementException: If the post is not in the feed
        """
        post = self._posts.get(post_id)
        if post is None:
            raise EngagementException(
                f"Post {post_id} is not in the feed", post_id=post_id
            )
        return post

    def extend(self, posts: Sequence[AssembledPost]) -> None:
        for post in posts:
            self._posts[post.id] = post

    def replace(self, posts: Sequence[AssembledPost]) -> None:
        """Drop everything and start over with ``posts``."""
        self._posts = {post.id: post for post in posts}

    def remove(self, post_id: int) -> Optional[AssembledPost]:
        return self._posts.pop(post_id, None)

    def clear(self) -> None:
        self._posts.clear()
        self.next_offset = 0
        self.has_more = True
