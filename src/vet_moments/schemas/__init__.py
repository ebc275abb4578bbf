"""
Pydantic schemas for data validation and serialization.

This module contains the input schemas validated before store calls and the
assembled feed shapes returned to the UI layer.
"""

from .feed import AssembledPost, FeedComment, FeedMedia, FeedPage
from .notification import (
    MOMENT_NOTIFICATION_TYPE,
    NOTIFICATION_TEMPLATES,
    NotificationCreate,
    NotificationKind,
)
from .post import (
    CommentCreate,
    MediaFile,
    PostCreate,
    PostUpdate,
    parse_with_settings,
)

__all__ = [
    # Input schemas
    "PostCreate",
    "PostUpdate",
    "MediaFile",
    "CommentCreate",
    "parse_with_settings",
    # Feed schemas
    "AssembledPost",
    "FeedComment",
    "FeedMedia",
    "FeedPage",
    # Notifications
    "NotificationCreate",
    "NotificationKind",
    "NOTIFICATION_TEMPLATES",
    "MOMENT_NOTIFICATION_TYPE",
]
