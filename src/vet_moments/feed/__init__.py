"""
Pet Moments feed core.

Visibility policy, page assembly, optimistic engagement, realtime refresh,
notification fan-out and post authoring, tied together per viewer by
``MomentsSession``.
"""

from .assembly import FeedAssemblyService
from .dispatch import DetachedDispatcher
from .engagement import EngagementStore
from .notifications import NotificationFanout, NotificationSink
from .posts import MediaUploader, PostService, media_path
from .realtime import WATCHED_TABLES, RealtimeInvalidationCoordinator
from .session import MomentsSession
from .state import FeedState
from .visibility import filter_visible, is_visible

__all__ = [
    "is_visible",
    "filter_visible",
    "FeedAssemblyService",
    "FeedState",
    "EngagementStore",
    "NotificationFanout",
    "NotificationSink",
    "DetachedDispatcher",
    "RealtimeInvalidationCoordinator",
    "WATCHED_TABLES",
    "PostService",
    "MediaUploader",
    "media_path",
    "MomentsSession",
]
