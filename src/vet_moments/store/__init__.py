"""
Persistent store and change-stream clients for the Pet Moments feed.
"""

from .base import FeedStore
from .changes import (
    ALL_EVENTS,
    ChangeEvent,
    ChangeStream,
    LocalChangeStream,
    Subscription,
)
from .sqlalchemy_store import SQLAlchemyFeedStore

__all__ = [
    "FeedStore",
    "SQLAlchemyFeedStore",
    "ChangeEvent",
    "ChangeStream",
    "LocalChangeStream",
    "Subscription",
    "ALL_EVENTS",
]
