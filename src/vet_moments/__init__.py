"""
Vet Moments Package

The Pet Moments feed core of the veterinary clinic portal: pet owners publish
posts with photos and videos of their pets, react to and comment on posts,
and follow other owners.

This package includes:

- SQLAlchemy models for the moments tables (posts, media, reactions,
  comments, follows, notifications) and the owner profiles they reference
- Pydantic schemas for input validation and for the assembled feed
- A per-viewer visibility policy and batched feed page assembly
- Optimistic reactions and comments with rollback on failure
- Debounced feed refresh driven by a change stream
- Best-effort notifications to post owners
- Async database utilities and Alembic migrations

Quick Start:
    >>> from vet_moments.database import SessionManager, create_engine
    >>> from vet_moments.store import LocalChangeStream, SQLAlchemyFeedStore
    >>> from vet_moments.feed import MomentsSession

    >>> engine = create_engine("postgresql://portal@localhost/portal")
    >>> stream = LocalChangeStream()
    >>> store = SQLAlchemyFeedStore(SessionManager(engine), change_stream=stream)

    >>> async with MomentsSession(viewer_owner_id, store, change_stream=stream) as moments:
    ...     page = await moments.load()
    ...     moments.start_realtime()
    ...     await moments.toggle_reaction(page.posts[0].id)

Requirements:
    - Python 3.11+
    - PostgreSQL 13+ (SQLite for development and tests)
    - SQLAlchemy 2.0+
    - Pydantic 2.5+
"""

__version__ = "0.1.0"
__author__ = "Vet Clinic Platform Team"
__email__ = "dev@vetclinic.com"
__license__ = "MIT"
__copyright__ = "Copyright 2025 Vet Clinic Platform Team"

from . import database, exceptions, feed, models, schemas, store, utils

# Convenience imports for common usage patterns
from .database import SessionManager, create_engine
from .exceptions import (
    DatabaseException,
    EngagementException,
    FeedException,
    ValidationException,
    VetMomentsException,
)
from .feed import MomentsSession
from .models import Post, PostComment, PostReaction, PostVisibility
from .store import LocalChangeStream, SQLAlchemyFeedStore
from .utils.config import MomentsSettings

__all__ = [
    # Version and metadata
    "__version__",
    "__author__",
    "__email__",
    "__license__",
    "__copyright__",
    # Core modules
    "database",
    "exceptions",
    "feed",
    "models",
    "schemas",
    "store",
    "utils",
    # Convenience imports
    "create_engine",
    "SessionManager",
    "SQLAlchemyFeedStore",
    "LocalChangeStream",
    "MomentsSession",
    "MomentsSettings",
    "Post",
    "PostComment",
    "PostReaction",
    "PostVisibility",
    "VetMomentsException",
    "DatabaseException",
    "ValidationException",
    "FeedException",
    "EngagementException",
]
