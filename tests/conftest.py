"""
Pytest configuration and fixtures for vet-moments tests.

This module provides common fixtures for all tests in the package: a
SQLite-backed engine per test, the session manager and feed store built on
it, an in-process change stream, and factory classes for owners, pets,
posts and follows.
"""

import uuid
from typing import AsyncGenerator, List, Optional, Tuple

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from vet_moments.database.connection import create_engine
from vet_moments.database.session import SessionManager
from vet_moments.models import Owner, Patient, Post, PostVisibility
from vet_moments.models.base import Base
from vet_moments.schemas.post import MediaFile
from vet_moments.store import LocalChangeStream, SQLAlchemyFeedStore
from vet_moments.utils.config import MomentsSettings


@pytest_asyncio.fixture
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """
    SQLite engine on a temporary file, one database per test.

    A file (rather than ``:memory:``) lets every pooled connection see the
    same tables.
    """
    engine = create_engine(f"sqlite:///{tmp_path / 'moments.db'}", use_null_pool=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def test_session_manager(
    test_engine: AsyncEngine,
) -> AsyncGenerator[SessionManager, None]:
    """Create a session manager for testing."""
    session_manager = SessionManager(test_engine)
    yield session_manager
    await session_manager.close_all_sessions()


@pytest.fixture
def change_stream() -> LocalChangeStream:
    return LocalChangeStream()


@pytest.fixture
def feed_store(
    test_session_manager: SessionManager, change_stream: LocalChangeStream
) -> SQLAlchemyFeedStore:
    """Feed store publishing committed writes to ``change_stream``."""
    return SQLAlchemyFeedStore(test_session_manager, change_stream=change_stream)


@pytest.fixture
def settings() -> MomentsSettings:
    """Default settings with a short debounce window to keep tests fast."""
    return MomentsSettings(debounce_ms=20)


# Factory classes for creating test entities
class OwnerFactory:
    """Factory for creating test Owner instances."""

    @staticmethod
    def build(**kwargs) -> Owner:
        """Build an Owner instance without saving to database."""
        defaults = {
            "user_id": f"user_{uuid.uuid4().hex[:12]}",
            "full_name": "Test Owner",
            "profile_picture_url": None,
        }
        defaults.update(kwargs)
        return Owner(**defaults)

    @staticmethod
    async def create(session_manager: SessionManager, **kwargs) -> Owner:
        """Create and save an Owner instance to the database."""
        owner = OwnerFactory.build(**kwargs)
        async with session_manager.get_transaction() as session:
            session.add(owner)
            await session.flush()
        return owner


class PatientFactory:
    """Factory for creating test Patient instances."""

    @staticmethod
    async def create(
        session_manager: SessionManager, owner_id: int, **kwargs
    ) -> Patient:
        defaults = {"owner_id": owner_id, "name": "Biscuit", "is_active": True}
        defaults.update(kwargs)
        patient = Patient(**defaults)
        async with session_manager.get_transaction() as session:
            session.add(patient)
            await session.flush()
        return patient


class PostFactory:
    """Factory for creating test Post instances through the store."""

    @staticmethod
    async def create(
        store: SQLAlchemyFeedStore,
        owner_id: int,
        content: Optional[str] = "Walk in the park",
        visibility: PostVisibility = PostVisibility.PUBLIC,
        patient_id: Optional[int] = None,
        media_count: int = 0,
    ) -> Post:
        return await store.insert_post(
            owner_id,
            content,
            visibility,
            patient_id=patient_id,
            media_count=media_count,
        )


class FakeUploader:
    """Object store stand-in returning predictable URLs."""

    def __init__(self, fail_on: Optional[str] = None):
        self.fail_on = fail_on
        self.uploads: List[Tuple[str, MediaFile]] = []

    async def upload(self, path: str, file: MediaFile) -> str:
        if self.fail_on and file.filename == self.fail_on:
            raise IOError(f"upload of {file.filename} failed")
        self.uploads.append((path, file))
        return f"https://cdn.example.com/{path}"


class RecordingSink:
    """Notification sink that records deliveries."""

    def __init__(self):
        self.delivered = []

    async def deliver(self, notification) -> None:
        self.delivered.append(notification)


def media_file(
    filename: str = "photo.jpg", content_type: str = "image/jpeg", size: int = 1024
) -> dict:
    """Raw media file payload as the UI would submit it."""
    return {
        "filename": filename,
        "content_type": content_type,
        "size": size,
        "data": b"\x00" * 16,
    }


@pytest.fixture
def uploader() -> FakeUploader:
    return FakeUploader()


@pytest_asyncio.fixture
async def owners(test_session_manager: SessionManager) -> Tuple[Owner, Owner, Owner]:
    """Three owners: author A, follower V and stranger W."""
    author = await OwnerFactory.create(test_session_manager, full_name="Alice Author")
    follower = await OwnerFactory.create(
        test_session_manager, full_name="Victor Viewer"
    )
    stranger = await OwnerFactory.create(test_session_manager, full_name="  ")
    return author, follower, stranger
