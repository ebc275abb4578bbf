#!/usr/bin/env python3
"""
Basic usage examples for the vet-moments package.

This example walks through a small Pet Moments session: two owners, a follow
edge, a post with a photo, optimistic reactions and comments, and the
realtime refresh that keeps the author's feed current.
"""

import asyncio
import os

from vet_moments import (
    LocalChangeStream,
    MomentsSession,
    MomentsSettings,
    SessionManager,
    SQLAlchemyFeedStore,
    ValidationException,
    create_engine,
)
from vet_moments.exceptions import create_error_response
from vet_moments.models import Owner
from vet_moments.models.base import Base
from vet_moments.utils.config import LoggingConfigurator, LogLevel


class PrintingUploader:
    """Uploader that pretends to store files on a CDN."""

    async def upload(self, path, file):
        print(f"  uploading {file.filename} -> {path}")
        return f"https://cdn.example.com/{path}"


class PrintingSink:
    """Notification sink that prints instead of pushing."""

    async def deliver(self, notification):
        print(f"  🔔 {notification.title}: {notification.message}")


async def setup_database():
    """Create the engine and the moments tables."""
    database_url = os.getenv("DATABASE_URL", "sqlite:///./moments_example.db")
    engine = create_engine(database_url, echo=False)
    session_manager = SessionManager(engine)
    await session_manager.initialize_database(Base.metadata)
    return engine, session_manager


async def create_owners(session_manager):
    """Owner profiles belong to the identity subsystem; seed two here."""
    async with session_manager.get_transaction() as session:
        alice = Owner(user_id="user_alice", full_name="Alice Rivera")
        victor = Owner(user_id="user_victor", full_name="Victor Chen")
        session.add_all([alice, victor])
        await session.flush()
    print(f"✓ Owners created: {alice.id}, {victor.id}")
    return alice, victor


async def feed_example(store, stream, alice, victor):
    """Publish, react, comment and watch the author's feed refresh."""
    print("\n=== Feed Example ===")
    settings = MomentsSettings(debounce_ms=100)

    async with MomentsSession(
        alice.id,
        store,
        settings=settings,
        uploader=PrintingUploader(),
        change_stream=stream,
        sink=PrintingSink(),
        display_name=alice.display_name(),
    ) as alice_moments, MomentsSession(
        victor.id,
        store,
        settings=settings,
        display_name=victor.display_name(),
    ) as victor_moments:
        await victor_moments.follow_owner(alice.id)

        post_id = await alice_moments.create_post(
            {
                "content": "Biscuit met the ocean today 🌊",
                "visibility": "owners_only",
                "media": [
                    {
                        "filename": "beach.jpg",
                        "content_type": "image/jpeg",
                        "size": 2048,
                    }
                ],
            }
        )
        print(f"✓ Post {post_id} published")
        alice_moments.start_realtime()

        page = await victor_moments.load()
        print(f"✓ Victor sees {len(page.posts)} post(s)")

        task = victor_moments.toggle_reaction(post_id)
        item = victor_moments.state.get(post_id)
        print(f"  liked before the store answered: {item.reacted_by_me}")
        await task
        await victor_moments.add_comment(post_id, "So cute!")

        await alice_moments.realtime.wait_idle()
        mine = alice_moments.state.get(post_id)
        print(
            f"✓ Alice's feed refreshed: {mine.reactions_count} like(s), "
            f"{mine.comments_count} comment(s)"
        )


async def error_handling_example(store, alice):
    """Validation errors are raised before any store call."""
    print("\n=== Error Handling Example ===")
    async with MomentsSession(alice.id, store) as moments:
        try:
            await moments.create_post({"content": "   "})
        except ValidationException as e:
            response = create_error_response(e)
            print(f"✓ Rejected: {response['error']['message']}")


async def main():
    """Run the basic usage examples."""
    LoggingConfigurator.configure_basic_logging(LogLevel.WARNING)
    print("🐾 Vet Moments Package - Basic Usage Examples")
    print("=" * 60)

    engine, session_manager = await setup_database()
    stream = LocalChangeStream()
    store = SQLAlchemyFeedStore(session_manager, change_stream=stream)

    try:
        alice, victor = await create_owners(session_manager)
        await feed_example(store, stream, alice, victor)
        await error_handling_example(store, alice)
    finally:
        await session_manager.cleanup_database(Base.metadata, drop_all=True)
        await engine.dispose()

    print("\n" + "=" * 60)
    print("🎉 Basic usage examples completed!")


if __name__ == "__main__":
    asyncio.run(main())
