"""
Fire-and-forget task runner for best-effort work.
"""

import asyncio
import logging
from typing import Any, Coroutine, Optional, Set

logger = logging.getLogger(__name__)


class DetachedDispatcher:
    """
    Runs coroutines as detached tasks whose failures are logged and dropped.

    Tasks are referenced until they finish so the event loop does not
    garbage-collect them mid-flight. ``drain`` waits for the outstanding ones.
    """

    def __init__(self, name: str = "detached"):
        self.name = name
        self._tasks: Set["asyncio.Task[Any]"] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(
        self, coro: Coroutine[Any, Any, Any], label: Optional[str] = None
    ) -> "asyncio.Task[Any]":
        task = asyncio.ensure_future(coro)
        task.set_name(f"{self.name}:{label or 'task'}")
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: "asyncio.Task[Any]") -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(
                f"Detached task {task.get_name()} failed: {error}",
                extra={
                    "exception_data": {
                        "task": task.get_name(),
                        "error_type": type(error).__name__,
                    }
                },
            )

    async def drain(self) -> None:
        """Wait for every outstanding task. Failures stay swallowed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
