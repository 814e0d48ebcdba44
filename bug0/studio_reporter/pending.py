"""Track in-flight operations so they can be drained before aggregation."""

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

T = TypeVar("T")


class PendingOperations:
    """Wait group of asyncio tasks started by the reporter."""

    def __init__(self) -> None:
        """Initialize with no tasks in flight."""
        self._tasks: set[asyncio.Task[Any]] = set()

    def __len__(self) -> int:
        """Return the number of tasks still in flight."""
        return len(self._tasks)

    def start(self, coro: Coroutine[Any, Any, T]) -> "asyncio.Task[T]":
        """Schedule a coroutine and track it until it finishes."""
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait until every tracked task, including ones started meanwhile, settles.

        Exceptions are not re-raised here; they belong to whoever awaited the
        task.
        """
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
