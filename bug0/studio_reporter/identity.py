"""Run-scoped mapping from logical keys to store identifiers."""

import asyncio
from collections.abc import Awaitable, Callable


class KeySpace:
    """Mapping of logical keys to store identifiers for one entity kind.

    A miss is resolved under a per-key lock: the first caller creates the
    record and registers it, later callers for the same key wait and then
    read the registered identifier.
    """

    def __init__(self, name: str) -> None:
        """Initialize an empty key space."""
        self.name = name
        self._ids: dict[str, str] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __contains__(self, key: object) -> bool:
        """Return whether the key is registered."""
        return key in self._ids

    def __len__(self) -> int:
        """Return the number of registered keys."""
        return len(self._ids)

    def get(self, key: str) -> str | None:
        """Return the identifier registered for the key, if any."""
        return self._ids.get(key)

    async def resolve_or_create(
        self, key: str, create: Callable[[], Awaitable[str]]
    ) -> tuple[str, bool]:
        """Return the identifier for a key, creating the record on a miss.

        Args:
            key: Logical key within this key space
            create: Coroutine factory inserting the record and returning its id

        Returns:
            Tuple of (identifier, created_by_this_call)

        """
        cached = self._ids.get(key)
        if cached is not None:
            return cached, False

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            cached = self._ids.get(key)
            if cached is not None:
                return cached, False

            document_id = await create()
            self._ids[key] = document_id

        self._locks.pop(key, None)
        return document_id, True


class IdentityCache:
    """Suite and spec key spaces for the lifetime of one reporter."""

    def __init__(self) -> None:
        """Initialize empty key spaces."""
        self.suites = KeySpace("suites")
        self.specs = KeySpace("specs")
