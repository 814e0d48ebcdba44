"""Tests for the identity cache."""

import asyncio

import pytest

from bug0.studio_reporter.identity import IdentityCache, KeySpace


async def test_resolve_or_create_creates_once() -> None:
    """The first call creates, later calls reuse the identifier."""
    space = KeySpace("specs")
    calls = 0

    async def create() -> str:
        nonlocal calls
        calls += 1
        return f"id-{calls}"

    first = await space.resolve_or_create("test-a", create)
    second = await space.resolve_or_create("test-a", create)

    assert first == ("id-1", True)
    assert second == ("id-1", False)
    assert calls == 1
    assert "test-a" in space
    assert space.get("test-a") == "id-1"


async def test_concurrent_misses_create_once() -> None:
    """Concurrent requests for the same new key share a single creation."""
    space = KeySpace("specs")
    calls = 0

    async def create() -> str:
        nonlocal calls
        calls += 1
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        return "spec-1"

    results = await asyncio.gather(
        *(space.resolve_or_create("test-a", create) for _ in range(5))
    )

    assert calls == 1
    assert {doc_id for doc_id, _ in results} == {"spec-1"}
    assert sum(created for _, created in results) == 1


async def test_failed_creation_is_not_registered() -> None:
    """A failing creation leaves the key unresolved for a later retry."""
    space = KeySpace("suites")

    async def fail() -> str:
        raise RuntimeError("store down")

    async def create() -> str:
        return "suite-1"

    with pytest.raises(RuntimeError, match="store down"):
        await space.resolve_or_create("a.spec.ts", fail)

    assert space.get("a.spec.ts") is None
    assert await space.resolve_or_create("a.spec.ts", create) == ("suite-1", True)


def test_identity_cache_key_spaces_are_independent() -> None:
    """Suite and spec keys never collide."""
    cache = IdentityCache()

    cache.suites._ids["same"] = "suite-1"

    assert cache.specs.get("same") is None
    assert len(cache.suites) == 1
    assert len(cache.specs) == 0
