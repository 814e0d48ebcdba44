"""Tests for spec reconciliation."""

from collections.abc import AsyncGenerator

import pytest

from bug0.studio_reporter.reconciler import Reconciler, derive_final_status
from bug0.studio_reporter.store.memory import InMemoryDocumentStore


@pytest.mark.parametrize(
    ("statuses", "expected"),
    [
        (["failed", "passed"], "flaky"),
        (["timedOut", "passed"], "flaky"),
        (["passed", "passed"], "passed"),
        (["passed"], "passed"),
        (["failed"], "failed"),
        (["failed", "timedOut"], "timedOut"),
        (["passed", "failed"], "failed"),
        (["interrupted", "passed"], "passed"),
        (["skipped"], "skipped"),
        (["failed", "failed", "interrupted"], "interrupted"),
        ([], "passed"),
    ],
)
def test_derive_final_status(statuses: list[str], expected: str) -> None:
    """A pass after a failure is flaky, otherwise the last attempt wins."""
    assert derive_final_status(statuses) == expected


@pytest.fixture
async def store() -> AsyncGenerator[InMemoryDocumentStore, None]:
    """Create a connected in-memory store."""
    store = InMemoryDocumentStore()
    await store.connect()
    yield store
    await store.close()


async def add_attempt(
    store: InMemoryDocumentStore, spec_id: str, retry: int, status: str, duration: int
) -> None:
    """Insert an attempt document."""
    await store.insert_one(
        "testresults",
        {
            "spec_id": spec_id,
            "run_id": "run-1",
            "retry_attempt": retry,
            "status": status,
            "duration": duration,
            "start_time": "2026-01-01T00:00:00Z",
        },
    )


async def test_reconcile_orders_by_retry(store: InMemoryDocumentStore) -> None:
    """reconcile reads every attempt ordered by retry index."""
    spec_id = await store.insert_one("specs", {"final_status": "passed"})
    await add_attempt(store, spec_id, 1, "passed", 1200)
    await add_attempt(store, spec_id, 0, "failed", 30000)

    final_status = await Reconciler(store).reconcile(spec_id)

    spec = await store.find_one("specs", spec_id)
    assert spec is not None
    assert final_status == "flaky"
    assert spec["final_status"] == "flaky"
    assert spec["total_duration"] == 31200
    assert spec["attempts"] == 2


async def test_reconcile_is_idempotent(store: InMemoryDocumentStore) -> None:
    """Repeated reconciliation converges on the same state."""
    spec_id = await store.insert_one("specs", {"final_status": "passed"})
    await add_attempt(store, spec_id, 0, "failed", 10)
    reconciler = Reconciler(store)

    await reconciler.reconcile(spec_id)
    await add_attempt(store, spec_id, 1, "timedOut", 20)
    await reconciler.reconcile(spec_id)
    await reconciler.reconcile(spec_id)

    spec = await store.find_one("specs", spec_id)
    assert spec is not None
    assert spec["final_status"] == "timedOut"
    assert spec["total_duration"] == 30
    assert spec["attempts"] == 2


async def test_reconcile_ignores_other_specs(store: InMemoryDocumentStore) -> None:
    """Only the spec's own attempts are folded."""
    spec_id = await store.insert_one("specs", {})
    await add_attempt(store, spec_id, 0, "passed", 5)
    await add_attempt(store, "other-spec", 0, "failed", 500)

    await Reconciler(store).reconcile(spec_id)

    spec = await store.find_one("specs", spec_id)
    assert spec is not None
    assert spec["final_status"] == "passed"
    assert spec["total_duration"] == 5
