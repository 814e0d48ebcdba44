"""Tests for attempt recording."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from bug0.studio_reporter.attachments import AttachmentVault
from bug0.studio_reporter.attempts import AttemptRecorder, map_steps, video_offset
from bug0.studio_reporter.models.events import (
    AttachmentReport,
    AttemptReport,
    ErrorReport,
    Location,
    StepReport,
    TestCaseInfo,
)
from bug0.studio_reporter.reconciler import Reconciler
from bug0.studio_reporter.store.memory import InMemoryDocumentStore

START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
async def store() -> AsyncGenerator[InMemoryDocumentStore, None]:
    """Create a connected in-memory store."""
    store = InMemoryDocumentStore()
    await store.connect()
    yield store
    await store.close()


@pytest.fixture
def test_case() -> TestCaseInfo:
    """Create a test description."""
    return TestCaseInfo(
        test_id="abcdef1234567890",
        title="Login",
        title_path=["", "login.spec.ts", "Login suite", "Login"],
        location=Location(file="login.spec.ts", line=4, column=3),
    )


def make_recorder(store: InMemoryDocumentStore) -> AttemptRecorder:
    """Create a recorder for run-1."""
    return AttemptRecorder(
        store, "run-1", AttachmentVault(store, "run-1"), Reconciler(store)
    )


def test_video_offset_clamps_clock_skew() -> None:
    """A step starting before its attempt gets a zero offset."""
    assert video_offset(START + timedelta(seconds=2.5), START) == 2.5
    assert video_offset(START - timedelta(seconds=1), START) == 0.0
    assert video_offset(None, START) == 0.0


def test_video_offset_mixes_naive_and_aware_times() -> None:
    """Naive step times are read as UTC against an aware attempt start."""
    naive_step = datetime(2026, 1, 1, 12, 0, 3)

    assert video_offset(naive_step, START) == 3.0
    naive_start = START.replace(tzinfo=None)
    assert video_offset(START + timedelta(seconds=2), naive_start) == 2.0


def test_map_steps_keeps_nesting_and_errors() -> None:
    """map_steps computes offsets for nested steps."""
    steps = [
        StepReport(
            title="Click sign in",
            category="test.step",
            start_time=START + timedelta(seconds=1),
            duration=300,
            error=ErrorReport(message="boom", stack="at x", snippet="ignored"),
            steps=[
                StepReport(
                    title="locator.click",
                    category="pw:api",
                    start_time=START + timedelta(seconds=1, milliseconds=500),
                )
            ],
        )
    ]

    mapped = map_steps(steps, START)

    assert mapped[0].video_timestamp == 1.0
    assert mapped[0].error is not None
    assert mapped[0].error.message == "boom"
    assert mapped[0].error.snippet is None
    assert mapped[0].steps[0].title == "locator.click"
    assert mapped[0].steps[0].video_timestamp == 1.5


async def test_record_stores_attempt_and_reconciles(
    store: InMemoryDocumentStore, test_case: TestCaseInfo
) -> None:
    """record stores the attempt verbatim and updates the spec."""
    spec_id = await store.insert_one("specs", {"final_status": "passed", "attempts": 0})
    result = AttemptReport(
        retry=0,
        status="failed",
        duration=30000,
        start_time=START,
        error=ErrorReport(
            message="Timeout 30000ms exceeded",
            location=Location(file="login.spec.ts", line=9),
        ),
        worker_index=3,
        parallel_index=1,
        stdout=["hello\n"],
        stderr=["warn\n"],
        steps=[StepReport(title="goto", start_time=START - timedelta(seconds=1))],
    )

    result_id = await make_recorder(store).record(spec_id, test_case, result)

    attempt = await store.find_one("testresults", result_id)
    assert attempt is not None
    assert attempt["spec_id"] == spec_id
    assert attempt["run_id"] == "run-1"
    assert attempt["retry_attempt"] == 0
    assert attempt["status"] == "failed"
    assert attempt["error"]["message"] == "Timeout 30000ms exceeded"
    assert attempt["error"]["location"]["line"] == 9
    assert attempt["worker_index"] == 3
    assert attempt["parallel_index"] == 1
    assert attempt["project_name"] == "default"
    assert attempt["stdout"] == ["hello\n"]
    assert attempt["stderr"] == ["warn\n"]
    assert attempt["steps"][0]["video_timestamp"] == 0.0

    spec = await store.find_one("specs", spec_id)
    assert spec is not None
    assert spec["final_status"] == "failed"
    assert spec["attempts"] == 1
    assert spec["total_duration"] == 30000


async def test_record_saves_attachments(
    store: InMemoryDocumentStore, test_case: TestCaseInfo
) -> None:
    """Every attachment is stored against the attempt."""
    spec_id = await store.insert_one("specs", {})
    result = AttemptReport(
        status="passed",
        start_time=START,
        project_name="chromium",
        attachments=[
            AttachmentReport(
                name="screenshot", content_type="image/png", path="/r/a.png"
            ),
            AttachmentReport(name="stdout", content_type="text/plain", body=b"ok"),
        ],
    )

    result_id = await make_recorder(store).record(spec_id, test_case, result)

    attachments = await store.find("attachments", {"result_id": result_id})
    assert sorted(a["attachment_type"] for a in attachments) == ["log", "screenshot"]
    attempt = await store.find_one("testresults", result_id)
    assert attempt is not None
    assert attempt["project_name"] == "chromium"


async def test_record_continues_after_attachment_failure(
    store: InMemoryDocumentStore, test_case: TestCaseInfo
) -> None:
    """A failing attachment does not stop the others or reconciliation."""
    spec_id = await store.insert_one("specs", {})
    vault = AttachmentVault(store, "run-1")
    vault.capture = AsyncMock(  # type: ignore[method-assign]
        side_effect=[RuntimeError("write failed"), "att-2"]
    )
    recorder = AttemptRecorder(store, "run-1", vault, Reconciler(store))
    result = AttemptReport(
        status="passed",
        start_time=START,
        attachments=[
            AttachmentReport(name="a", content_type="image/png", path="/r/a.png"),
            AttachmentReport(name="b", content_type="image/png", path="/r/b.png"),
        ],
    )

    await recorder.record(spec_id, test_case, result)

    assert vault.capture.await_count == 2
    spec = await store.find_one("specs", spec_id)
    assert spec is not None
    assert spec["attempts"] == 1


async def test_record_with_naive_step_time(
    store: InMemoryDocumentStore, test_case: TestCaseInfo
) -> None:
    """A step without a timezone does not prevent the attempt from being stored."""
    spec_id = await store.insert_one("specs", {})
    result = AttemptReport(
        status="failed",
        start_time=START,
        steps=[StepReport(title="goto", start_time=datetime(2026, 1, 1, 12, 0, 1))],
    )

    result_id = await make_recorder(store).record(spec_id, test_case, result)

    attempt = await store.find_one("testresults", result_id)
    assert attempt is not None
    assert attempt["steps"][0]["video_timestamp"] == 1.0
    spec = await store.find_one("specs", spec_id)
    assert spec is not None
    assert spec["final_status"] == "failed"
