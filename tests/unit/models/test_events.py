"""Tests for executor event models."""

from datetime import UTC, datetime

import pytest
from pydantic import TypeAdapter, ValidationError

from bug0.studio_reporter.models.events import (
    AttemptReport,
    ReporterEvent,
    RunEnded,
    RunStarted,
    SuiteNode,
    TestEnded,
    TestStarted,
)

events_adapter = TypeAdapter(ReporterEvent)


def test_event_union_dispatches_on_kind() -> None:
    """The event union picks the model from the kind tag."""
    run_start = events_adapter.validate_python(
        {"kind": "run_start", "suite": {"title": ""}, "total_tests": 3}
    )
    run_end = events_adapter.validate_python({"kind": "run_end", "status": "failed"})

    assert isinstance(run_start, RunStarted)
    assert run_start.total_tests == 3
    assert isinstance(run_end, RunEnded)
    assert run_end.status == "failed"


def test_test_started_defaults() -> None:
    """TestStarted fills optional test fields with defaults."""
    event = events_adapter.validate_python(
        {
            "kind": "test_start",
            "test": {
                "test_id": "abc",
                "title": "Login",
                "location": {"file": "login.spec.ts", "line": 5},
            },
        }
    )

    assert isinstance(event, TestStarted)
    assert event.test.tags == []
    assert event.test.suite_chain == []
    assert event.test.expected_status == "passed"
    assert event.test.location.column == 0


def test_test_ended_parses_nested_steps_and_attachments() -> None:
    """TestEnded parses recursive steps and inline attachment bodies."""
    event = events_adapter.validate_python(
        {
            "kind": "test_end",
            "test": {
                "test_id": "abc",
                "title": "Login",
                "location": {"file": "login.spec.ts"},
            },
            "result": {
                "retry": 1,
                "status": "timedOut",
                "start_time": "2026-01-01T12:00:00Z",
                "steps": [
                    {
                        "title": "outer",
                        "steps": [{"title": "inner", "category": "pw:api"}],
                    }
                ],
                "attachments": [
                    {"name": "log", "content_type": "text/plain", "body": "hello"}
                ],
            },
        }
    )

    assert isinstance(event, TestEnded)
    assert event.result.start_time == datetime(2026, 1, 1, 12, tzinfo=UTC)
    assert event.result.steps[0].steps[0].category == "pw:api"
    assert event.result.attachments[0].body == b"hello"


def test_unknown_kind_rejected() -> None:
    """The event union rejects unknown kinds."""
    with pytest.raises(ValidationError):
        events_adapter.validate_python({"kind": "test_paused"})


def test_attempt_report_rejects_unknown_status() -> None:
    """AttemptReport only accepts executor statuses."""
    with pytest.raises(ValidationError) as exc_info:
        AttemptReport(
            status="flaky",  # type: ignore[arg-type]
            start_time=datetime(2026, 1, 1, tzinfo=UTC),
        )
    assert "status" in str(exc_info.value)


def test_suite_node_is_recursive() -> None:
    """SuiteNode nests child suites."""
    tree = SuiteNode.model_validate(
        {"title": "", "suites": [{"title": "a.spec.ts", "suites": [{"title": "x"}]}]}
    )

    assert tree.suites[0].suites[0].title == "x"
    assert tree.suites[0].location is None
