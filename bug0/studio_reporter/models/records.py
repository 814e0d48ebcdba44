"""Document shapes persisted for a test run."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from bug0.studio_reporter.models.events import AttemptStatus, Location

FinalStatus = Literal[
    "passed", "failed", "flaky", "timedOut", "skipped", "interrupted"
]
RunStatus = Literal["running", "passed", "failed", "timedOut", "interrupted"]
SuiteType = Literal["file", "group"]
AttachmentType = Literal["screenshot", "video", "trace", "diff", "log", "other"]


class Record(BaseModel):
    """Base for persisted documents.

    The store identifier is read back from ``_id`` and never written.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = Field(default=None, alias="_id", exclude=True)
    created_at: datetime | None = Field(default=None, description="Creation time")
    updated_at: datetime | None = Field(default=None, description="Last update time")

    def to_document(self) -> dict[str, object]:
        """Dump the record in the shape stored in the document store."""
        return self.model_dump(mode="python", exclude_none=True)


class StatusCounts(BaseModel):
    """Number of specs per final status."""

    total_tests: int = Field(default=0, description="Number of specs")
    passed: int = Field(default=0, description="Specs that passed")
    failed: int = Field(default=0, description="Specs that failed")
    flaky: int = Field(default=0, description="Specs that passed after a failure")
    skipped: int = Field(default=0, description="Specs that were skipped")
    timed_out: int = Field(default=0, description="Specs that timed out")
    interrupted: int = Field(default=0, description="Specs that were interrupted")


class RunRecord(Record, StatusCounts):
    """One test-execution session."""

    project_name: str = Field(default="Unknown", description="Project display name")
    project_id: str | None = Field(default=None, description="Project identifier")
    execution_id: str = Field(..., description="External execution identifier")
    start_time: datetime = Field(..., description="Run start")
    end_time: datetime | None = Field(default=None, description="Run end")
    duration: int = Field(default=0, description="Wall-clock milliseconds")
    total_test_duration: int = Field(
        default=0, description="Sum of spec durations in milliseconds, retries included"
    )
    status: RunStatus = Field(default="running", description="Overall run status")
    environment: Literal["production", "development"] = Field(
        default="development", description="Environment the run executed in"
    )
    git_commit_sha: str | None = Field(default=None, description="Tested commit")
    git_branch: str = Field(default="main", description="Tested branch")
    report_url: str | None = Field(default=None, description="Link to the report")
    shard_index: int | None = Field(default=None, description="Shard of this run")
    shard_total: int | None = Field(default=None, description="Number of shards")
    ci_provider: str | None = Field(
        default=None, description="CI provider, None outside CI"
    )


class SuiteRecord(Record):
    """Node of the persisted suite hierarchy."""

    run_id: str = Field(..., description="Owning run")
    parent_suite_id: str | None = Field(
        default=None, description="Parent suite, None for a root suite"
    )
    title: str = Field(..., description="Suite title")
    path: str = Field(..., description="Full title path used as identity key")
    file_path: str = Field(default="", description="Source file, empty for groups")
    location: Location | None = Field(default=None, description="Suite location")
    suite_type: SuiteType = Field(default="group", description="File or group")
    order: int = Field(default=0, description="Position among siblings")
    total_tests: int = Field(default=0, description="Specs in the subtree")
    passed_tests: int = Field(default=0, description="Passed specs in the subtree")
    failed_tests: int = Field(default=0, description="Failed specs in the subtree")
    flaky_tests: int = Field(default=0, description="Flaky specs in the subtree")
    skipped_tests: int = Field(default=0, description="Skipped specs in the subtree")
    timed_out_tests: int = Field(
        default=0, description="Timed out specs in the subtree"
    )
    interrupted_tests: int = Field(
        default=0, description="Interrupted specs in the subtree"
    )
    duration: int = Field(
        default=0, description="Sum of subtree spec durations in milliseconds"
    )

    def to_document(self) -> dict[str, object]:
        """Dump the suite, keeping a null parent for root suites."""
        document = super().to_document()
        document["parent_suite_id"] = self.parent_suite_id
        return document


class SpecRecord(Record):
    """One logical test within a run."""

    suite_id: str = Field(..., description="Owning suite")
    run_id: str = Field(..., description="Owning run")
    title: str = Field(..., description="Test title")
    full_title: str = Field(..., description="Title path joined with ' › '")
    location: Location = Field(..., description="Test location")
    test_id: str = Field(..., description="Executor test identifier")
    tags: list[str] = Field(default_factory=list, description="Declared tags")
    annotations: list[dict[str, str | None]] = Field(
        default_factory=list, description="Declared annotations as type/description"
    )
    expected_status: AttemptStatus = Field(
        default="passed", description="Status the test is expected to end with"
    )
    timeout: int = Field(default=0, description="Timeout in milliseconds")
    retries: int = Field(default=0, description="Configured retry budget")
    final_status: FinalStatus = Field(
        default="passed", description="Status derived from all attempts"
    )
    total_duration: int = Field(
        default=0, description="Sum of attempt durations in milliseconds"
    )
    attempts: int = Field(default=0, description="Number of recorded attempts")


class ErrorRecord(BaseModel):
    """Error detail stored with an attempt or step."""

    message: str = ""
    stack: str | None = None
    snippet: str | None = None
    location: Location | None = None


class StepRecord(BaseModel):
    """Step of an attempt with its offset into the attempt video."""

    title: str = Field(..., description="Step title")
    category: str = Field(..., description="Step category")
    start_time: datetime | None = Field(default=None, description="Step start")
    duration: int = Field(default=0, description="Duration in milliseconds")
    video_timestamp: float = Field(
        default=0.0, description="Seconds from attempt start, never negative"
    )
    error: ErrorRecord | None = Field(default=None, description="Step error")
    steps: list["StepRecord"] = Field(
        default_factory=list, description="Nested steps"
    )


class AttemptRecord(Record):
    """One execution attempt of a spec; never updated once written."""

    spec_id: str = Field(..., description="Owning spec")
    run_id: str = Field(..., description="Owning run")
    retry_attempt: int = Field(default=0, description="Retry index, 0 first")
    status: AttemptStatus = Field(..., description="Attempt status")
    duration: int = Field(default=0, description="Duration in milliseconds")
    start_time: datetime = Field(..., description="Attempt start")
    error: ErrorRecord | None = Field(default=None, description="Failure detail")
    worker_index: int = Field(default=0, description="Worker identifier")
    parallel_index: int = Field(default=0, description="Parallel slot")
    project_name: str = Field(default="default", description="Executor project")
    steps: list[StepRecord] = Field(default_factory=list, description="Step trace")
    stdout: list[str] = Field(default_factory=list, description="Captured stdout")
    stderr: list[str] = Field(default_factory=list, description="Captured stderr")


class AttachmentRecord(Record):
    """Artifact captured for an attempt."""

    result_id: str = Field(..., description="Owning attempt")
    spec_id: str = Field(..., description="Owning spec")
    run_id: str = Field(..., description="Owning run")
    name: str = Field(..., description="Declared attachment name")
    content_type: str = Field(..., description="Declared MIME type")
    path: str = Field(default="", description="File name, empty for inline bodies")
    body: str | None = Field(default=None, description="Inline text of a log")
    attachment_type: AttachmentType = Field(
        default="other", description="Classified kind"
    )
    captured_at: datetime = Field(..., description="Capture time")


class RunSummary(StatusCounts):
    """Figures written to the run record by the end-of-run aggregation."""

    run_id: str
    status: RunStatus
    duration: int
    total_test_duration: int
    suites_updated: int = 0
