"""Lifecycle events emitted by the test executor."""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field

AttemptStatus = Literal["passed", "failed", "timedOut", "skipped", "interrupted"]


class Location(BaseModel):
    """Source location of a suite, test or error."""

    file: str = Field(..., description="Source file path")
    line: int = Field(default=0, description="1-based line number")
    column: int = Field(default=0, description="1-based column number")


class SuiteNode(BaseModel):
    """Node of the declared suite tree sent at run start.

    Nodes with a blank title are anonymous wrappers (the root, projects
    without a name) and are not persisted.
    """

    title: str = Field(default="", description="Suite title, blank if anonymous")
    location: Location | None = Field(
        default=None, description="Location when the node maps to a source file"
    )
    suites: list["SuiteNode"] = Field(
        default_factory=list, description="Child suites in declaration order"
    )


class SuiteRef(BaseModel):
    """One link of the chain of suites owning a test, root first."""

    title: str = Field(default="", description="Suite title, blank if anonymous")
    location: Location | None = Field(default=None, description="Suite location")


class Annotation(BaseModel):
    """Executor annotation attached to a test."""

    type: str = Field(..., description="Annotation type (e.g., 'skip', 'issue')")
    description: str | None = Field(default=None, description="Annotation text")


class TestCaseInfo(BaseModel):
    """Static description of a test, identical across its retries."""

    __test__ = False

    test_id: str = Field(..., description="Executor test identifier")
    title: str = Field(..., description="Test title")
    title_path: list[str] = Field(
        default_factory=list, description="Titles from the root down to the test"
    )
    location: Location = Field(..., description="Test location")
    suite_chain: list[SuiteRef] = Field(
        default_factory=list, description="Owning suites, root first"
    )
    tags: list[str] = Field(default_factory=list, description="Declared tags")
    annotations: list[Annotation] = Field(
        default_factory=list, description="Declared annotations"
    )
    expected_status: AttemptStatus = Field(
        default="passed", description="Status the test is expected to end with"
    )
    timeout: int = Field(default=0, description="Timeout in milliseconds")
    retries: int = Field(default=0, description="Configured retry budget")


class ErrorReport(BaseModel):
    """Error raised by a test attempt or step."""

    message: str = Field(default="", description="Error message")
    stack: str | None = Field(default=None, description="Stack trace")
    snippet: str | None = Field(default=None, description="Source code snippet")
    location: Location | None = Field(default=None, description="Error location")


class StepReport(BaseModel):
    """Step executed during an attempt, possibly with nested steps."""

    title: str = Field(..., description="Step title")
    category: str = Field(default="test.step", description="Step category")
    start_time: datetime | None = Field(default=None, description="Step start")
    duration: int = Field(default=0, description="Duration in milliseconds")
    error: ErrorReport | None = Field(default=None, description="Step error")
    steps: list["StepReport"] = Field(
        default_factory=list, description="Nested steps"
    )


class AttachmentReport(BaseModel):
    """Artifact captured by the executor for an attempt."""

    name: str = Field(..., description="Declared attachment name")
    content_type: str = Field(..., description="Declared MIME type")
    path: str | None = Field(default=None, description="File holding the payload")
    body: bytes | None = Field(default=None, description="Inline payload")


class AttemptReport(BaseModel):
    """Outcome of a single execution attempt of a test."""

    retry: int = Field(default=0, description="Retry index, 0 for the first try")
    status: AttemptStatus = Field(..., description="Attempt status")
    duration: int = Field(default=0, description="Duration in milliseconds")
    start_time: datetime = Field(..., description="Attempt start")
    error: ErrorReport | None = Field(default=None, description="Failure detail")
    worker_index: int = Field(default=0, description="Worker identifier")
    parallel_index: int = Field(default=0, description="Parallel slot identifier")
    project_name: str | None = Field(default=None, description="Executor project")
    steps: list[StepReport] = Field(default_factory=list, description="Step trace")
    stdout: list[str] = Field(default_factory=list, description="Captured stdout")
    stderr: list[str] = Field(default_factory=list, description="Captured stderr")
    attachments: list[AttachmentReport] = Field(
        default_factory=list, description="Captured artifacts"
    )


class RunStarted(BaseModel):
    """Run start, carrying the declared suite tree."""

    kind: Literal["run_start"] = "run_start"
    suite: SuiteNode = Field(..., description="Root of the declared suite tree")
    total_tests: int = Field(default=0, description="Number of declared tests")


class TestStarted(BaseModel):
    """A test attempt is about to run."""

    __test__ = False

    kind: Literal["test_start"] = "test_start"
    test: TestCaseInfo


class TestEnded(BaseModel):
    """A test attempt finished."""

    __test__ = False

    kind: Literal["test_end"] = "test_end"
    test: TestCaseInfo
    result: AttemptReport


class RunEnded(BaseModel):
    """All tests finished; the status is informational only."""

    kind: Literal["run_end"] = "run_end"
    status: Literal["passed", "failed", "timedout", "interrupted"] = "passed"


ReporterEvent = Annotated[
    RunStarted | TestStarted | TestEnded | RunEnded,
    Field(discriminator="kind"),
]
