"""Data models for executor events, persisted records and configuration."""

from bug0.studio_reporter.models.config import ReporterConfig
from bug0.studio_reporter.models.events import (
    Annotation,
    AttachmentReport,
    AttemptReport,
    ErrorReport,
    Location,
    ReporterEvent,
    RunEnded,
    RunStarted,
    StepReport,
    SuiteNode,
    SuiteRef,
    TestCaseInfo,
    TestEnded,
    TestStarted,
)
from bug0.studio_reporter.models.records import (
    AttachmentRecord,
    AttemptRecord,
    ErrorRecord,
    RunRecord,
    RunSummary,
    SpecRecord,
    StepRecord,
    SuiteRecord,
)

__all__ = [
    "Annotation",
    "AttachmentRecord",
    "AttachmentReport",
    "AttemptRecord",
    "AttemptReport",
    "ErrorRecord",
    "ErrorReport",
    "Location",
    "ReporterConfig",
    "ReporterEvent",
    "RunEnded",
    "RunRecord",
    "RunStarted",
    "RunSummary",
    "SpecRecord",
    "StepRecord",
    "StepReport",
    "SuiteNode",
    "SuiteRecord",
    "SuiteRef",
    "TestCaseInfo",
    "TestEnded",
    "TestStarted",
]
