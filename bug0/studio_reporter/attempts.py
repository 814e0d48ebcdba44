"""Persist test attempts with their step traces and attachments."""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime

from bug0.studio_reporter.attachments import AttachmentVault
from bug0.studio_reporter.models.events import (
    AttemptReport,
    ErrorReport,
    StepReport,
    TestCaseInfo,
)
from bug0.studio_reporter.models.records import AttemptRecord, ErrorRecord, StepRecord
from bug0.studio_reporter.reconciler import Reconciler
from bug0.studio_reporter.store.base import ATTEMPTS, DocumentStore

logger = logging.getLogger(__name__)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


def video_offset(step_start: datetime | None, attempt_start: datetime) -> float:
    """Seconds from attempt start to step start, clamped at zero for clock skew.

    Naive timestamps are taken as UTC.
    """
    if step_start is None:
        return 0.0
    return max(0.0, (_as_utc(step_start) - _as_utc(attempt_start)).total_seconds())


def map_steps(
    steps: Sequence[StepReport], attempt_start: datetime
) -> list[StepRecord]:
    """Map reported steps to stored steps, offsets relative to the attempt."""
    return [
        StepRecord(
            title=step.title,
            category=step.category,
            start_time=step.start_time,
            duration=step.duration,
            video_timestamp=video_offset(step.start_time, attempt_start),
            error=(
                ErrorRecord(message=step.error.message, stack=step.error.stack)
                if step.error
                else None
            ),
            steps=map_steps(step.steps, attempt_start),
        )
        for step in steps
    ]


def _map_error(error: ErrorReport | None) -> ErrorRecord | None:
    if error is None:
        return None
    return ErrorRecord(
        message=error.message,
        stack=error.stack,
        snippet=error.snippet,
        location=error.location,
    )


class AttemptRecorder:
    """Records attempts of a run and keeps their spec reconciled."""

    def __init__(
        self,
        store: DocumentStore,
        run_id: str,
        vault: AttachmentVault,
        reconciler: Reconciler,
    ) -> None:
        """Initialize recorder for a run."""
        self.store = store
        self.run_id = run_id
        self.vault = vault
        self.reconciler = reconciler

    async def record(
        self, spec_id: str, test: TestCaseInfo, result: AttemptReport
    ) -> str:
        """Store one attempt, its attachments, then reconcile the spec.

        A failing attachment is logged and skipped; the attempt and the other
        attachments are still recorded.

        Returns:
            Identifier of the stored attempt

        """
        now = datetime.now(UTC)
        record = AttemptRecord(
            spec_id=spec_id,
            run_id=self.run_id,
            retry_attempt=result.retry,
            status=result.status,
            duration=result.duration,
            start_time=result.start_time,
            error=_map_error(result.error),
            worker_index=result.worker_index,
            parallel_index=result.parallel_index,
            project_name=result.project_name or "default",
            steps=map_steps(result.steps, result.start_time),
            stdout=result.stdout,
            stderr=result.stderr,
            created_at=now,
            updated_at=now,
        )
        result_id = await self.store.insert_one(ATTEMPTS, record.to_document())
        logger.info(
            f"Recorded attempt {result.retry} of '{test.title}': {result.status}"
        )

        for attachment in result.attachments:
            try:
                await self.vault.capture(
                    attachment, result_id, spec_id, result.retry, test.test_id
                )
            except Exception:
                logger.exception(
                    f"Failed to save attachment '{attachment.name}' "
                    f"for '{test.title}' in run {self.run_id}"
                )

        await self.reconciler.reconcile(spec_id)
        return result_id
