"""End-of-run aggregation of spec outcomes into run and suite statistics."""

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from bug0.studio_reporter.models.records import (
    RunRecord,
    RunStatus,
    RunSummary,
    SpecRecord,
    StatusCounts,
    SuiteRecord,
)
from bug0.studio_reporter.store.base import RUNS, SPECS, SUITES, DocumentStore

logger = logging.getLogger(__name__)

_COUNT_FIELDS = {
    "passed": "passed",
    "failed": "failed",
    "flaky": "flaky",
    "skipped": "skipped",
    "timedOut": "timed_out",
    "interrupted": "interrupted",
}


def count_statuses(specs: Iterable[SpecRecord]) -> StatusCounts:
    """Count specs per final status."""
    counts = StatusCounts()
    for spec in specs:
        counts.total_tests += 1
        field = _COUNT_FIELDS[spec.final_status]
        setattr(counts, field, getattr(counts, field) + 1)
    return counts


def derive_run_status(counts: StatusCounts) -> RunStatus:
    """Overall run status; flaky and skipped specs do not override a pass."""
    if counts.failed:
        return "failed"
    if counts.timed_out:
        return "timedOut"
    if counts.interrupted:
        return "interrupted"
    return "passed"


def _suite_fields(counts: StatusCounts, duration: int) -> dict[str, int]:
    return {
        "total_tests": counts.total_tests,
        "passed_tests": counts.passed,
        "failed_tests": counts.failed,
        "flaky_tests": counts.flaky,
        "skipped_tests": counts.skipped,
        "timed_out_tests": counts.timed_out,
        "interrupted_tests": counts.interrupted,
        "duration": duration,
    }


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Aggregator:
    """Writes run and suite statistics derived from the persisted specs.

    Must run after every attempt recorded by this process has been stored,
    otherwise the figures undercount.
    """

    def __init__(
        self,
        store: DocumentStore,
        run_id: str,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize aggregator for a run."""
        self.store = store
        self.run_id = run_id
        self.clock = clock

    async def finalize(self) -> RunSummary:
        """Update the run record, then every suite of the run."""
        documents = await self.store.find(SPECS, {"run_id": self.run_id})
        specs = [SpecRecord.model_validate(d) for d in documents]
        logger.info(f"Found {len(specs)} specs for run {self.run_id}")

        counts = count_statuses(specs)
        status = derive_run_status(counts)
        total_test_duration = sum(spec.total_duration for spec in specs)

        now = self.clock()
        start_time = await self._run_start_time(now)
        duration = max(0, int((now - start_time).total_seconds() * 1000))

        await self.store.update_one(
            RUNS,
            self.run_id,
            {
                **counts.model_dump(),
                "status": status,
                "end_time": now,
                "duration": duration,
                "total_test_duration": total_test_duration,
                "updated_at": now,
            },
        )
        logger.info(f"Test run completed: {status}")
        logger.info(
            f"Stats - Passed: {counts.passed}/{counts.total_tests}, "
            f"Failed: {counts.failed}, Flaky: {counts.flaky}"
        )
        logger.info(
            f"Duration - Wall-clock: {duration}ms, "
            f"Total test time: {total_test_duration}ms"
        )

        suites_updated = await self._roll_up_suites(specs)

        return RunSummary(
            run_id=self.run_id,
            status=status,
            duration=duration,
            total_test_duration=total_test_duration,
            suites_updated=suites_updated,
            **counts.model_dump(),
        )

    async def _run_start_time(self, default: datetime) -> datetime:
        """Start time from the persisted run, not from process state."""
        document = await self.store.find_one(RUNS, self.run_id)
        if document is None:
            return default
        start_time = RunRecord.model_validate(document).start_time
        if start_time.tzinfo is None:
            start_time = start_time.replace(tzinfo=UTC)
        return start_time

    async def _roll_up_suites(self, specs: list[SpecRecord]) -> int:
        """Write counts and durations of every suite, descendants included.

        One read of the suites and one batched write, whatever the number of
        suites. Failures are logged; the run record is already final.
        """
        try:
            documents = await self.store.find(SUITES, {"run_id": self.run_id})
            suites = {
                suite.id: suite
                for suite in (SuiteRecord.model_validate(d) for d in documents)
            }
            if not suites:
                return 0

            specs_by_suite: dict[str, list[SpecRecord]] = defaultdict(list)
            for spec in specs:
                suite_id: str | None = spec.suite_id
                seen: set[str] = set()
                while suite_id in suites and suite_id not in seen:
                    seen.add(suite_id)
                    specs_by_suite[suite_id].append(spec)
                    suite_id = suites[suite_id].parent_suite_id

            now = self.clock()
            updates = {}
            for suite_id in suites:
                suite_specs = specs_by_suite.get(suite_id, [])
                fields: dict[str, object] = dict(
                    _suite_fields(
                        count_statuses(suite_specs),
                        sum(spec.total_duration for spec in suite_specs),
                    )
                )
                fields["updated_at"] = now
                updates[suite_id] = fields

            await self.store.update_many(SUITES, updates)
        except Exception:
            logger.exception(f"Failed to update suite durations for run {self.run_id}")
            return 0

        logger.info(f"Updated durations for {len(updates)} suites")
        return len(updates)
