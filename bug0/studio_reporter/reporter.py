"""Lifecycle entry point turning executor events into persisted run records."""

import asyncio
import logging
from datetime import UTC, datetime

from bug0.studio_reporter.aggregator import Aggregator
from bug0.studio_reporter.attachments import AttachmentVault
from bug0.studio_reporter.attempts import AttemptRecorder
from bug0.studio_reporter.hierarchy import HierarchyBuilder
from bug0.studio_reporter.identity import IdentityCache
from bug0.studio_reporter.models.config import ReporterConfig
from bug0.studio_reporter.models.events import (
    ReporterEvent,
    RunEnded,
    RunStarted,
    TestCaseInfo,
    TestEnded,
    TestStarted,
)
from bug0.studio_reporter.models.records import RunRecord, RunSummary, SpecRecord
from bug0.studio_reporter.pending import PendingOperations
from bug0.studio_reporter.reconciler import Reconciler
from bug0.studio_reporter.store.base import RUNS, SPECS, DocumentStore

logger = logging.getLogger(__name__)


class StudioReporter:
    """Records one test run into a document store.

    The executor may call the test hooks concurrently for tests running in
    parallel. Failures of a single test are logged and never stop the
    recording of other tests; only a failure to initialize the run is raised.
    """

    def __init__(self, store: DocumentStore, config: ReporterConfig) -> None:
        """Initialize reporter with a connected store."""
        self.store = store
        self.config = config
        self.identities = IdentityCache()
        self.pending = PendingOperations()
        self.run_id: str | None = None
        self.hierarchy: HierarchyBuilder | None = None
        self.recorder: AttemptRecorder | None = None
        self._begin_task: asyncio.Task[None] | None = None

    async def handle(self, event: ReporterEvent) -> RunSummary | None:
        """Dispatch an event to its lifecycle hook.

        Returns:
            Run summary for a run end event, None otherwise

        """
        if isinstance(event, RunStarted):
            await self.on_begin(event)
        elif isinstance(event, TestStarted):
            await self.on_test_begin(event)
        elif isinstance(event, TestEnded):
            await self.on_test_end(event)
        elif isinstance(event, RunEnded):
            return await self.on_end(event)
        else:  # pragma: no cover
            raise TypeError(f"Unknown event: {type(event).__name__}")
        return None

    async def on_begin(self, event: RunStarted) -> None:
        """Create the run record and the declared suite hierarchy.

        Raises:
            Exception: Any store failure; the run is then not recorded

        """
        self._begin_task = asyncio.ensure_future(self._process_begin(event))
        await self._begin_task

    async def on_test_begin(self, event: TestStarted) -> None:
        """Create the spec of a test unless it was already seen in this run."""
        test = event.test
        try:
            if test.test_id in self.identities.specs:
                logger.info(f"Reusing existing spec for retry: {test.title}")
                return
            await self._ensure_spec(test)
        except Exception:
            logger.exception(
                f"Failed to create spec for '{test.title}' in run {self.run_id}"
            )

    async def on_test_end(self, event: TestEnded) -> None:
        """Record the attempt that just finished and reconcile its spec."""
        await self.pending.start(self._process_test_end(event))

    async def on_end(self, event: RunEnded) -> RunSummary | None:
        """Aggregate run and suite statistics once in-flight attempts are stored.

        Returns:
            Summary written to the run record, None if it could not be written

        """
        await self.pending.drain()
        logger.info(f"Executor finished with status {event.status}")

        if self.run_id is None:
            logger.error("Run not initialized, nothing to finalize")
            return None

        try:
            return await Aggregator(self.store, self.run_id).finalize()
        except Exception:
            logger.exception(f"Failed to finalize run {self.run_id}")
            return None

    async def _process_begin(self, event: RunStarted) -> None:
        try:
            now = datetime.now(UTC)
            run = RunRecord(
                project_name=self.config.project_id or "Unknown",
                project_id=self.config.project_id,
                execution_id=self.config.execution_id,
                start_time=now,
                total_tests=event.total_tests,
                environment=self.config.environment,
                git_commit_sha=self.config.git_commit_sha,
                git_branch=self.config.git_branch,
                report_url=self.config.report_url,
                shard_index=self.config.shard_index,
                shard_total=self.config.shard_total,
                ci_provider=self.config.ci_provider,
                created_at=now,
                updated_at=now,
            )
            run_id = await self.store.insert_one(RUNS, run.to_document())
            logger.info(
                f"Initialized for Project: {self.config.project_id}, "
                f"Execution: {self.config.execution_id}"
            )

            hierarchy = HierarchyBuilder(self.store, self.identities.suites, run_id)
            await hierarchy.build(event.suite)

            self.hierarchy = hierarchy
            self.recorder = AttemptRecorder(
                self.store,
                run_id,
                AttachmentVault(self.store, run_id),
                Reconciler(self.store),
            )
            self.run_id = run_id
        except Exception:
            logger.exception("Failed to initialize run")
            raise

    async def _ensure_spec(self, test: TestCaseInfo) -> str | None:
        """Return the spec of a test, creating it and its suites if needed.

        Called from both test hooks, so a result racing its own test begin
        waits for the spec being created instead of missing it.
        """
        if self._begin_task is not None:
            await asyncio.wait([self._begin_task])

        spec_id = self.identities.specs.get(test.test_id)
        if spec_id is not None:
            return spec_id

        if self.run_id is None or self.hierarchy is None:
            logger.error(f"Run not initialized, cannot create spec for: {test.title}")
            return None

        suite_id = await self.hierarchy.ensure_suite(test.suite_chain)
        if suite_id is None:
            logger.error(f"Failed to get/create suite for test: {test.title}")
            return None

        run_id = self.run_id

        async def create() -> str:
            now = datetime.now(UTC)
            spec = SpecRecord(
                suite_id=suite_id,
                run_id=run_id,
                title=test.title,
                full_title=" › ".join(test.title_path),
                location=test.location,
                test_id=test.test_id,
                tags=test.tags,
                annotations=[a.model_dump() for a in test.annotations],
                expected_status=test.expected_status,
                timeout=test.timeout,
                retries=test.retries,
                created_at=now,
                updated_at=now,
            )
            return await self.store.insert_one(SPECS, spec.to_document())

        spec_id, _ = await self.identities.specs.resolve_or_create(
            test.test_id, create
        )
        return spec_id

    async def _process_test_end(self, event: TestEnded) -> None:
        test = event.test
        try:
            spec_id = await self._ensure_spec(test)
            if spec_id is None or self.recorder is None:
                logger.warning(f"No spec recorded for '{test.title}', skipping result")
                return

            await self.recorder.record(spec_id, test, event.result)
        except Exception:
            logger.exception(
                f"Failed to save test result for '{test.title}' in run {self.run_id}"
            )
