"""Derive the final status of a spec from its attempts."""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime

from bug0.studio_reporter.models.records import AttemptRecord, FinalStatus
from bug0.studio_reporter.store.base import ATTEMPTS, SPECS, DocumentStore

logger = logging.getLogger(__name__)

_FAILING_STATUSES = frozenset({"failed", "timedOut"})


def derive_final_status(statuses: Sequence[str]) -> FinalStatus:
    """Fold attempt statuses, ordered by retry index, into a final status.

    A pass after an earlier failure or timeout is flaky; otherwise the last
    attempt wins. A spec without attempts keeps the passed placeholder.

    Example:
        >>> derive_final_status(["failed", "passed"])
        'flaky'
        >>> derive_final_status(["failed", "timedOut"])
        'timedOut'

    """
    if not statuses:
        return "passed"

    *earlier, last = statuses
    if last == "passed":
        if any(status in _FAILING_STATUSES for status in earlier):
            return "flaky"
        return "passed"
    return last  # type: ignore[return-value]


class Reconciler:
    """Recomputes the derived fields of a spec from its persisted attempts."""

    def __init__(self, store: DocumentStore) -> None:
        """Initialize reconciler."""
        self.store = store

    async def reconcile(self, spec_id: str) -> FinalStatus:
        """Rewrite final status, total duration and attempt count of a spec.

        Reads every attempt of the spec at call time, so running it again,
        or after another attempt's reconciliation, converges on the same state.
        """
        documents = await self.store.find(
            ATTEMPTS, {"spec_id": spec_id}, sort="retry_attempt"
        )
        attempts = [AttemptRecord.model_validate(d) for d in documents]

        final_status = derive_final_status([a.status for a in attempts])
        total_duration = sum(a.duration for a in attempts)

        await self.store.update_one(
            SPECS,
            spec_id,
            {
                "final_status": final_status,
                "total_duration": total_duration,
                "attempts": len(attempts),
                "updated_at": datetime.now(UTC),
            },
        )
        logger.debug(
            f"Spec {spec_id}: {final_status} after {len(attempts)} attempt(s), "
            f"{total_duration}ms"
        )
        return final_status
