"""Build the persisted suite hierarchy of a run."""

import itertools
import logging
from collections.abc import Iterator, Sequence
from datetime import UTC, datetime

from bug0.studio_reporter.identity import KeySpace
from bug0.studio_reporter.models.events import SuiteNode, SuiteRef
from bug0.studio_reporter.models.records import SuiteRecord
from bug0.studio_reporter.store.base import SUITES, DocumentStore

logger = logging.getLogger(__name__)

SUITE_PATH_SEPARATOR = "›"


def titled_links(chain: Sequence[SuiteRef]) -> list[SuiteRef]:
    """Drop anonymous links; their children belong to the nearest titled one."""
    return [link for link in chain if link.title.strip()]


def suite_path(chain: Sequence[SuiteRef]) -> str:
    """Return the identity key of the last suite of a chain.

    Example:
        >>> suite_path([SuiteRef(title="login.spec.ts"), SuiteRef(title="Login")])
        'login.spec.ts›Login'

    """
    return SUITE_PATH_SEPARATOR.join(link.title for link in titled_links(chain))


class HierarchyBuilder:
    """Creates suite records for a run, eagerly from the declared tree or on demand.

    Both paths go through ensure_suite(), so a suite path maps to exactly one
    record whichever path reaches it first.
    """

    def __init__(self, store: DocumentStore, suites: KeySpace, run_id: str) -> None:
        """Initialize builder for a run."""
        self.store = store
        self.suites = suites
        self.run_id = run_id
        self._orders: dict[str, int] = {}

    async def build(self, root: SuiteNode) -> int:
        """Create records for every titled node of the declared tree.

        Returns:
            Number of suites known after the pass

        """
        await self._visit(root, [], itertools.count())
        logger.info(f"Suite hierarchy ready with {len(self.suites)} suites")
        return len(self.suites)

    async def ensure_suite(
        self, chain: Sequence[SuiteRef], order: int | None = None
    ) -> str | None:
        """Return the suite identifier for a chain, creating missing suites.

        Ancestors are created before descendants, so a suite never references
        a parent that does not exist yet.

        Args:
            chain: Suites from the root down to the target, anonymous ones included
            order: Position among siblings, when known

        Returns:
            Suite identifier, or None if the chain has no titled suite

        """
        links = titled_links(chain)
        if not links:
            return None
        return await self._ensure(links, order)

    async def _visit(
        self, node: SuiteNode, ancestors: list[SuiteRef], siblings: Iterator[int]
    ) -> None:
        if not node.title.strip():
            for child in node.suites:
                await self._visit(child, ancestors, siblings)
            return

        chain = [*ancestors, SuiteRef(title=node.title, location=node.location)]
        await self._ensure(chain, next(siblings))

        children = itertools.count()
        for child in node.suites:
            await self._visit(child, chain, children)

    async def _ensure(self, links: list[SuiteRef], order: int | None) -> str:
        key = suite_path(links)

        async def create() -> str:
            parent_id = None
            if len(links) > 1:
                parent_id = await self._ensure(links[:-1], None)
            return await self._insert(key, links[-1], parent_id, order or 0)

        suite_id, created = await self.suites.resolve_or_create(key, create)
        if created:
            self._orders[key] = order or 0
        elif order is not None and self._orders.get(key) != order:
            await self.store.update_one(
                SUITES, suite_id, {"order": order, "updated_at": datetime.now(UTC)}
            )
            self._orders[key] = order
        return suite_id

    async def _insert(
        self, key: str, link: SuiteRef, parent_id: str | None, order: int
    ) -> str:
        now = datetime.now(UTC)
        file_path = link.location.file if link.location else ""
        record = SuiteRecord(
            run_id=self.run_id,
            parent_suite_id=parent_id,
            title=link.title,
            path=key,
            file_path=file_path,
            location=link.location,
            suite_type="file" if file_path else "group",
            order=order,
            created_at=now,
            updated_at=now,
        )
        suite_id = await self.store.insert_one(SUITES, record.to_document())
        logger.debug(f"Created suite {key} ({suite_id})")
        return suite_id
