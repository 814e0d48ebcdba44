"""Abstract base class for document stores."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

Document = dict[str, Any]

RUNS = "testruns"
SUITES = "suites"
SPECS = "specs"
ATTEMPTS = "testresults"
ATTACHMENTS = "attachments"


class DocumentStore(ABC):
    """Abstract base for the store holding run records.

    Identifiers generated by the store are exposed as opaque strings. Filters
    are equality matches on top-level fields.
    """

    async def __aenter__(self) -> "DocumentStore":
        """Connect when entering an async context."""
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        """Close when leaving an async context."""
        await self.close()

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection to the store."""

    @abstractmethod
    async def close(self) -> None:
        """Release the connection to the store."""

    @abstractmethod
    async def insert_one(self, collection: str, document: Mapping[str, Any]) -> str:
        """Insert a document and return its generated identifier.

        Args:
            collection: Collection name
            document: Document fields, without identifier

        Returns:
            Identifier assigned by the store

        """

    @abstractmethod
    async def update_one(
        self, collection: str, document_id: str, fields: Mapping[str, Any]
    ) -> bool:
        """Set fields on one document.

        Returns:
            True if a document matched the identifier

        """

    @abstractmethod
    async def find_one(self, collection: str, document_id: str) -> Document | None:
        """Fetch a document by identifier, with the identifier under ``_id``."""

    @abstractmethod
    async def find(
        self,
        collection: str,
        query: Mapping[str, Any],
        sort: str | None = None,
    ) -> list[Document]:
        """Fetch every document matching an equality query.

        Args:
            collection: Collection name
            query: Field values the documents must all match
            sort: Optional field to sort ascending on

        """

    @abstractmethod
    async def update_many(
        self, collection: str, updates: Mapping[str, Mapping[str, Any]]
    ) -> int:
        """Apply per-document field updates as one batched write.

        Args:
            collection: Collection name
            updates: Fields to set, keyed by document identifier

        Returns:
            Number of documents matched

        """
