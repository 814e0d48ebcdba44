"""In-process document store."""

import copy
import uuid
from collections.abc import Mapping
from typing import Any

from bug0.studio_reporter.store.base import Document, DocumentStore


class InMemoryDocumentStore(DocumentStore):
    """Document store keeping collections in process memory."""

    def __init__(self) -> None:
        """Initialize an empty store."""
        self.collections: dict[str, dict[str, Document]] = {}
        self.connected = False

    async def connect(self) -> None:
        """Mark the store as connected."""
        self.connected = True

    async def close(self) -> None:
        """Mark the store as closed; data is kept."""
        self.connected = False

    async def insert_one(self, collection: str, document: Mapping[str, Any]) -> str:
        """Insert a copy of the document under a new identifier."""
        self._ensure_connected()
        document_id = uuid.uuid4().hex[:24]
        stored = copy.deepcopy(dict(document))
        stored["_id"] = document_id
        self.collections.setdefault(collection, {})[document_id] = stored
        return document_id

    async def update_one(
        self, collection: str, document_id: str, fields: Mapping[str, Any]
    ) -> bool:
        """Set fields on one document."""
        self._ensure_connected()
        document = self.collections.get(collection, {}).get(document_id)
        if document is None:
            return False
        document.update(copy.deepcopy(dict(fields)))
        return True

    async def find_one(self, collection: str, document_id: str) -> Document | None:
        """Fetch a copy of a document by identifier."""
        self._ensure_connected()
        document = self.collections.get(collection, {}).get(document_id)
        return copy.deepcopy(document) if document is not None else None

    async def find(
        self,
        collection: str,
        query: Mapping[str, Any],
        sort: str | None = None,
    ) -> list[Document]:
        """Fetch copies of the documents matching every query field."""
        self._ensure_connected()
        matches = [
            copy.deepcopy(document)
            for document in self.collections.get(collection, {}).values()
            if all(document.get(key) == value for key, value in query.items())
        ]
        if sort is not None:
            matches.sort(key=lambda document: document[sort])
        return matches

    async def update_many(
        self, collection: str, updates: Mapping[str, Mapping[str, Any]]
    ) -> int:
        """Apply all updates; unknown identifiers are ignored."""
        matched = 0
        for document_id, fields in updates.items():
            if await self.update_one(collection, document_id, fields):
                matched += 1
        return matched

    def _ensure_connected(self) -> None:
        if not self.connected:
            raise RuntimeError("In-memory store is not connected")
