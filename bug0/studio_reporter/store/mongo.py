"""MongoDB document store."""

import logging
from collections.abc import Mapping
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import AsyncMongoClient, UpdateOne
from pymongo.errors import PyMongoError

from bug0.studio_reporter.store.base import Document, DocumentStore

logger = logging.getLogger(__name__)


def _object_id(document_id: str) -> ObjectId:
    try:
        return ObjectId(document_id)
    except InvalidId as e:
        raise ValueError(f"Invalid document identifier: {document_id}") from e


def _with_string_id(document: Mapping[str, Any]) -> Document:
    result = dict(document)
    result["_id"] = str(result["_id"])
    return result


class MongoDocumentStore(DocumentStore):
    """Document store backed by a MongoDB database."""

    def __init__(self, url: str, database: str | None = None) -> None:
        """Initialize the store; no connection is made until connect()."""
        self.url = url
        self.database_name = database
        self._client: AsyncMongoClient[Document] | None = None

    @property
    def _db(self) -> Any:
        if self._client is None:
            raise RuntimeError("MongoDB store is not connected")
        if self.database_name:
            return self._client[self.database_name]
        return self._client.get_default_database("studio")

    async def connect(self) -> None:
        """Create the client and verify the server is reachable."""
        if self._client is not None:
            return

        client: AsyncMongoClient[Document] = AsyncMongoClient(
            self.url,
            serverSelectionTimeoutMS=10000,
            socketTimeoutMS=45000,
            connectTimeoutMS=10000,
            tz_aware=True,
        )
        try:
            await client.admin.command("ping")
        except PyMongoError as e:
            logger.error(f"MongoDB connection failed: {e}")
            if "querySrv" in str(e) or "DNS" in str(e) or "ETIMEOUT" in str(e):
                logger.error(
                    "DNS resolution failed. Try using a direct connection string "
                    "(mongodb://) instead of mongodb+srv://"
                )
            await client.close()
            raise

        self._client = client
        logger.info("Connected to MongoDB")

    async def close(self) -> None:
        """Close the client if connected."""
        if self._client is None:
            return
        await self._client.close()
        self._client = None

    async def insert_one(self, collection: str, document: Mapping[str, Any]) -> str:
        """Insert a document and return its ObjectId as a string."""
        result = await self._db[collection].insert_one(dict(document))
        return str(result.inserted_id)

    async def update_one(
        self, collection: str, document_id: str, fields: Mapping[str, Any]
    ) -> bool:
        """Set fields on one document."""
        result = await self._db[collection].update_one(
            {"_id": _object_id(document_id)}, {"$set": dict(fields)}
        )
        return bool(result.matched_count)

    async def find_one(self, collection: str, document_id: str) -> Document | None:
        """Fetch a document by identifier."""
        document = await self._db[collection].find_one(
            {"_id": _object_id(document_id)}
        )
        return _with_string_id(document) if document is not None else None

    async def find(
        self,
        collection: str,
        query: Mapping[str, Any],
        sort: str | None = None,
    ) -> list[Document]:
        """Fetch every document matching the query."""
        cursor = self._db[collection].find(dict(query))
        if sort is not None:
            cursor = cursor.sort(sort, 1)
        return [_with_string_id(document) async for document in cursor]

    async def update_many(
        self, collection: str, updates: Mapping[str, Mapping[str, Any]]
    ) -> int:
        """Apply all updates with a single bulk write."""
        if not updates:
            return 0
        operations = [
            UpdateOne({"_id": _object_id(document_id)}, {"$set": dict(fields)})
            for document_id, fields in updates.items()
        ]
        result = await self._db[collection].bulk_write(operations)
        return result.matched_count
