"""Select a document store from a connection string."""

from bug0.studio_reporter.store.base import DocumentStore
from bug0.studio_reporter.store.memory import InMemoryDocumentStore
from bug0.studio_reporter.store.mongo import MongoDocumentStore


def open_store(url: str) -> DocumentStore:
    """Create an unconnected store for a connection string.

    Args:
        url: ``mongodb://``, ``mongodb+srv://`` or ``memory://`` URL

    Raises:
        ValueError: If the URL scheme is not supported

    """
    if url.startswith(("mongodb://", "mongodb+srv://")):
        return MongoDocumentStore(url)
    if url.startswith("memory://"):
        return InMemoryDocumentStore()
    scheme = url.split("://", 1)[0] if "://" in url else url
    raise ValueError(
        f"Unsupported store URL scheme: {scheme}. "
        "Must be one of: mongodb, mongodb+srv, memory"
    )
