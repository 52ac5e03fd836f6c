"""Document store backends for per-user course data."""

from __future__ import annotations

from .base import (
    SERVER_TIMESTAMP,
    ArrayAppend,
    DocumentNotFoundError,
    DocumentStore,
    Increment,
    StoreConfigurationError,
    StoreError,
    collection_path,
    document_path,
)
from .memory import InMemoryDocumentStore


def create_document_store(settings) -> DocumentStore:
    """Build the store selected by ``DOCUMENT_STORE_PROVIDER``."""
    provider = settings.DOCUMENT_STORE_PROVIDER
    if provider == "memory":
        return InMemoryDocumentStore()
    if provider == "sql":
        from .sql import SqlDocumentStore

        return SqlDocumentStore.from_url(settings.DATABASE_URL)
    if provider == "dynamodb":
        from .dynamo import DynamoDocumentStore

        return DynamoDocumentStore.from_settings(settings)
    raise StoreConfigurationError(
        f"Unknown DOCUMENT_STORE_PROVIDER {provider!r}; expected memory, sql or dynamodb."
    )


__all__ = [
    "SERVER_TIMESTAMP",
    "ArrayAppend",
    "DocumentNotFoundError",
    "DocumentStore",
    "Increment",
    "InMemoryDocumentStore",
    "StoreConfigurationError",
    "StoreError",
    "collection_path",
    "create_document_store",
    "document_path",
]
