from __future__ import annotations

import copy
import datetime
import threading
from typing import Any, Callable, Mapping, Optional

from .base import DocumentNotFoundError, DocumentStore, apply_changes, split_document_path


class InMemoryDocumentStore(DocumentStore):
    """Process-local document store used for tests and the demo profile."""

    def __init__(self, clock: Optional[Callable[[], datetime.datetime]] = None) -> None:
        super().__init__(clock)
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = threading.RLock()
        self.write_count = 0

    def get(self, path: str) -> Optional[dict[str, Any]]:
        collection, doc_id = split_document_path(path)
        with self._lock:
            document = self._collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(document) if document is not None else None

    def set(self, path: str, data: Mapping[str, Any], *, merge: bool = False) -> None:
        collection, doc_id = split_document_path(path)
        with self._lock:
            documents = self._collections.setdefault(collection, {})
            documents[doc_id] = apply_changes(
                documents.get(doc_id), dict(data), self.now(), merge=merge
            )
            self.write_count += 1

    def update(self, path: str, data: Mapping[str, Any]) -> None:
        collection, doc_id = split_document_path(path)
        with self._lock:
            documents = self._collections.get(collection, {})
            if doc_id not in documents:
                raise DocumentNotFoundError(f"No document at {path}")
            documents[doc_id] = apply_changes(
                documents[doc_id], dict(data), self.now(), merge=True
            )
            self.write_count += 1

    def delete(self, path: str) -> None:
        collection, doc_id = split_document_path(path)
        with self._lock:
            self._collections.get(collection, {}).pop(doc_id, None)
            self.write_count += 1

    def list_documents(self, collection: str) -> list[tuple[str, dict[str, Any]]]:
        with self._lock:
            documents = self._collections.get(collection, {})
            return [(doc_id, copy.deepcopy(doc)) for doc_id, doc in sorted(documents.items())]

    def set_many(self, collection: str, documents: Mapping[str, Mapping[str, Any]]) -> None:
        with self._lock:
            target = self._collections.setdefault(collection, {})
            now = self.now()
            for doc_id, data in documents.items():
                target[doc_id] = apply_changes(None, dict(data), now, merge=False)
            self.write_count += 1
