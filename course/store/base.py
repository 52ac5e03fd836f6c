"""Path-addressed document store interface shared by every backend."""

from __future__ import annotations

import datetime
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

TIMESTAMP_MARKER = "__timestamp__"


class StoreError(RuntimeError):
    """Raised when a document store operation fails."""


class StoreConfigurationError(StoreError):
    """Raised when the document store is not configured correctly."""


class DocumentNotFoundError(StoreError):
    """Raised when an update targets a document that does not exist."""


@dataclass(frozen=True)
class Increment:
    """Field transform adding ``amount`` to the stored number (missing counts as 0)."""

    amount: int | float


@dataclass(frozen=True)
class ArrayAppend:
    """Field transform appending every element to the stored list, duplicates included."""

    elements: tuple

    def __init__(self, *elements: Any) -> None:
        object.__setattr__(self, "elements", tuple(elements))


class _ServerTimestamp:
    _instance: Optional["_ServerTimestamp"] = None

    def __new__(cls) -> "_ServerTimestamp":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __copy__(self) -> "_ServerTimestamp":
        return self

    def __deepcopy__(self, memo: dict) -> "_ServerTimestamp":
        return self

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _check_segments(segments: tuple[str, ...]) -> None:
    for segment in segments:
        if not segment or not str(segment).strip():
            raise ValueError("Path segments must be non-empty.")
        if "/" in str(segment):
            raise ValueError(f"Path segment {segment!r} must not contain '/'.")


def collection_path(*segments: str) -> str:
    """Join segments into a collection path (odd number of segments)."""
    _check_segments(segments)
    if len(segments) % 2 != 1:
        raise ValueError("A collection path needs an odd number of segments.")
    return "/".join(str(segment) for segment in segments)


def document_path(*segments: str) -> str:
    """Join segments into a document path (even number of segments)."""
    _check_segments(segments)
    if not segments or len(segments) % 2 != 0:
        raise ValueError("A document path needs an even number of segments.")
    return "/".join(str(segment) for segment in segments)


def split_document_path(path: str) -> tuple[str, str]:
    """Return ``(collection_path, doc_id)`` for a document path."""
    parent, _, doc_id = path.rpartition("/")
    if not parent or not doc_id:
        raise ValueError(f"Invalid document path: {path!r}")
    return parent, doc_id


def resolve_value(existing: Any, value: Any, now: datetime.datetime) -> Any:
    """Apply a field transform (or plain value) against the stored value."""
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, Increment):
        base = existing if isinstance(existing, (int, float)) and not isinstance(existing, bool) else 0
        return base + value.amount
    if isinstance(value, ArrayAppend):
        items = list(existing) if isinstance(existing, list) else []
        items.extend(resolve_value(None, element, now) for element in value.elements)
        return items
    if isinstance(value, Mapping):
        return {key: resolve_value(None, item, now) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [resolve_value(None, item, now) for item in value]
    return value


def apply_changes(
    current: Optional[Mapping[str, Any]],
    changes: Mapping[str, Any],
    now: datetime.datetime,
    *,
    merge: bool,
) -> dict[str, Any]:
    """Return the document produced by writing ``changes`` over ``current``."""
    document: dict[str, Any] = dict(current) if (merge and current) else {}
    for key, value in changes.items():
        document[key] = resolve_value(document.get(key), value, now)
    return document


def serialize_value(value: Any) -> Any:
    """Convert a resolved document value into a JSON-compatible structure."""
    if isinstance(value, datetime.datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        return {TIMESTAMP_MARKER: value.isoformat()}
    if isinstance(value, Mapping):
        return {str(key): serialize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    return value


def deserialize_value(value: Any) -> Any:
    """Inverse of :func:`serialize_value`."""
    if isinstance(value, Mapping):
        if set(value.keys()) == {TIMESTAMP_MARKER}:
            return datetime.datetime.fromisoformat(str(value[TIMESTAMP_MARKER]))
        return {key: deserialize_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [deserialize_value(item) for item in value]
    return value


class DocumentStore(ABC):
    """Hierarchical document store addressed by ``collection/doc/collection/doc`` paths.

    Values written through :meth:`set`, :meth:`update` and :meth:`set_many`
    may contain :class:`Increment`, :class:`ArrayAppend` and
    :data:`SERVER_TIMESTAMP`; the store resolves them at write time using
    its own clock.
    """

    def __init__(self, clock: Optional[Callable[[], datetime.datetime]] = None) -> None:
        self._clock = clock or utcnow

    def now(self) -> datetime.datetime:
        return self._clock()

    @abstractmethod
    def get(self, path: str) -> Optional[dict[str, Any]]:
        """Return the document at ``path`` or None when it does not exist."""

    @abstractmethod
    def set(self, path: str, data: Mapping[str, Any], *, merge: bool = False) -> None:
        """Create or replace the document; with ``merge`` only the given fields change."""

    @abstractmethod
    def update(self, path: str, data: Mapping[str, Any]) -> None:
        """Change fields of an existing document, raising DocumentNotFoundError otherwise."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove the document; deleting a missing document is not an error."""

    @abstractmethod
    def list_documents(self, collection: str) -> list[tuple[str, dict[str, Any]]]:
        """Return ``(doc_id, document)`` pairs for every document in the collection."""

    def set_many(self, collection: str, documents: Mapping[str, Mapping[str, Any]]) -> None:
        """Write several documents of one collection as a single batch."""
        for doc_id, data in documents.items():
            self.set(f"{collection}/{doc_id}", data)
