"""Document store persisted as JSON rows in sqlite or PostgreSQL."""

from __future__ import annotations

import datetime
import json
import logging
import os
import sqlite3
import threading
from typing import Any, Callable, Mapping, Optional
from urllib.parse import urlparse

import psycopg
from psycopg.rows import dict_row

from .base import (
    DocumentNotFoundError,
    DocumentStore,
    StoreError,
    apply_changes,
    deserialize_value,
    serialize_value,
    split_document_path,
)

logger = logging.getLogger(__name__)


def _resolve_default_sqlite_path() -> str:
    root_dir = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
    return os.path.join(root_dir, "course_dev.sqlite")


def _normalize_sqlite_path(database_url: str) -> str:
    parsed = urlparse(database_url)
    path = parsed.path or ""
    if path.startswith("/"):
        path = path[1:]
    if path in {"", ":memory:"}:
        return ":memory:"
    if parsed.netloc:
        path = os.path.join(parsed.netloc, path)
    return path or _resolve_default_sqlite_path()


def _dump(document: Mapping[str, Any]) -> str:
    return json.dumps(serialize_value(document), ensure_ascii=False)


def _load(raw: Any) -> dict[str, Any]:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    return deserialize_value(json.loads(raw))


class SqlDocumentStore(DocumentStore):
    """Stores every document as one row of the ``documents`` table."""

    def __init__(
        self,
        connection,
        backend: str,
        clock: Optional[Callable[[], datetime.datetime]] = None,
    ) -> None:
        super().__init__(clock)
        if backend not in {"sqlite", "postgres"}:
            raise StoreError(f"Unsupported SQL backend: {backend}")
        self._conn = connection
        self._backend = backend
        self._lock = threading.RLock()
        self.init_schema()

    @classmethod
    def from_url(
        cls,
        database_url: Optional[str],
        clock: Optional[Callable[[], datetime.datetime]] = None,
    ) -> "SqlDocumentStore":
        url = database_url or f"sqlite:///{_resolve_default_sqlite_path()}"
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)

        if url.startswith("sqlite"):
            conn = sqlite3.connect(
                _normalize_sqlite_path(url),
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            logger.info("Using sqlite document store at %s", _normalize_sqlite_path(url))
            return cls(conn, "sqlite", clock)

        conn = psycopg.connect(url, row_factory=dict_row)
        logger.info("Using PostgreSQL document store")
        return cls(conn, "postgres", clock)

    @property
    def backend(self) -> str:
        return self._backend

    def close(self) -> None:
        self._conn.close()

    def _sql(self, query: str) -> str:
        if self._backend == "sqlite":
            return query.replace("%s", "?")
        return query

    def init_schema(self) -> None:
        cur = self._conn.cursor()
        try:
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    collection_path TEXT NOT NULL,
                    doc_id TEXT NOT NULL,
                    data TEXT NOT NULL,
                    updated_at TIMESTAMP NOT NULL,
                    PRIMARY KEY (collection_path, doc_id)
                );
                """
            )
            self._conn.commit()
        finally:
            cur.close()

    def _fetch(self, cur, collection: str, doc_id: str, *, for_update: bool = False) -> Optional[dict]:
        query = "SELECT data FROM documents WHERE collection_path = %s AND doc_id = %s"
        if for_update and self._backend == "postgres":
            query += " FOR UPDATE"
        cur.execute(self._sql(query), (collection, doc_id))
        row = cur.fetchone()
        if row is None:
            return None
        return _load(row["data"])

    def _upsert(self, cur, collection: str, doc_id: str, document: Mapping[str, Any]) -> None:
        cur.execute(
            self._sql(
                """
                INSERT INTO documents (collection_path, doc_id, data, updated_at)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (collection_path, doc_id)
                DO UPDATE SET data = excluded.data, updated_at = excluded.updated_at;
                """
            ),
            (collection, doc_id, _dump(document), self.now().isoformat()),
        )

    def get(self, path: str) -> Optional[dict[str, Any]]:
        collection, doc_id = split_document_path(path)
        with self._lock:
            cur = self._conn.cursor()
            try:
                document = self._fetch(cur, collection, doc_id)
                if self._backend == "postgres":
                    self._conn.commit()
                return document
            finally:
                cur.close()

    def _write(self, path: str, data: Mapping[str, Any], *, merge: bool, must_exist: bool) -> None:
        collection, doc_id = split_document_path(path)
        with self._lock:
            cur = self._conn.cursor()
            try:
                current = None
                if merge or must_exist:
                    current = self._fetch(cur, collection, doc_id, for_update=True)
                if must_exist and current is None:
                    raise DocumentNotFoundError(f"No document at {path}")
                document = apply_changes(current, data, self.now(), merge=merge)
                self._upsert(cur, collection, doc_id, document)
                self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise
            finally:
                cur.close()

    def set(self, path: str, data: Mapping[str, Any], *, merge: bool = False) -> None:
        self._write(path, data, merge=merge, must_exist=False)

    def update(self, path: str, data: Mapping[str, Any]) -> None:
        self._write(path, data, merge=True, must_exist=True)

    def delete(self, path: str) -> None:
        collection, doc_id = split_document_path(path)
        with self._lock:
            cur = self._conn.cursor()
            try:
                cur.execute(
                    self._sql("DELETE FROM documents WHERE collection_path = %s AND doc_id = %s;"),
                    (collection, doc_id),
                )
                self._conn.commit()
            finally:
                cur.close()

    def list_documents(self, collection: str) -> list[tuple[str, dict[str, Any]]]:
        with self._lock:
            cur = self._conn.cursor()
            try:
                cur.execute(
                    self._sql(
                        "SELECT doc_id, data FROM documents WHERE collection_path = %s ORDER BY doc_id;"
                    ),
                    (collection,),
                )
                rows = cur.fetchall() or []
                if self._backend == "postgres":
                    self._conn.commit()
            finally:
                cur.close()
        return [(row["doc_id"], _load(row["data"])) for row in rows]

    def set_many(self, collection: str, documents: Mapping[str, Mapping[str, Any]]) -> None:
        now = self.now()
        with self._lock:
            cur = self._conn.cursor()
            try:
                for doc_id, data in documents.items():
                    self._upsert(cur, collection, doc_id, apply_changes(None, data, now, merge=False))
                self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise
            finally:
                cur.close()
