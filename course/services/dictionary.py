from __future__ import annotations

import logging
from typing import Any

from models import DictionaryEntry, normalize_word_key, sort_newest_first

from ..results import RecordNotFoundError, Result, enveloped
from ..store import SERVER_TIMESTAMP, DocumentNotFoundError, DocumentStore, collection_path, document_path
from ..utils.numbers import percentage

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = {"word", "definition", "example", "mastered"}


class DictionaryManager:
    """The learner's personal vocabulary, keyed by normalized word."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def _path(self, user_id: str, word_id: str) -> str:
        return document_path("users", user_id, "dictionary", word_id)

    def _list(self, user_id: str) -> list[DictionaryEntry]:
        documents = self._store.list_documents(collection_path("users", user_id, "dictionary"))
        entries = [DictionaryEntry.from_document(doc_id, document) for doc_id, document in documents]
        return sort_newest_first(entries, "added_at")

    @enveloped("add word")
    def add_word(self, user_id: str, word: str, definition: str, example: str = "") -> DictionaryEntry:
        """Add or overwrite the entry for ``word``; case and spacing variants share one entry."""
        word_id = normalize_word_key(word)
        entry = DictionaryEntry(word_id=word_id, word=word.strip(), definition=definition.strip(), example=example or "")
        path = self._path(user_id, word_id)
        self._store.set(
            path,
            {
                "word": entry.word,
                "definition": entry.definition,
                "example": entry.example,
                "mastered": False,
                "masteredAt": None,
                "addedAt": SERVER_TIMESTAMP,
            },
            merge=True,
        )
        return DictionaryEntry.from_document(word_id, self._store.get(path) or entry.to_document())

    @enveloped("load dictionary")
    def get_all_words(self, user_id: str) -> list[DictionaryEntry]:
        return self._list(user_id)

    @enveloped("search dictionary")
    def search_words(self, user_id: str, query: str) -> list[DictionaryEntry]:
        return [entry for entry in self._list(user_id) if entry.matches(query)]

    @enveloped("mark word as mastered")
    def mark_as_mastered(self, user_id: str, word_id: str, mastered: bool = True) -> Result:
        try:
            self._store.update(
                self._path(user_id, word_id),
                {"mastered": mastered, "masteredAt": SERVER_TIMESTAMP if mastered else None},
            )
        except DocumentNotFoundError as exc:
            raise RecordNotFoundError("Word not found.") from exc
        return Result.ok()

    @enveloped("load unmastered words")
    def get_unmastered_words(self, user_id: str) -> list[DictionaryEntry]:
        return [entry for entry in self._list(user_id) if not entry.mastered]

    @enveloped("delete word")
    def delete_word(self, user_id: str, word_id: str) -> Result:
        self._store.delete(self._path(user_id, word_id))
        return Result.ok()

    @enveloped("update word")
    def update_word(self, user_id: str, word_id: str, **updates: Any) -> Result:
        """Change editable fields of an entry; the document id stays the same."""
        unknown = set(updates) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        path = self._path(user_id, word_id)
        current = self._store.get(path)
        if current is None:
            raise RecordNotFoundError("Word not found.")

        merged = {**current, **updates}
        DictionaryEntry.from_document(word_id, merged)
        changes = dict(updates)
        changes["updatedAt"] = SERVER_TIMESTAMP
        self._store.update(path, changes)
        return Result.ok()

    @enveloped("compute dictionary statistics")
    def get_dictionary_stats(self, user_id: str) -> dict[str, int]:
        entries = self._list(user_id)
        total = len(entries)
        mastered = sum(1 for entry in entries if entry.mastered)
        return {
            "total": total,
            "mastered": mastered,
            "unmastered": total - mastered,
            "percentage": percentage(mastered, total),
        }
