from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from models import LessonProgress, UserStats, sort_newest_first

from ..results import Result, enveloped
from ..store import SERVER_TIMESTAMP, DocumentStore, Increment, collection_path, document_path
from ..utils.numbers import mean_rounded, percentage

logger = logging.getLogger(__name__)

_STATS_FIELDS = {
    "lessonsCompleted",
    "exercisesCompleted",
    "totalTimeSpent",
    "averageScore",
}


def stats_path(user_id: str) -> str:
    return document_path("users", user_id, "stats", "overall")


class ProgressTracker:
    """Per-lesson completion records and the user's overall counters."""

    def __init__(self, store: DocumentStore, *, recent_limit: int = 5) -> None:
        self._store = store
        self._recent_limit = recent_limit

    def _path(self, user_id: str, lesson_id: str) -> str:
        return document_path("users", user_id, "lessonProgress", lesson_id)

    def _list(self, user_id: str) -> list[LessonProgress]:
        documents = self._store.list_documents(collection_path("users", user_id, "lessonProgress"))
        return [LessonProgress.from_document(doc_id, document) for doc_id, document in documents]

    @enveloped("load lesson progress")
    def get_lesson_progress(self, user_id: str, lesson_id: str) -> Optional[LessonProgress]:
        document = self._store.get(self._path(user_id, lesson_id))
        if document is None:
            return None
        return LessonProgress.from_document(lesson_id, document)

    @enveloped("save lesson progress")
    def save_progress(
        self,
        user_id: str,
        lesson_id: str,
        *,
        completed: Optional[bool] = None,
        score: Optional[float] = None,
        time_spent: Optional[float] = None,
    ) -> LessonProgress:
        """Merge the given fields into the lesson record, stamping ``lastAccessed``.

        Fields left as None keep their stored value. A new record gets
        ``completed=False``, ``score=0`` and ``timeSpent=0`` for any field not given.
        """
        LessonProgress(
            lesson_id=lesson_id,
            completed=bool(completed),
            score=score or 0,
            time_spent=time_spent or 0,
        )
        path = self._path(user_id, lesson_id)
        is_new = self._store.get(path) is None

        changes: dict[str, Any] = {"lessonId": lesson_id}
        if completed is not None:
            changes["completed"] = bool(completed)
        elif is_new:
            changes["completed"] = False
        if score is not None:
            changes["score"] = score
        elif is_new:
            changes["score"] = 0
        if time_spent is not None:
            changes["timeSpent"] = time_spent
        elif is_new:
            changes["timeSpent"] = 0
        changes["lastAccessed"] = SERVER_TIMESTAMP

        self._store.set(path, changes, merge=True)
        return LessonProgress.from_document(lesson_id, self._store.get(path) or changes)

    @enveloped("load lesson progress")
    def get_all_progress(self, user_id: str) -> list[LessonProgress]:
        return self._list(user_id)

    @enveloped("complete lesson")
    def complete_lesson(self, user_id: str, lesson_id: str, score: Optional[float] = None) -> Result:
        record = LessonProgress(
            lesson_id=lesson_id,
            completed=True,
            score=100 if score is None else score,
        )
        self._store.set(
            self._path(user_id, lesson_id),
            {
                "lessonId": lesson_id,
                "completed": True,
                "score": record.score,
                "completedAt": SERVER_TIMESTAMP,
                "lastAccessed": SERVER_TIMESTAMP,
            },
            merge=True,
        )
        self._increment_stats(user_id, lessonsCompleted=1)
        logger.info("User %s completed lesson %s with score %s", user_id, lesson_id, record.score)
        return Result.ok()

    @enveloped("update study time")
    def update_study_time(self, user_id: str, lesson_id: str, minutes: float) -> Result:
        if minutes < 0:
            raise ValueError("Study time must not be negative.")
        self._store.set(
            self._path(user_id, lesson_id),
            {
                "lessonId": lesson_id,
                "timeSpent": Increment(minutes),
                "lastAccessed": SERVER_TIMESTAMP,
            },
            merge=True,
        )
        self._increment_stats(user_id, totalTimeSpent=minutes)
        return Result.ok()

    @enveloped("compute module statistics")
    def get_module_stats(self, user_id: str, lesson_ids: Iterable[str]) -> dict[str, Any]:
        """Summarize the user's records for the lessons of one module."""
        module_ids = list(dict.fromkeys(lesson_ids))
        wanted = set(module_ids)
        module_progress = [record for record in self._list(user_id) if record.lesson_id in wanted]

        completed = sum(1 for record in module_progress if record.completed)
        total = len(module_ids)
        return {
            "completed": completed,
            "total": total,
            "percentage": percentage(completed, total),
            "averageScore": mean_rounded([record.score for record in module_progress]),
            "totalTime": sum(record.time_spent for record in module_progress),
        }

    @enveloped("load recent lessons")
    def get_recent_lessons(self, user_id: str, limit: Optional[int] = None) -> list[LessonProgress]:
        count = self._recent_limit if limit is None else limit
        if count < 0:
            raise ValueError("Limit must not be negative.")
        return sort_newest_first(self._list(user_id), "last_accessed")[:count]

    def _increment_stats(self, user_id: str, **deltas: float) -> None:
        changes: dict[str, Any] = {name: Increment(amount) for name, amount in deltas.items()}
        changes["updatedAt"] = SERVER_TIMESTAMP
        self._store.set(stats_path(user_id), changes, merge=True)

    @enveloped("update user statistics")
    def update_user_stats(self, user_id: str, **fields: Any) -> Result:
        """Merge counters into the overall stats; pass ``Increment`` values for atomic adds."""
        unknown = set(fields) - _STATS_FIELDS
        if unknown:
            raise ValueError(f"Unknown statistics fields: {', '.join(sorted(unknown))}")
        changes = dict(fields)
        changes["updatedAt"] = SERVER_TIMESTAMP
        self._store.set(stats_path(user_id), changes, merge=True)
        return Result.ok()

    @enveloped("load user statistics")
    def get_user_stats(self, user_id: str) -> UserStats:
        return UserStats.from_document(self._store.get(stats_path(user_id)))
