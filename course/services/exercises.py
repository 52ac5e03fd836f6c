from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Optional, Sequence

from models import ExerciseResult, sort_newest_first

from ..results import enveloped
from ..store import SERVER_TIMESTAMP, ArrayAppend, DocumentStore, Increment, collection_path, document_path
from ..utils.numbers import mean_rounded, percentage
from .progress import stats_path

logger = logging.getLogger(__name__)

TOP_MISTAKES_LIMIT = 10


def rank_mistakes(mistake_lists: Sequence[Sequence[str]], limit: int = TOP_MISTAKES_LIMIT) -> list[dict[str, Any]]:
    """Count mistakes across results, most frequent first (ties keep first-seen order)."""
    counts: Counter[str] = Counter()
    for mistakes in mistake_lists:
        counts.update(mistakes)
    return [{"mistake": mistake, "count": count} for mistake, count in counts.most_common(limit)]


class ExerciseResultTracker:
    """Attempt history and aggregate statistics for exercises."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        pass_score: int = 80,
        review_threshold: int = 70,
        recent_limit: int = 5,
    ) -> None:
        self._store = store
        self._pass_score = pass_score
        self._review_threshold = review_threshold
        self._recent_limit = recent_limit

    def _path(self, user_id: str, exercise_id: str) -> str:
        return document_path("users", user_id, "exerciseResults", exercise_id)

    def _list(self, user_id: str) -> list[ExerciseResult]:
        documents = self._store.list_documents(collection_path("users", user_id, "exerciseResults"))
        return [ExerciseResult.from_document(doc_id, document) for doc_id, document in documents]

    @enveloped("load exercise result")
    def get_exercise_result(self, user_id: str, exercise_id: str) -> Optional[ExerciseResult]:
        document = self._store.get(self._path(user_id, exercise_id))
        if document is None:
            return None
        return ExerciseResult.from_document(exercise_id, document)

    @enveloped("save exercise result")
    def save_result(
        self,
        user_id: str,
        exercise_id: str,
        *,
        score: float,
        answers: Optional[Sequence[Any]] = None,
        mistakes: Optional[Sequence[str]] = None,
        task_results: Optional[Sequence[Any]] = None,
    ) -> ExerciseResult:
        """Record one attempt: bump the attempt counter and append to the history."""
        path = self._path(user_id, exercise_id)
        existing = self._store.get(path)
        previous = ExerciseResult.from_document(exercise_id, existing) if existing else None
        current_attempts = previous.attempts if previous else 0
        mistake_list = [str(item) for item in mistakes or ()]

        record = ExerciseResult(
            exercise_id=exercise_id,
            score=score,
            attempts=current_attempts + 1,
            completed=score >= self._pass_score,
            answers=tuple(answers or ()),
            mistakes=tuple(mistake_list),
            task_results=tuple(task_results or ()),
        )

        # The attempt counter is read then written; concurrent saves may lose an attempt.
        self._store.set(
            path,
            {
                "exerciseId": exercise_id,
                "score": record.score,
                "attempts": record.attempts,
                "completed": record.completed,
                "lastAttempt": SERVER_TIMESTAMP,
                "answers": list(record.answers),
                "mistakes": mistake_list,
                "taskResults": list(record.task_results),
                "attemptHistory": ArrayAppend(
                    {"score": record.score, "timestamp": SERVER_TIMESTAMP, "mistakes": mistake_list}
                ),
            },
            merge=True,
        )

        newly_completed = record.completed and not (previous and previous.completed)
        if newly_completed:
            self._store.set(
                stats_path(user_id),
                {"exercisesCompleted": Increment(1), "updatedAt": SERVER_TIMESTAMP},
                merge=True,
            )
            logger.info("User %s completed exercise %s", user_id, exercise_id)

        stored = self._store.get(path)
        return ExerciseResult.from_document(exercise_id, stored) if stored else record

    @enveloped("load exercise results")
    def get_all_results(self, user_id: str) -> list[ExerciseResult]:
        return self._list(user_id)

    @enveloped("compute exercise statistics")
    def get_exercise_stats(self, user_id: str) -> dict[str, Any]:
        results = self._list(user_id)
        completed = sum(1 for result in results if result.completed)
        total = len(results)
        return {
            "completed": completed,
            "total": total,
            "percentage": percentage(completed, total),
            "averageScore": mean_rounded([result.score for result in results]),
            "totalAttempts": sum(result.attempts for result in results),
            "topMistakes": rank_mistakes([result.mistakes for result in results]),
        }

    @enveloped("find exercises needing review")
    def get_exercises_needing_review(self, user_id: str, threshold: Optional[float] = None) -> list[ExerciseResult]:
        cutoff = self._review_threshold if threshold is None else threshold
        return [result for result in self._list(user_id) if result.score < cutoff or not result.completed]

    @enveloped("load recent attempts")
    def get_recent_attempts(self, user_id: str, limit: Optional[int] = None) -> list[ExerciseResult]:
        count = self._recent_limit if limit is None else limit
        if count < 0:
            raise ValueError("Limit must not be negative.")
        return sort_newest_first(self._list(user_id), "last_attempt")[:count]
