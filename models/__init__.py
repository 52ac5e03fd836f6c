"""Record types for course data kept in the document store.

Documents are stored with camelCase keys; every record converts to and from
that form and validates its invariants on construction.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional, Sequence

from flask_login import UserMixin

CATEGORIES = ("orthography", "punctuation")
MIN_LEVEL = 0
MAX_LEVEL = 5


def _as_datetime(value: Any) -> Optional[datetime.datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, str):
        return datetime.datetime.fromisoformat(value)
    raise ValueError(f"Unsupported timestamp value: {value!r}")


def _as_int(value: Any, default: int = 0) -> int:
    if value is None:
        return default
    return int(value)


def _as_number(value: Any, default: float = 0) -> int | float:
    if value is None:
        return default
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return float(value)


def normalize_word_key(word: str) -> str:
    """Return the dictionary document id for ``word``.

    Lower-cases the word and collapses whitespace runs into a single ``-``,
    so "Орфография" and "орфография " share one entry.
    """
    key = "-".join(str(word).lower().split())
    if not key:
        raise ValueError("Word must not be empty.")
    if "/" in key:
        raise ValueError("Word must not contain '/'.")
    return key


class User(UserMixin):
    """Flask-Login compatible wrapper around an authenticated account."""

    def __init__(
        self,
        *,
        uid: str,
        email: str,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> None:
        self.id = uid
        self.email = email
        self.display_name = display_name
        self.photo_url = photo_url

    @property
    def uid(self) -> str:
        return self.id

    def to_dict(self) -> dict[str, Optional[str]]:
        return {
            "uid": self.id,
            "email": self.email,
            "displayName": self.display_name,
            "photoURL": self.photo_url,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, User):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<User uid={self.id} email={self.email!r}>"


@dataclass(frozen=True)
class SkillDefinition:
    """Static catalog entry for one curriculum competency."""

    skill_id: str
    name: str
    category: str
    description: str
    related_lessons: tuple[str, ...]
    related_exercises: tuple[str, ...]
    order: int

    def __post_init__(self) -> None:
        if not self.skill_id or "/" in self.skill_id:
            raise ValueError(f"Invalid skill id: {self.skill_id!r}")
        if self.category not in CATEGORIES:
            raise ValueError(f"Unknown skill category: {self.category!r}")
        if self.order < 1:
            raise ValueError("Skill order must be positive.")
        object.__setattr__(self, "related_lessons", tuple(self.related_lessons))
        object.__setattr__(self, "related_exercises", tuple(self.related_exercises))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SkillDefinition":
        return cls(
            skill_id=str(data["skillId"]),
            name=str(data["name"]),
            category=str(data["category"]),
            description=str(data.get("description", "")),
            related_lessons=tuple(data.get("relatedLessons") or ()),
            related_exercises=tuple(data.get("relatedExercises") or ()),
            order=int(data["order"]),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "skillId": self.skill_id,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "relatedLessons": list(self.related_lessons),
            "relatedExercises": list(self.related_exercises),
            "order": self.order,
        }


@dataclass(frozen=True)
class Skill:
    """Per-user mastery record for a catalog skill."""

    skill_id: str
    name: str
    category: str
    description: str
    related_lessons: tuple[str, ...]
    related_exercises: tuple[str, ...]
    order: int
    level: int = 0
    progress: int = 0
    practice_count: int = 0
    correct_answers: int = 0
    total_answers: int = 0
    last_practiced: Optional[datetime.datetime] = None

    def __post_init__(self) -> None:
        if self.category not in CATEGORIES:
            raise ValueError(f"Unknown skill category: {self.category!r}")
        if not MIN_LEVEL <= self.level <= MAX_LEVEL:
            raise ValueError(f"Skill level must be between {MIN_LEVEL} and {MAX_LEVEL}.")
        if not 0 <= self.progress <= 100:
            raise ValueError("Skill progress must be between 0 and 100.")
        if self.practice_count < 0:
            raise ValueError("Practice count must not be negative.")
        if self.correct_answers < 0 or self.total_answers < 0:
            raise ValueError("Answer counters must not be negative.")
        if self.correct_answers > self.total_answers:
            raise ValueError("Correct answers cannot exceed total answers.")
        object.__setattr__(self, "related_lessons", tuple(self.related_lessons))
        object.__setattr__(self, "related_exercises", tuple(self.related_exercises))

    @classmethod
    def fresh(cls, definition: SkillDefinition) -> "Skill":
        return cls(
            skill_id=definition.skill_id,
            name=definition.name,
            category=definition.category,
            description=definition.description,
            related_lessons=definition.related_lessons,
            related_exercises=definition.related_exercises,
            order=definition.order,
        )

    @classmethod
    def from_document(cls, doc_id: str, data: Mapping[str, Any]) -> "Skill":
        return cls(
            skill_id=str(data.get("skillId") or doc_id),
            name=str(data.get("name", "")),
            category=str(data.get("category", "")),
            description=str(data.get("description", "")),
            related_lessons=tuple(data.get("relatedLessons") or ()),
            related_exercises=tuple(data.get("relatedExercises") or ()),
            order=_as_int(data.get("order"), 0),
            level=_as_int(data.get("level")),
            progress=_as_int(data.get("progress")),
            practice_count=_as_int(data.get("practiceCount")),
            correct_answers=_as_int(data.get("correctAnswers")),
            total_answers=_as_int(data.get("totalAnswers")),
            last_practiced=_as_datetime(data.get("lastPracticed")),
        )

    def with_counters(self, **changes: Any) -> "Skill":
        return replace(self, **changes)

    def to_document(self) -> dict[str, Any]:
        return {
            "skillId": self.skill_id,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "relatedLessons": list(self.related_lessons),
            "relatedExercises": list(self.related_exercises),
            "order": self.order,
            "level": self.level,
            "progress": self.progress,
            "practiceCount": self.practice_count,
            "correctAnswers": self.correct_answers,
            "totalAnswers": self.total_answers,
            "lastPracticed": self.last_practiced,
        }


def _check_score(score: int | float) -> None:
    if not 0 <= score <= 100:
        raise ValueError("Score must be between 0 and 100.")


@dataclass(frozen=True)
class LessonProgress:
    lesson_id: str
    completed: bool = False
    score: int | float = 0
    time_spent: int | float = 0
    last_accessed: Optional[datetime.datetime] = None
    completed_at: Optional[datetime.datetime] = None

    def __post_init__(self) -> None:
        _check_score(self.score)
        if self.time_spent < 0:
            raise ValueError("Time spent must not be negative.")

    @classmethod
    def from_document(cls, doc_id: str, data: Mapping[str, Any]) -> "LessonProgress":
        return cls(
            lesson_id=str(data.get("lessonId") or doc_id),
            completed=bool(data.get("completed", False)),
            score=_as_number(data.get("score")),
            time_spent=_as_number(data.get("timeSpent")),
            last_accessed=_as_datetime(data.get("lastAccessed")),
            completed_at=_as_datetime(data.get("completedAt")),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "lessonId": self.lesson_id,
            "completed": self.completed,
            "score": self.score,
            "timeSpent": self.time_spent,
            "lastAccessed": self.last_accessed,
            "completedAt": self.completed_at,
        }


@dataclass(frozen=True)
class AttemptEntry:
    score: int | float
    timestamp: Optional[datetime.datetime]
    mistakes: tuple[str, ...] = ()

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "AttemptEntry":
        return cls(
            score=_as_number(data.get("score")),
            timestamp=_as_datetime(data.get("timestamp")),
            mistakes=tuple(str(item) for item in data.get("mistakes") or ()),
        )

    def to_document(self) -> dict[str, Any]:
        return {"score": self.score, "timestamp": self.timestamp, "mistakes": list(self.mistakes)}


@dataclass(frozen=True)
class ExerciseResult:
    exercise_id: str
    score: int | float = 0
    attempts: int = 0
    completed: bool = False
    answers: tuple[Any, ...] = ()
    mistakes: tuple[str, ...] = ()
    task_results: tuple[Any, ...] = ()
    last_attempt: Optional[datetime.datetime] = None
    attempt_history: tuple[AttemptEntry, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        _check_score(self.score)
        if self.attempts < 0:
            raise ValueError("Attempts must not be negative.")

    @classmethod
    def from_document(cls, doc_id: str, data: Mapping[str, Any]) -> "ExerciseResult":
        return cls(
            exercise_id=str(data.get("exerciseId") or doc_id),
            score=_as_number(data.get("score")),
            attempts=_as_int(data.get("attempts")),
            completed=bool(data.get("completed", False)),
            answers=tuple(data.get("answers") or ()),
            mistakes=tuple(str(item) for item in data.get("mistakes") or ()),
            task_results=tuple(data.get("taskResults") or ()),
            last_attempt=_as_datetime(data.get("lastAttempt")),
            attempt_history=tuple(
                AttemptEntry.from_document(entry) for entry in data.get("attemptHistory") or ()
            ),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "exerciseId": self.exercise_id,
            "score": self.score,
            "attempts": self.attempts,
            "completed": self.completed,
            "answers": list(self.answers),
            "mistakes": list(self.mistakes),
            "taskResults": list(self.task_results),
            "lastAttempt": self.last_attempt,
            "attemptHistory": [entry.to_document() for entry in self.attempt_history],
        }


@dataclass(frozen=True)
class DictionaryEntry:
    word_id: str
    word: str
    definition: str
    example: str = ""
    mastered: bool = False
    added_at: Optional[datetime.datetime] = None
    mastered_at: Optional[datetime.datetime] = None

    def __post_init__(self) -> None:
        if not self.word.strip():
            raise ValueError("Word must not be empty.")
        if not self.definition.strip():
            raise ValueError("Definition must not be empty.")

    @classmethod
    def from_document(cls, doc_id: str, data: Mapping[str, Any]) -> "DictionaryEntry":
        return cls(
            word_id=doc_id,
            word=str(data.get("word", "")),
            definition=str(data.get("definition", "")),
            example=str(data.get("example") or ""),
            mastered=bool(data.get("mastered", False)),
            added_at=_as_datetime(data.get("addedAt")),
            mastered_at=_as_datetime(data.get("masteredAt")),
        )

    def matches(self, query: str) -> bool:
        needle = query.lower()
        return (
            needle in self.word.lower()
            or needle in self.definition.lower()
            or needle in self.example.lower()
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.word_id,
            "word": self.word,
            "definition": self.definition,
            "example": self.example,
            "mastered": self.mastered,
            "addedAt": self.added_at,
            "masteredAt": self.mastered_at,
        }


@dataclass(frozen=True)
class UserStats:
    lessons_completed: int = 0
    exercises_completed: int = 0
    total_time_spent: int | float = 0
    average_score: int | float = 0
    updated_at: Optional[datetime.datetime] = None

    @classmethod
    def from_document(cls, data: Optional[Mapping[str, Any]]) -> "UserStats":
        if not data:
            return cls()
        return cls(
            lessons_completed=_as_int(data.get("lessonsCompleted")),
            exercises_completed=_as_int(data.get("exercisesCompleted")),
            total_time_spent=_as_number(data.get("totalTimeSpent")),
            average_score=_as_number(data.get("averageScore")),
            updated_at=_as_datetime(data.get("updatedAt")),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "lessonsCompleted": self.lessons_completed,
            "exercisesCompleted": self.exercises_completed,
            "totalTimeSpent": self.total_time_spent,
            "averageScore": self.average_score,
            "updatedAt": self.updated_at,
        }


def sort_newest_first(
    items: Sequence[Any],
    key: str,
) -> list[Any]:
    """Order records by a timestamp attribute, newest first; missing stamps go last."""
    epoch = datetime.datetime.min.replace(tzinfo=datetime.timezone.utc)

    def _stamp(item: Any) -> datetime.datetime:
        value = getattr(item, key, None)
        if value is None:
            return epoch
        if value.tzinfo is None:
            return value.replace(tzinfo=datetime.timezone.utc)
        return value

    return sorted(items, key=_stamp, reverse=True)
