"""Skill matrix: per-user mastery levels for every catalog skill."""

from __future__ import annotations

import datetime
import logging
from typing import Any

from models import CATEGORIES, MAX_LEVEL, Skill

from ..catalog import SkillCatalog
from ..results import RecordNotFoundError, Result, enveloped
from ..store import SERVER_TIMESTAMP, DocumentStore, collection_path, document_path
from ..utils.numbers import mean_rounded, percentage, round_half_up

logger = logging.getLogger(__name__)

# (minimum progress %, minimum practice count, level), checked top-down.
LEVEL_LADDER = (
    (90, 10, 5),
    (80, 7, 4),
    (70, 5, 3),
    (50, 3, 2),
)


class SkillNotFoundError(RecordNotFoundError):
    """Raised when the user has no record for the requested skill."""


class SkillsNotInitializedError(RuntimeError):
    """Raised when no readable skills exist and bootstrapping cannot supply them."""


def compute_level(progress: int, practice_count: int, previous_level: int) -> int:
    """Return the level for the given progress and practice count.

    The first ladder rung whose thresholds are both met wins; any practice
    at all gives level 1, and with no practice the previous level is kept.
    Levels may go down when progress drops.
    """
    for min_progress, min_practice, level in LEVEL_LADDER:
        if progress >= min_progress and practice_count >= min_practice:
            return level
    if practice_count >= 1:
        return 1
    return previous_level


def _aware(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


class SkillMatrixEngine:
    def __init__(self, store: DocumentStore, catalog: SkillCatalog) -> None:
        self._store = store
        self._catalog = catalog

    @property
    def catalog(self) -> SkillCatalog:
        return self._catalog

    def _collection(self, user_id: str) -> str:
        return collection_path("users", user_id, "skills")

    def _path(self, user_id: str, skill_id: str) -> str:
        return document_path("users", user_id, "skills", skill_id)

    def _load(self, user_id: str, skill_id: str) -> Skill:
        document = self._store.get(self._path(user_id, skill_id))
        if document is None:
            raise SkillNotFoundError("Skill not found.")
        return Skill.from_document(skill_id, document)

    def _read(self, user_id: str) -> tuple[int, list[Skill]]:
        """Return the raw document count and the skills that parsed."""
        documents = self._store.list_documents(self._collection(user_id))
        skills: list[Skill] = []
        for doc_id, document in documents:
            try:
                skills.append(Skill.from_document(doc_id, document))
            except ValueError as exc:
                logger.warning("Skipping malformed skill %s for user %s: %s", doc_id, user_id, exc)
        return len(documents), sorted(skills, key=lambda skill: (skill.order, skill.skill_id))

    def _list(self, user_id: str) -> list[Skill]:
        return self._read(user_id)[1]

    def _initialize(self, user_id: str) -> int:
        documents: dict[str, dict[str, Any]] = {}
        for definition in self._catalog:
            document = Skill.fresh(definition).to_document()
            document["catalogVersion"] = self._catalog.version
            document["createdAt"] = SERVER_TIMESTAMP
            documents[definition.skill_id] = document
        self._store.set_many(self._collection(user_id), documents)
        logger.info("Initialized %s skills for user %s", len(documents), user_id)
        return len(documents)

    def _all_skills(self, user_id: str) -> list[Skill]:
        stored, skills = self._read(user_id)
        if skills:
            return skills
        if stored:
            # Documents exist but none are readable; re-initializing would wipe them.
            raise SkillsNotInitializedError(
                f"None of the {stored} stored skills could be read for this user."
            )
        self._initialize(user_id)
        skills = self._list(user_id)
        if not skills:
            raise SkillsNotInitializedError("Skills are not initialized for this user.")
        return skills

    @enveloped("initialize skills")
    def initialize(self, user_id: str) -> Result:
        """Write every catalog skill in its zero state, overwriting existing records."""
        count = self._initialize(user_id)
        return Result.ok(count, message="Skills initialized.")

    @enveloped("load skill")
    def get_skill(self, user_id: str, skill_id: str) -> Skill:
        return self._load(user_id, skill_id)

    @enveloped("load skills")
    def get_all(self, user_id: str) -> list[Skill]:
        """List the user's skills, initializing the catalog on first access."""
        return self._all_skills(user_id)

    @enveloped("load skills by category")
    def get_by_category(self, user_id: str, category: str) -> list[Skill]:
        if category not in CATEGORIES:
            raise ValueError(f"Unknown skill category: {category}")
        return [skill for skill in self._list(user_id) if skill.category == category]

    @enveloped("update skill progress")
    def update_from_practice(self, user_id: str, skill_id: str, correct: int, total: int) -> dict[str, int]:
        """Accumulate a graded practice session into the skill's counters."""
        if correct < 0 or total < 0:
            raise ValueError("Answer counts must not be negative.")
        if correct > total:
            raise ValueError("Correct answers cannot exceed total answers.")

        skill = self._load(user_id, skill_id)
        correct_answers = skill.correct_answers + correct
        total_answers = skill.total_answers + total
        if total_answers == 0:
            raise ValueError("Cannot compute skill progress without any answers.")

        progress = percentage(correct_answers, total_answers)
        practice_count = skill.practice_count + 1
        level = compute_level(progress, practice_count, skill.level)
        updated = skill.with_counters(
            correct_answers=correct_answers,
            total_answers=total_answers,
            progress=progress,
            level=level,
            practice_count=practice_count,
        )

        # Read-modify-write without a transaction; concurrent updates may lose one.
        self._store.update(
            self._path(user_id, skill_id),
            {
                "correctAnswers": updated.correct_answers,
                "totalAnswers": updated.total_answers,
                "progress": updated.progress,
                "level": updated.level,
                "practiceCount": updated.practice_count,
                "lastPracticed": SERVER_TIMESTAMP,
            },
        )
        return {"progress": progress, "level": level, "practiceCount": practice_count}

    @enveloped("update skill progress")
    def update_direct(
        self,
        user_id: str,
        skill_id: str,
        progress: float,
        correct_answers: int,
        total_answers: int,
    ) -> dict[str, int]:
        """Overwrite the counters with externally computed absolutes."""
        skill = self._load(user_id, skill_id)
        progress_value = round_half_up(progress)
        # A never-practiced skill is ranked as if practiced once; the count itself is not written.
        practice_count = skill.practice_count or 1
        level = compute_level(progress_value, practice_count, skill.level)
        updated = skill.with_counters(
            progress=progress_value,
            correct_answers=correct_answers,
            total_answers=total_answers,
            level=level,
        )
        self._store.update(
            self._path(user_id, skill_id),
            {
                "correctAnswers": updated.correct_answers,
                "totalAnswers": updated.total_answers,
                "progress": updated.progress,
                "level": updated.level,
                "lastPracticed": SERVER_TIMESTAMP,
            },
        )
        return {"progress": progress_value, "level": level}

    @enveloped("compute skill statistics")
    def get_stats(self, user_id: str) -> dict[str, Any]:
        skills = self._all_skills(user_id)
        by_level = {level: 0 for level in range(MAX_LEVEL + 1)}
        by_category = {category: 0 for category in CATEGORIES}
        for skill in skills:
            by_level[skill.level] += 1
            by_category[skill.category] = by_category.get(skill.category, 0) + 1

        return {
            "total": len(skills),
            "byLevel": by_level,
            "byCategory": by_category,
            "averageProgress": mean_rounded([skill.progress for skill in skills]),
            "masterSkills": by_level[MAX_LEVEL],
            "inProgressSkills": sum(1 for skill in skills if 0 < skill.level < MAX_LEVEL),
        }

    @enveloped("find skills needing practice")
    def get_skills_needing_practice(self, user_id: str, days: int = 7) -> list[Skill]:
        """Return started, unmastered skills not practiced within ``days``.

        Never-practiced skills come first, then oldest practice first.
        """
        if days < 0:
            raise ValueError("Days must not be negative.")
        threshold = _aware(self._store.now()) - datetime.timedelta(days=days)

        stale = [
            skill
            for skill in self._all_skills(user_id)
            if 0 < skill.level < MAX_LEVEL
            and (skill.last_practiced is None or _aware(skill.last_practiced) < threshold)
        ]
        stale.sort(
            key=lambda skill: (
                skill.last_practiced is not None,
                _aware(skill.last_practiced) if skill.last_practiced else threshold,
            )
        )
        return stale

    @enveloped("reset skill")
    def reset(self, user_id: str, skill_id: str) -> Result:
        self._load(user_id, skill_id)
        self._store.update(
            self._path(user_id, skill_id),
            {
                "level": 0,
                "progress": 0,
                "practiceCount": 0,
                "correctAnswers": 0,
                "totalAnswers": 0,
                "lastPracticed": None,
            },
        )
        return Result.ok(message="Skill reset.")
