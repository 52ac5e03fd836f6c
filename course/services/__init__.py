"""Service layer: every public operation returns a :class:`course.results.Result`."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from config.settings import Settings

from ..catalog import SkillCatalog, load_catalog
from ..security import AuthProvider, LocalAuthProvider
from ..store import DocumentStore
from .auth import AuthService, SignedIn, SignedOut
from .dictionary import DictionaryManager
from .exercises import ExerciseResultTracker
from .progress import ProgressTracker
from .skills import SkillMatrixEngine


@dataclass
class CourseServices:
    store: DocumentStore
    catalog: SkillCatalog
    auth: AuthService
    progress: ProgressTracker
    exercises: ExerciseResultTracker
    dictionary: DictionaryManager
    skills: SkillMatrixEngine


def build_services(
    settings: Settings,
    store: DocumentStore,
    *,
    catalog: Optional[SkillCatalog] = None,
    provider: Optional[AuthProvider] = None,
) -> CourseServices:
    """Wire every service against one store."""
    catalog = catalog or load_catalog(settings.SKILL_CATALOG_PATH)
    provider = provider or LocalAuthProvider(store, min_password_length=settings.MIN_PASSWORD_LENGTH)
    return CourseServices(
        store=store,
        catalog=catalog,
        auth=AuthService(provider),
        progress=ProgressTracker(store, recent_limit=settings.RECENT_ITEMS_LIMIT),
        exercises=ExerciseResultTracker(
            store,
            pass_score=settings.EXERCISE_PASS_SCORE,
            review_threshold=settings.REVIEW_SCORE_THRESHOLD,
            recent_limit=settings.RECENT_ITEMS_LIMIT,
        ),
        dictionary=DictionaryManager(store),
        skills=SkillMatrixEngine(store, catalog),
    )


__all__ = [
    "AuthService",
    "CourseServices",
    "DictionaryManager",
    "ExerciseResultTracker",
    "ProgressTracker",
    "SignedIn",
    "SignedOut",
    "SkillMatrixEngine",
    "build_services",
]
