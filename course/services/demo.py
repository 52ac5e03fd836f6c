from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..results import Result

if TYPE_CHECKING:
    from . import CourseServices

logger = logging.getLogger(__name__)

DEMO_LESSON_ID = "lesson-01-vowels-checked"
DEMO_SKILL_ID = "vowels-checked"
DEMO_EXERCISE_ID = "exercise-01-vowels-roots"


def seed_demo_data(services: "CourseServices", user_id: str) -> list[Result]:
    """Populate a demo account with one record of each kind.

    Skills are re-initialized on every run, so earlier practice on the demo
    account is discarded.
    """
    logger.info("Seeding demo data for user %s", user_id)
    results = [
        services.skills.initialize(user_id),
        services.progress.save_progress(
            user_id,
            DEMO_LESSON_ID,
            completed=True,
            score=95,
            time_spent=45,
        ),
        services.skills.update_from_practice(user_id, DEMO_SKILL_ID, 9, 10),
        services.exercises.save_result(
            user_id,
            DEMO_EXERCISE_ID,
            score=88,
            answers=["ответ1", "ответ2", "ответ3"],
            mistakes=["ошибка при написании чередующейся гласной"],
        ),
        services.dictionary.add_word(
            user_id,
            "орфография",
            "Система правил написания слов и их значимых частей",
            "Знание орфографии необходимо для грамотного письма",
        ),
    ]
    failures = [result.error for result in results if not result.success]
    if failures:
        logger.warning("Demo data for user %s is incomplete: %s", user_id, "; ".join(failures))
    return results
