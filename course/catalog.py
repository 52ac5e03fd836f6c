"""Skill catalog for the orthography and punctuation course."""

from __future__ import annotations

import json
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional

from models import CATEGORIES, SkillDefinition

CATALOG_VERSION = 1

SKILL_LEVELS: Mapping[int, Mapping[str, str]] = MappingProxyType(
    {
        0: MappingProxyType({"name": "Не изучен", "color": "#9e9e9e", "emoji": "⚪"}),
        1: MappingProxyType({"name": "Новичок", "color": "#f44336", "emoji": "🔴"}),
        2: MappingProxyType({"name": "Начинающий", "color": "#ff9800", "emoji": "🟠"}),
        3: MappingProxyType({"name": "Практикующий", "color": "#ffeb3b", "emoji": "🟡"}),
        4: MappingProxyType({"name": "Опытный", "color": "#8bc34a", "emoji": "🟢"}),
        5: MappingProxyType({"name": "Мастер", "color": "#4caf50", "emoji": "🟢"}),
    }
)

# (skill_id, name, category, description, lesson, exercise)
_DEFAULT_ENTRIES = (
    ("vowels-checked", "Проверяемые безударные гласные", "orthography",
     "Умение проверять безударные гласные в корне слова",
     "lesson-01-vowels-checked", "exercise-01-vowels-roots"),
    ("vowels-unchecked", "Непроверяемые гласные (словарные слова)", "orthography",
     "Знание словарных слов",
     "lesson-02-vowels-unchecked", "exercise-02-vowels-dictionary"),
    ("vowels-alternating", "Чередующиеся гласные в корне", "orthography",
     "Правописание корней с чередованием",
     "lesson-03-alternating-vowels", "exercise-01-vowels-roots"),
    ("consonants-checked", "Проверяемые согласные", "orthography",
     "Проверка согласных в слабой позиции",
     "lesson-04-consonants-checked", "exercise-02-consonants"),
    ("consonants-unchecked", "Непроизносимые согласные", "orthography",
     "Правописание непроизносимых согласных",
     "lesson-05-consonants-unchecked", "exercise-02-consonants"),
    ("vowels-after-sibilants", "Гласные после шипящих и Ц", "orthography",
     "О-Е после шипящих, И-Ы после Ц",
     "lesson-06-vowels-after-sibilants", "exercise-02-consonants"),
    ("soft-sign", "Употребление Ь и Ъ", "orthography",
     "Правила употребления мягкого и твёрдого знаков",
     "lesson-07-soft-sign", "exercise-03-signs"),
    ("prefixes", "Правописание приставок", "orthography",
     "Приставки на З-С, ПРЕ-ПРИ",
     "lesson-08-prefixes", "exercise-04-prefixes-suffixes"),
    ("suffixes-nouns", "Суффиксы существительных", "orthography",
     "ЕК-ИК, ЧИК-ЩИК и другие",
     "lesson-09-suffixes-nouns", "exercise-04-prefixes-suffixes"),
    ("suffixes-adjectives", "Суффиксы прилагательных", "orthography",
     "Н и НН в прилагательных",
     "lesson-10-suffixes-adjectives", "exercise-04-prefixes-suffixes"),
    ("verb-endings", "Личные окончания глаголов", "orthography",
     "Определение спряжения глаголов",
     "lesson-11-verb-endings", "exercise-05-verbs-participles"),
    ("participles", "Правописание причастий", "orthography",
     "Н и НН в причастиях, суффиксы",
     "lesson-12-participles", "exercise-05-verbs-participles"),
    ("adverbs", "Правописание наречий", "orthography",
     "Слитное, дефисное, раздельное написание",
     "lesson-13-adverbs", "exercise-06-adverbs-particles"),
    ("particles-not-ne", "Частицы НЕ и НИ", "orthography",
     "Различение НЕ и НИ, слитное/раздельное",
     "lesson-14-particles-not-ne", "exercise-06-adverbs-particles"),
    ("combined-words", "Слитное, дефисное, раздельное написание", "orthography",
     "Общие правила написания слов",
     "lesson-15-combined-words", "exercise-07-combined-writing"),
    ("comma-placement", "Правила расположения запятых", "punctuation",
     "Систематизация всех правил запятых",
     "lesson-16-comma-rules-overview", "exercise-09-comma-placement"),
    ("sentence-end", "Знаки в конце предложения", "punctuation",
     "Точка, вопросительный, восклицательный знаки",
     "lesson-17-sentence-end", "exercise-10-simple-sentence"),
    ("homogeneous-members", "Однородные члены предложения", "punctuation",
     "Запятые при однородных членах",
     "lesson-18-homogeneous-members", "exercise-11-homogeneous"),
    ("generalization-words", "Обобщающие слова", "punctuation",
     "Двоеточие и тире при обобщающих словах",
     "lesson-19-generalization-words", "exercise-11-homogeneous"),
    ("separate-definitions", "Обособленные определения", "punctuation",
     "Причастные обороты и определения",
     "lesson-20-separate-definitions", "exercise-12-separate-members"),
    ("separate-applications", "Обособленные приложения", "punctuation",
     "Выделение приложений",
     "lesson-21-separate-applications", "exercise-12-separate-members"),
    ("separate-circumstances", "Обособленные обстоятельства", "punctuation",
     "Деепричастные обороты",
     "lesson-22-separate-circumstances", "exercise-12-separate-members"),
    ("separate-additions", "Уточняющие члены предложения", "punctuation",
     "Уточняющие и поясняющие члены",
     "lesson-23-separate-additions", "exercise-12-separate-members"),
    ("appeals", "Обращения и вводные слова", "punctuation",
     "Выделение обращений и вводных слов",
     "lesson-24-appeals", "exercise-13-insertions"),
    ("introductory-constructions", "Вводные конструкции", "punctuation",
     "Вводные предложения и вставные конструкции",
     "lesson-25-introductory-constructions", "exercise-13-insertions"),
    ("direct-speech", "Прямая речь и диалог", "punctuation",
     "Оформление чужой речи",
     "lesson-26-direct-speech", "exercise-15-direct-speech"),
    ("complex-sentence", "Сложносочинённое предложение", "punctuation",
     "Знаки в ССП",
     "lesson-27-complex-sentence", "exercise-14-complex-sentence"),
    ("subordinate-clauses", "Сложноподчинённое предложение", "punctuation",
     "Знаки в СПП",
     "lesson-28-subordinate-clauses", "exercise-14-complex-sentence"),
    ("non-union-sentence", "Бессоюзное сложное предложение", "punctuation",
     "Двоеточие и тире в БСП",
     "lesson-29-non-union-sentence", "exercise-14-complex-sentence"),
    ("complex-with-types", "Сложные предложения с разными видами связи", "punctuation",
     "Комбинированные сложные предложения",
     "lesson-30-complex-with-types", "exercise-14-complex-sentence"),
    ("quotes-parentheses", "Кавычки, скобки, тире", "punctuation",
     "Особые случаи пунктуации",
     "lesson-31-quotes-parentheses", "exercise-14-complex-sentence"),
)


class SkillCatalog:
    """Immutable, ordered set of skill definitions."""

    def __init__(self, definitions: Iterable[SkillDefinition], version: int = CATALOG_VERSION) -> None:
        ordered = tuple(sorted(definitions, key=lambda definition: definition.order))
        if not ordered:
            raise ValueError("Skill catalog must not be empty.")
        by_id: dict[str, SkillDefinition] = {}
        for definition in ordered:
            if definition.skill_id in by_id:
                raise ValueError(f"Duplicate skill id in catalog: {definition.skill_id}")
            by_id[definition.skill_id] = definition
        self._definitions = ordered
        self._by_id = MappingProxyType(by_id)
        self.version = version

    def __iter__(self) -> Iterator[SkillDefinition]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, skill_id: object) -> bool:
        return skill_id in self._by_id

    def get(self, skill_id: str) -> Optional[SkillDefinition]:
        return self._by_id.get(skill_id)

    @property
    def skill_ids(self) -> frozenset[str]:
        return frozenset(self._by_id)

    def by_category(self, category: str) -> tuple[SkillDefinition, ...]:
        return tuple(definition for definition in self._definitions if definition.category == category)

    @property
    def categories(self) -> tuple[str, ...]:
        return CATEGORIES


def default_catalog() -> SkillCatalog:
    return SkillCatalog(
        SkillDefinition(
            skill_id=skill_id,
            name=name,
            category=category,
            description=description,
            related_lessons=(lesson,),
            related_exercises=(exercise,),
            order=index,
        )
        for index, (skill_id, name, category, description, lesson, exercise) in enumerate(
            _DEFAULT_ENTRIES, start=1
        )
    )


def load_catalog(path: Optional[str | Path] = None) -> SkillCatalog:
    """Return the catalog from a JSON file, or the built-in course catalog.

    The file holds ``{"version": int, "skills": [{skillId, name, ...}, ...]}``.
    """
    if not path:
        return default_catalog()
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    skills = payload.get("skills") if isinstance(payload, dict) else payload
    if not isinstance(skills, list):
        raise ValueError("Skill catalog file must contain a list of skills.")
    version = int(payload.get("version", CATALOG_VERSION)) if isinstance(payload, dict) else CATALOG_VERSION
    return SkillCatalog((SkillDefinition.from_mapping(entry) for entry in skills), version=version)
