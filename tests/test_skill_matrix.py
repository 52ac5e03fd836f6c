import datetime

from course.store import collection_path, document_path


def _skill_path(user_id: str, skill_id: str) -> str:
    return document_path("users", user_id, "skills", skill_id)


def test_first_read_bootstraps_full_catalog_in_one_batch(skills, store, user_id):
    result = skills.get_all(user_id)

    assert result.success
    assert len(result.data) == 31
    assert store.write_count == 1
    assert [skill.order for skill in result.data] == list(range(1, 32))
    assert all(skill.level == 0 and skill.progress == 0 for skill in result.data)


def test_second_read_does_not_write_again(skills, store, user_id):
    skills.get_all(user_id)
    writes = store.write_count

    again = skills.get_all(user_id)

    assert again.success
    assert len(again.data) == 31
    assert store.write_count == writes


def test_unreadable_skills_are_not_overwritten(skills, store, user_id):
    skills.initialize(user_id)
    skills.update_from_practice(user_id, "prefixes", 9, 10)
    for skill_id, _ in store.list_documents(collection_path("users", user_id, "skills")):
        store.update(_skill_path(user_id, skill_id), {"category": "grammar"})
    writes = store.write_count

    result = skills.get_all(user_id)

    assert not result.success
    assert store.write_count == writes
    assert store.get(_skill_path(user_id, "prefixes"))["totalAnswers"] == 10


def test_initialize_reports_count_and_stamps_catalog_version(skills, store, user_id):
    result = skills.initialize(user_id)

    assert result.success
    assert result.data == 31
    assert result.message == "Skills initialized."
    document = store.get(_skill_path(user_id, "vowels-checked"))
    assert document["catalogVersion"] == 1
    assert document["createdAt"] is not None


def test_practice_accumulates_counters(skills, store, user_id, clock):
    skills.initialize(user_id)

    first = skills.update_from_practice(user_id, "vowels-checked", 9, 10)
    assert first.success
    assert first.data == {"progress": 90, "level": 1, "practiceCount": 1}

    second = skills.update_from_practice(user_id, "vowels-checked", 3, 10)
    assert second.data == {"progress": 60, "level": 1, "practiceCount": 2}

    document = store.get(_skill_path(user_id, "vowels-checked"))
    assert document["correctAnswers"] == 12
    assert document["totalAnswers"] == 20
    assert document["lastPracticed"] == clock.current


def test_repeated_strong_practice_reaches_master(skills, user_id):
    skills.initialize(user_id)
    levels = []
    for _ in range(10):
        levels.append(skills.update_from_practice(user_id, "separate-definitions", 19, 20).data["level"])

    assert levels[0] == 1
    assert levels[2] == 2
    assert levels[4] == 3
    assert levels[6] == 4
    assert levels[9] == 5


def test_practice_rejects_more_correct_than_total(skills, store, user_id):
    skills.initialize(user_id)
    writes = store.write_count

    result = skills.update_from_practice(user_id, "vowels-checked", 11, 10)

    assert not result.success
    assert "exceed" in result.error
    assert store.write_count == writes


def test_practice_without_any_answers_fails(skills, store, user_id):
    skills.initialize(user_id)

    result = skills.update_from_practice(user_id, "vowels-checked", 0, 0)

    assert not result.success
    document = store.get(_skill_path(user_id, "vowels-checked"))
    assert document["practiceCount"] == 0
    assert document["progress"] == 0


def test_practice_on_unknown_skill_is_not_found(skills, user_id):
    skills.initialize(user_id)

    result = skills.update_from_practice(user_id, "no-such-skill", 1, 1)

    assert not result.success
    assert result.not_found
    assert result.error == "Skill not found."


def test_get_skill_before_initialization_is_not_found(skills, user_id):
    result = skills.get_skill(user_id, "vowels-checked")

    assert not result.success
    assert result.not_found


def test_update_direct_rounds_half_up_and_keeps_practice_count(skills, store, user_id):
    skills.initialize(user_id)

    result = skills.update_direct(user_id, "vowels-checked", 12.5, 1, 8)

    assert result.success
    assert result.data == {"progress": 13, "level": 1}
    document = store.get(_skill_path(user_id, "vowels-checked"))
    assert document["practiceCount"] == 0
    assert document["correctAnswers"] == 1
    assert document["totalAnswers"] == 8


def test_stats_for_fresh_matrix(skills, user_id):
    result = skills.get_stats(user_id)

    assert result.success
    stats = result.data
    assert stats["total"] == 31
    assert stats["byLevel"] == {0: 31, 1: 0, 2: 0, 3: 0, 4: 0, 5: 0}
    assert stats["byCategory"] == {"orthography": 15, "punctuation": 16}
    assert stats["averageProgress"] == 0
    assert stats["masterSkills"] == 0
    assert stats["inProgressSkills"] == 0


def test_stats_track_progress(skills, user_id):
    skills.initialize(user_id)
    skills.update_from_practice(user_id, "vowels-checked", 31, 31)

    stats = skills.get_stats(user_id).data

    assert stats["byLevel"][1] == 1
    assert stats["inProgressSkills"] == 1
    assert stats["averageProgress"] == 3


def test_category_filter(skills, user_id):
    skills.initialize(user_id)

    orthography = skills.get_by_category(user_id, "orthography")
    unknown = skills.get_by_category(user_id, "grammar")

    assert orthography.success
    assert len(orthography.data) == 15
    assert {skill.category for skill in orthography.data} == {"orthography"}
    assert not unknown.success


def test_skills_needing_practice_order(skills, store, user_id, clock):
    skills.initialize(user_id)
    skills.update_from_practice(user_id, "vowels-checked", 5, 10)
    clock.advance(days=3)
    skills.update_from_practice(user_id, "prefixes", 5, 10)
    skills.update_from_practice(user_id, "soft-sign", 5, 10)
    store.update(_skill_path(user_id, "soft-sign"), {"lastPracticed": None})
    clock.advance(days=2)
    skills.update_from_practice(user_id, "separate-definitions", 5, 10)
    clock.advance(days=6)

    result = skills.get_skills_needing_practice(user_id, 7)

    assert result.success
    assert [skill.skill_id for skill in result.data] == [
        "soft-sign",
        "vowels-checked",
        "prefixes",
    ]


def test_mastered_and_untouched_skills_never_need_practice(skills, store, user_id, clock):
    skills.initialize(user_id)
    store.update(_skill_path(user_id, "vowels-checked"), {"level": 5, "lastPracticed": None})
    clock.advance(days=30)

    result = skills.get_skills_needing_practice(user_id)

    assert result.success
    assert result.data == []


def test_stale_started_skill_is_included_and_stale_master_is_not(skills, store, user_id, clock):
    skills.initialize(user_id)
    ten_days_ago = clock.current - datetime.timedelta(days=10)
    store.update(_skill_path(user_id, "soft-sign"), {"level": 2, "lastPracticed": ten_days_ago})
    store.update(
        _skill_path(user_id, "vowels-checked"),
        {"level": 5, "lastPracticed": clock.current - datetime.timedelta(days=30)},
    )

    result = skills.get_skills_needing_practice(user_id, 7)

    assert result.success
    assert [skill.skill_id for skill in result.data] == ["soft-sign"]


def test_reset_restores_zero_state(skills, store, user_id):
    skills.initialize(user_id)
    skills.update_from_practice(user_id, "vowels-checked", 9, 10)

    result = skills.reset(user_id, "vowels-checked")

    assert result.success
    assert result.message == "Skill reset."
    document = store.get(_skill_path(user_id, "vowels-checked"))
    assert document["level"] == 0
    assert document["progress"] == 0
    assert document["practiceCount"] == 0
    assert document["totalAnswers"] == 0
    assert document["lastPracticed"] is None
