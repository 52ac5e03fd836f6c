import pytest

from models import normalize_word_key


@pytest.mark.parametrize(
    ("word", "expected"),
    [
        ("Орфография", "орфография"),
        ("орфография ", "орфография"),
        ("во  что бы то  ни стало", "во-что-бы-то-ни-стало"),
    ],
)
def test_normalize_word_key(word, expected):
    assert normalize_word_key(word) == expected


def test_normalize_word_key_rejects_blank_and_slash():
    with pytest.raises(ValueError):
        normalize_word_key("   ")
    with pytest.raises(ValueError):
        normalize_word_key("н/нн")


def test_case_and_spacing_variants_share_one_entry(dictionary, user_id):
    dictionary.add_word(user_id, "Орфография", "первое определение")
    dictionary.add_word(user_id, "орфография ", "второе определение")

    words = dictionary.get_all_words(user_id).data

    assert len(words) == 1
    assert words[0].word_id == "орфография"
    assert words[0].definition == "второе определение"


def test_add_word_requires_definition(dictionary, user_id):
    result = dictionary.add_word(user_id, "слово", "  ")

    assert not result.success
    assert dictionary.get_all_words(user_id).data == []


def test_words_listed_newest_first(dictionary, user_id, clock):
    dictionary.add_word(user_id, "первое", "определение")
    clock.advance(minutes=1)
    dictionary.add_word(user_id, "второе", "определение")

    words = dictionary.get_all_words(user_id).data

    assert [entry.word for entry in words] == ["второе", "первое"]


def test_search_matches_word_definition_and_example(dictionary, user_id):
    dictionary.add_word(user_id, "орфография", "Система правил написания", "Знание ОРФОГРАФИИ")
    dictionary.add_word(user_id, "пунктуация", "Знаки препинания")

    assert [entry.word for entry in dictionary.search_words(user_id, "правил").data] == ["орфография"]
    assert [entry.word for entry in dictionary.search_words(user_id, "ПУНКТ").data] == ["пунктуация"]
    assert len(dictionary.search_words(user_id, "").data) == 2


def test_mastery_tracking(dictionary, user_id, clock):
    dictionary.add_word(user_id, "орфография", "правила")
    dictionary.add_word(user_id, "пунктуация", "знаки")

    marked = dictionary.mark_as_mastered(user_id, "орфография")
    unmastered = dictionary.get_unmastered_words(user_id).data
    stats = dictionary.get_dictionary_stats(user_id).data

    assert marked.success
    assert [entry.word_id for entry in unmastered] == ["пунктуация"]
    assert stats == {"total": 2, "mastered": 1, "unmastered": 1, "percentage": 50}
    entry = next(item for item in dictionary.get_all_words(user_id).data if item.word_id == "орфография")
    assert entry.mastered_at == clock.current


def test_re_adding_mastered_word_resets_mastery(dictionary, user_id):
    dictionary.add_word(user_id, "орфография", "правила")
    dictionary.mark_as_mastered(user_id, "орфография")

    entry = dictionary.add_word(user_id, "Орфография", "правила письма").data

    assert entry.mastered is False
    assert entry.mastered_at is None
    assert entry.definition == "правила письма"


def test_mark_missing_word_is_not_found(dictionary, user_id):
    result = dictionary.mark_as_mastered(user_id, "нет-такого")

    assert not result.success
    assert result.not_found


def test_update_and_delete_word(dictionary, user_id):
    dictionary.add_word(user_id, "слово", "старое")

    updated = dictionary.update_word(user_id, "слово", definition="новое", example="пример")
    rejected = dictionary.update_word(user_id, "слово", addedAt=None)

    assert updated.success
    assert not rejected.success
    entry = dictionary.get_all_words(user_id).data[0]
    assert entry.definition == "новое"
    assert entry.example == "пример"

    assert dictionary.delete_word(user_id, "слово").success
    assert dictionary.get_all_words(user_id).data == []


def test_dictionary_stats_when_empty(dictionary, user_id):
    assert dictionary.get_dictionary_stats(user_id).data == {
        "total": 0,
        "mastered": 0,
        "unmastered": 0,
        "percentage": 0,
    }
