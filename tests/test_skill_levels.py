import pytest

from course.services.skills import LEVEL_LADDER, compute_level
from course.utils.numbers import mean_rounded, percentage, round_half_up


@pytest.mark.parametrize(
    ("progress", "practice_count", "previous", "expected"),
    [
        (95, 12, 0, 5),
        (90, 10, 0, 5),
        (95, 9, 0, 4),
        (80, 7, 0, 4),
        (79, 20, 0, 3),
        (70, 5, 0, 3),
        (69, 5, 0, 2),
        (50, 3, 0, 2),
        (100, 2, 0, 1),
        (0, 1, 0, 1),
        (0, 0, 3, 3),
        (0, 0, 0, 0),
    ],
)
def test_compute_level_ladder(progress, practice_count, previous, expected):
    assert compute_level(progress, practice_count, previous) == expected


def test_compute_level_can_go_down():
    assert compute_level(40, 12, 5) == 1


def test_ladder_is_checked_from_the_top():
    thresholds = [rung[0] for rung in LEVEL_LADDER]
    assert thresholds == sorted(thresholds, reverse=True)


def test_round_half_up_matches_browser_rounding():
    assert round_half_up(12.5) == 13
    assert round_half_up(2.5) == 3
    assert round_half_up(66.4) == 66
    assert round_half_up(0) == 0


def test_percentage_handles_empty_whole():
    assert percentage(0, 0) == 0
    assert percentage(9, 10) == 90
    assert percentage(2, 3) == 67
    assert percentage(1, 8) == 13


def test_mean_rounded_of_nothing_is_zero():
    assert mean_rounded([]) == 0
    assert mean_rounded([95, 88]) == 92
