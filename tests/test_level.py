"""Level formula tests."""

import pytest

from questline.services.level import compute_level, level_progress, xp_for_level


@pytest.mark.parametrize(
    ("xp", "level"),
    [(0, 1), (99, 1), (100, 2), (399, 2), (400, 3), (899, 3), (900, 4), (1599, 4), (1600, 5)],
)
def test_level_thresholds(xp, level):
    assert compute_level(xp) == level


def test_negative_xp_counts_as_zero():
    assert compute_level(-500) == 1


def test_level_is_monotonic():
    levels = [compute_level(xp) for xp in range(0, 5000, 7)]
    assert levels == sorted(levels)
    assert min(levels) >= 1


def test_level_threshold_matches_formula():
    for level in range(1, 30):
        assert compute_level(xp_for_level(level)) == level
        if level > 1:
            assert compute_level(xp_for_level(level) - 1) == level - 1


def test_level_progress():
    progress = level_progress(250)
    assert progress.level == 2
    assert progress.level_floor_xp == 100
    assert progress.next_level_xp == 400
    assert progress.xp_into_level == 150
    assert progress.xp_to_next_level == 150
