"""
Tests for the difficulty calculator and star scoring.
"""

import pytest

from water_sort.sort_core.config_loader import load_config
from water_sort.sort_core.difficulty import (
    StarThresholds,
    calculate_level_stats,
    difficulty_tier,
    max_moves,
    minimum_moves,
    star_thresholds,
    time_limit_seconds,
)
from water_sort.sort_core.scoring import LevelRecord, StarScorer


@pytest.fixture
def config():
    return load_config()


class TestMinimumMoves:
    """Test the minimum-move estimate."""

    def test_empties_cover_extra_containers(self):
        assert minimum_moves(6, 4, 2) == 4

    def test_extra_non_empty_containers_cost_two(self):
        assert minimum_moves(6, 4, 0) == 4 + 2 * 2
        assert minimum_moves(5, 4, 1) == 4

    def test_no_colors(self):
        assert minimum_moves(5, 0, 0) == 0

    def test_containers_not_exceeding_colors(self):
        assert minimum_moves(4, 4, 0) == 4
        assert minimum_moves(3, 4, 0) == 4

    def test_extra_never_negative(self):
        assert minimum_moves(6, 4, 5) == 4

    def test_negative_input_rejected(self):
        with pytest.raises(ValueError):
            minimum_moves(-1, 4, 0)


class TestTierAndLimits:
    """Test tier, move limit and time limit."""

    @pytest.mark.parametrize("level,tier", [
        (1, 1), (10, 1), (11, 2), (20, 2), (21, 3), (31, 4), (41, 5), (100, 5),
    ])
    def test_difficulty_tier(self, level, tier):
        assert difficulty_tier(level) == tier

    def test_level_25(self):
        tier = difficulty_tier(25)

        assert tier == 3
        assert max_moves(10, tier) == 10
        assert time_limit_seconds(25, tier) == 150

    def test_max_moves_rounds_up(self):
        assert max_moves(5, 1) == 8   # ceil(7.5)
        assert max_moves(5, 2) == 6

    def test_max_moves_floored_at_minimum(self):
        assert max_moves(10, 4) == 10
        assert max_moves(10, 5) == 10

    def test_untimed_levels(self):
        assert time_limit_seconds(7, 1) == 0
        assert time_limit_seconds(10, 1) == 90

    def test_star_thresholds(self):
        assert star_thresholds(4) == StarThresholds(4, 6)

    def test_star_thresholds_round_half_to_even(self):
        assert star_thresholds(3).two_star == 4   # 4.5
        assert star_thresholds(5).two_star == 8   # 7.5

    def test_calculate_level_stats(self):
        stats = calculate_level_stats(25, 7, 6, num_empty=1)

        assert stats.tier == 3
        assert stats.minimum_moves == 6
        assert stats.max_moves == 6
        assert stats.time_limit_seconds == 150
        assert "Hard" in stats.describe()
        assert "150s" in stats.describe()

    def test_time_limit_can_be_disabled(self):
        stats = calculate_level_stats(25, 7, 6, num_empty=1, enable_time_limit=False)

        assert stats.time_limit_seconds == 0
        assert "Time Limit: None" in stats.describe()


class TestStarScorer:
    """Test star awards."""

    def test_star_bands(self, config):
        scorer = StarScorer(config)
        thresholds = StarThresholds(4, 6)

        assert scorer.award(4, thresholds).stars == 3
        assert scorer.award(5, thresholds).stars == 2
        assert scorer.award(6, thresholds).stars == 2
        assert scorer.award(7, thresholds).stars == 1

    def test_late_finish_costs_a_star(self, config):
        scorer = StarScorer(config)
        thresholds = StarThresholds(4, 6)

        event = scorer.award(4, thresholds, elapsed=95.0, time_limit=100.0)

        assert event.stars == 2
        assert event.time_penalty

    def test_penalty_never_below_one_star(self, config):
        scorer = StarScorer(config)

        event = scorer.award(20, StarThresholds(4, 6), elapsed=99.0, time_limit=100.0)

        assert event.stars == 1

    def test_untimed_level_has_no_penalty(self, config):
        event = StarScorer(config).award(4, StarThresholds(4, 6), elapsed=1000.0)

        assert event.stars == 3
        assert not event.time_penalty


class TestLevelRecord:
    """Test progress record merging."""

    def test_first_completion(self):
        record = LevelRecord().merge(2, 9)

        assert record == LevelRecord(completed=True, stars=2, best_moves=9)

    def test_keeps_best_of_both(self):
        record = LevelRecord(completed=True, stars=3, best_moves=9).merge(1, 7)

        assert record.stars == 3
        assert record.best_moves == 7
