"""
Difficulty Calculator
=====================

Pure functions computing minimum-move estimates, difficulty tier, move and
time limits, and star thresholds from level topology.

Tiers:
- 1 Easy:   levels 1-10,  150% of minimum moves allowed
- 2 Normal: levels 11-20, 120%
- 3 Hard:   levels 21-30, 100%
- 4 Expert: levels 31-40, 80% (floored at the minimum)
- 5 Master: levels 41+,   60% (floored at the minimum)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict


MIN_TIER = 1
MAX_TIER = 5
LEVELS_PER_TIER = 10

# Allowed moves as a fraction of the minimum-move estimate
MOVE_MULTIPLIERS: Dict[int, float] = {1: 1.5, 2: 1.2, 3: 1.0, 4: 0.8, 5: 0.6}

TIER_NAMES: Dict[int, str] = {1: "Easy", 2: "Normal", 3: "Hard", 4: "Expert", 5: "Master"}

# Every Nth level is timed
TIMED_LEVEL_INTERVAL = 5
BASE_TIME_SECONDS = 60
SECONDS_PER_TIER = 30

TWO_STAR_FACTOR = 1.5


def _require_non_negative(**values: int) -> None:
    for name, value in values.items():
        if value < 0:
            raise ValueError(f"{name} must be non-negative, got {value}")


@dataclass(frozen=True)
class StarThresholds:
    """Move-count ceilings for 3 and 2 stars."""
    three_star: int
    two_star: int


@dataclass(frozen=True)
class DifficultyResult:
    """Full difficulty breakdown for a level."""
    level_number: int
    tier: int
    minimum_moves: int
    max_moves: int
    time_limit_seconds: int
    num_containers: int
    num_colors: int

    @property
    def tier_name(self) -> str:
        return TIER_NAMES.get(self.tier, "Unknown")

    def describe(self) -> str:
        """Multi-line human-readable summary."""
        time_str = f"{self.time_limit_seconds}s" if self.time_limit_seconds > 0 else "None"
        return (
            f"Level {self.level_number} ({self.tier_name})\n"
            f"Containers: {self.num_containers}, Colors: {self.num_colors}\n"
            f"Min Moves: {self.minimum_moves}, Max Moves (Allowed): {self.max_moves}\n"
            f"Time Limit: {time_str}"
        )


def minimum_moves(num_containers: int, num_colors: int, num_empty: int = 0) -> int:
    """
    Estimate the minimum number of moves needed to solve a level.

    Each color needs one move to be joined; every container that is neither
    empty nor one of the color targets adds two more.
    """
    _require_non_negative(num_containers=num_containers, num_colors=num_colors, num_empty=num_empty)

    if num_colors == 0:
        return 0
    if num_containers <= num_colors:
        return num_colors

    extra = (num_containers - num_empty - num_colors) * 2
    return num_colors + max(0, extra)


def difficulty_tier(level_number: int) -> int:
    """Difficulty tier 1-5 for a level number."""
    _require_non_negative(level_number=level_number)
    tier = (level_number - 1) // LEVELS_PER_TIER + 1
    return max(MIN_TIER, min(tier, MAX_TIER))


def max_moves(min_moves: int, tier: int) -> int:
    """Allowed moves for a tier, never below the minimum-move estimate."""
    _require_non_negative(min_moves=min_moves, tier=tier)
    multiplier = MOVE_MULTIPLIERS.get(tier, 1.0)
    return max(min_moves, math.ceil(min_moves * multiplier))


def time_limit_seconds(level_number: int, tier: int) -> int:
    """Time limit for a level, or 0 when the level is untimed."""
    _require_non_negative(level_number=level_number, tier=tier)
    if level_number % TIMED_LEVEL_INTERVAL == 0:
        return BASE_TIME_SECONDS + tier * SECONDS_PER_TIER
    return 0


def star_thresholds(min_moves: int) -> StarThresholds:
    """Star ceilings derived from the minimum-move estimate."""
    _require_non_negative(min_moves=min_moves)
    # round() is half-to-even
    return StarThresholds(
        three_star=min_moves,
        two_star=int(round(min_moves * TWO_STAR_FACTOR))
    )


def calculate_level_stats(
    level_number: int,
    num_containers: int,
    num_colors: int,
    num_empty: int = 0,
    enable_time_limit: bool = True
) -> DifficultyResult:
    """
    Compute tier, minimum moves, allowed moves, and time limit for a level.

    Args:
        level_number: 1-based level number.
        num_containers: Containers in the level.
        num_colors: Distinct colors in the level.
        num_empty: Containers assumed empty by the estimate.
        enable_time_limit: If False, the level is never timed.

    Returns:
        DifficultyResult for the level.
    """
    tier = difficulty_tier(level_number)
    min_moves = minimum_moves(num_containers, num_colors, num_empty)
    allowed = max_moves(min_moves, tier)
    time_limit = time_limit_seconds(level_number, tier) if enable_time_limit else 0

    return DifficultyResult(
        level_number=level_number,
        tier=tier,
        minimum_moves=min_moves,
        max_moves=allowed,
        time_limit_seconds=time_limit,
        num_containers=num_containers,
        num_colors=num_colors
    )
