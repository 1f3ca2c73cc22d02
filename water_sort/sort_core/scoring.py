"""
Scoring System
==============

Awards stars on level completion and merges results into per-level records.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from water_sort.sort_core.config_loader import GameConfig, get_config
from water_sort.sort_core.difficulty import StarThresholds


@dataclass(frozen=True)
class LevelRecord:
    """Persisted result for one level."""
    completed: bool = False
    stars: int = 0
    best_moves: int = 0

    def merge(self, stars: int, moves: int) -> "LevelRecord":
        """
        Combine this record with a new completion.

        Keeps the higher star count and the lower move count.
        """
        best_moves = moves if not self.completed else min(self.best_moves, moves)
        return replace(
            self,
            completed=True,
            stars=max(self.stars, stars),
            best_moves=best_moves
        )


@dataclass
class StarEvent:
    """Record of a star award."""
    stars: int
    move_count: int
    thresholds: StarThresholds
    time_penalty: bool = False

    def __repr__(self) -> str:
        penalty = ", time_penalty" if self.time_penalty else ""
        return f"StarEvent(stars={self.stars}, moves={self.move_count}{penalty})"


class StarScorer:
    """
    Computes the star rating for a completed level.

    - 3 stars: moves <= three-star threshold
    - 2 stars: moves <= two-star threshold
    - 1 star: any other completion

    On a timed level, finishing in the last part of the time limit costs
    one star, never going below 1.
    """

    MIN_STARS = 1
    MAX_STARS = 3

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize star scorer.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._penalty_ratio = config.session.star_time_penalty_ratio

    def award(
        self,
        move_count: int,
        thresholds: StarThresholds,
        elapsed: float = 0.0,
        time_limit: float = 0.0
    ) -> StarEvent:
        """
        Award stars for a completion.

        Args:
            move_count: Moves used.
            thresholds: Star ceilings for the level.
            elapsed: Seconds played.
            time_limit: Level time limit, 0 if untimed.

        Returns:
            StarEvent describing the award.
        """
        stars = self.MIN_STARS
        if move_count <= thresholds.three_star:
            stars = 3
        elif move_count <= thresholds.two_star:
            stars = 2

        time_penalty = time_limit > 0 and elapsed >= time_limit * self._penalty_ratio
        if time_penalty:
            stars = max(self.MIN_STARS, stars - 1)

        return StarEvent(
            stars=stars,
            move_count=move_count,
            thresholds=thresholds,
            time_penalty=time_penalty
        )
