"""
Game Rules
==========

Handles win detection, move and time limits, and the loss latch.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from water_sort.sort_core.container import Container


@dataclass
class TerminationResult:
    """Result of termination check."""
    won: bool
    lost: bool
    reason: str

    @property
    def is_over(self) -> bool:
        return self.won or self.lost

    @staticmethod
    def none() -> "TerminationResult":
        return TerminationResult(False, False, "")

    @staticmethod
    def win() -> "TerminationResult":
        return TerminationResult(True, False, "solved")

    @staticmethod
    def loss(reason: str) -> "TerminationResult":
        return TerminationResult(False, True, reason)


def all_complete(containers: Iterable[Container]) -> bool:
    """True if every non-empty container is full and monochrome."""
    return all(c.is_empty or c.is_complete for c in containers)


class TerminationRules:
    """
    Handles level termination conditions.

    - Solved: every non-empty container complete
    - Move limit: limit reached without solving
    - Time limit: elapsed time reached the limit

    A loss fires once. After the latch is set, further checks report the
    same loss without asking the caller to repeat side effects.
    """

    def __init__(self, max_moves: int = 0, time_limit: float = 0.0):
        """
        Initialize termination rules.

        Args:
            max_moves: Move limit, 0 for none.
            time_limit: Time limit in seconds, 0 for none.
        """
        self._max_moves = max_moves
        self._time_limit = time_limit
        self._loss_latched: bool = False
        self._loss_reason: str = ""

    @property
    def move_limit_enabled(self) -> bool:
        return self._max_moves > 0

    @property
    def time_limit_enabled(self) -> bool:
        return self._time_limit > 0

    @property
    def max_moves(self) -> int:
        return self._max_moves

    @property
    def time_limit(self) -> float:
        return self._time_limit

    @property
    def loss_latched(self) -> bool:
        """True once a loss has fired."""
        return self._loss_latched

    @property
    def loss_reason(self) -> str:
        return self._loss_reason

    def reset(self) -> None:
        """Clear the loss latch."""
        self._loss_latched = False
        self._loss_reason = ""

    def check_after_move(self, move_count: int, solved: bool) -> TerminationResult:
        """
        Check win and move limit after a committed pour.

        Solving on the last allowed move is a win.
        """
        if solved:
            return TerminationResult.win()

        if self.move_limit_enabled and move_count >= self._max_moves:
            return TerminationResult.loss("move_limit")

        return TerminationResult.none()

    def check_move_limit(self, move_count: int, solved: bool) -> TerminationResult:
        """Check the move limit alone (used when polling)."""
        if self.move_limit_enabled and move_count >= self._max_moves and not solved:
            return TerminationResult.loss("move_limit")
        return TerminationResult.none()

    def check_time_limit(self, elapsed: float) -> TerminationResult:
        """Check the time limit against elapsed seconds."""
        if self.time_limit_enabled and elapsed >= self._time_limit:
            return TerminationResult.loss("time_limit")
        return TerminationResult.none()

    def latch_loss(self, result: TerminationResult) -> bool:
        """
        Record a loss.

        Returns:
            True the first time a loss is latched, False afterwards.
        """
        if not result.lost or self._loss_latched:
            return False
        self._loss_latched = True
        self._loss_reason = result.reason
        return True

    def moves_remaining(self, move_count: int) -> int:
        """Moves left under the limit, 0 when there is no limit."""
        if not self.move_limit_enabled:
            return 0
        return max(0, self._max_moves - move_count)

    def time_remaining(self, elapsed: float) -> float:
        """Seconds left under the limit, 0 when there is no limit."""
        if not self.time_limit_enabled:
            return 0.0
        return max(0.0, self._time_limit - elapsed)
