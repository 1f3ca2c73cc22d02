"""
RNG - Seeded Unit Pool
======================

Provides deterministic level layouts through a seeded Fisher-Yates shuffle
of the unit pool.
"""

from __future__ import annotations

import random
from typing import List, MutableSequence, Optional, TypeVar

T = TypeVar("T")


def fisher_yates_shuffle(items: MutableSequence[T], rng: random.Random) -> None:
    """
    Shuffle a sequence in place.

    Walks from the last index down, swapping each element with a uniformly
    chosen element at or below it.
    """
    for i in range(len(items) - 1, 0, -1):
        j = rng.randrange(i + 1)
        items[i], items[j] = items[j], items[i]


class UnitPool:
    """
    Shuffled pool of color units for one random level.

    The pool holds `capacity` units of each of `num_colors` colors. The
    same seed and parameters always yield the same order.
    """

    def __init__(self, num_colors: int, capacity: int, seed: Optional[int] = None):
        """
        Initialize unit pool.

        Args:
            num_colors: Number of distinct colors (ids 0..num_colors-1).
            capacity: Units per color.
            seed: Random seed for reproducibility. Random if None.
        """
        if num_colors < 0 or capacity < 0:
            raise ValueError(
                f"num_colors and capacity must be non-negative, got {num_colors}, {capacity}"
            )

        self._num_colors = num_colors
        self._capacity = capacity
        self._seed = seed
        self._rng = random.Random(seed)

        # Pool template: capacity units per color
        self._template: List[int] = []
        for color in range(num_colors):
            self._template.extend([color] * capacity)

        self._units: List[int] = []
        self._index: int = 0
        self._refill()

    def _refill(self) -> None:
        """Refill and shuffle the pool."""
        self._units = self._template.copy()
        fisher_yates_shuffle(self._units, self._rng)
        self._index = 0

    @property
    def seed(self) -> Optional[int]:
        return self._seed

    @property
    def units(self) -> List[int]:
        """Full shuffled order (copy)."""
        return self._units.copy()

    @property
    def remaining(self) -> int:
        """Units not yet drawn."""
        return len(self._units) - self._index

    def __len__(self) -> int:
        return len(self._units)

    def draw(self, count: int) -> List[int]:
        """
        Draw up to `count` units in pool order.

        Returns fewer units when the pool runs out.
        """
        end = min(self._index + max(0, count), len(self._units))
        drawn = self._units[self._index:end]
        self._index = end
        return drawn

    def reset(self, seed: Optional[int] = None) -> None:
        """
        Reset the pool with optional new seed.

        Args:
            seed: New random seed. Keeps current if None.
        """
        if seed is not None:
            self._seed = seed
        self._rng = random.Random(self._seed)
        self._refill()
