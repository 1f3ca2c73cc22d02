"""
Container
=========

Bounded stack of liquid units and the atomic pour primitive.

Every unit has amount 1. Adjacent units of the same color are never merged
in storage, so a pour always moves exactly one element.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Union


# Immutable content of one container, bottom unit first
ContainerState = Tuple[int, ...]


@dataclass(frozen=True)
class ColorSegment:
    """An authored run of one color, expanded to `amount` units on load."""
    color: int
    amount: int = 1


UnitSpec = Union[int, ColorSegment]


def expand_units(units: Iterable[UnitSpec]) -> List[int]:
    """
    Expand color ids and ColorSegment runs into individual amount-1 units.

    Args:
        units: Plain color ids and/or ColorSegment runs, bottom first.

    Returns:
        Flat list of color ids.
    """
    expanded: List[int] = []
    for unit in units:
        if isinstance(unit, ColorSegment):
            if unit.amount < 0:
                raise ValueError(f"Segment amount must be non-negative, got {unit.amount}")
            expanded.extend([unit.color] * unit.amount)
        else:
            expanded.append(int(unit))
    return expanded


class Container:
    """
    A bottle holding an ordered sequence of color units.

    The last element of the sequence is the top of the liquid column.
    """

    def __init__(self, capacity: int, units: Iterable[UnitSpec] = (), container_id: int = 0):
        """
        Initialize container.

        Args:
            capacity: Maximum number of units.
            units: Initial units, bottom first.
            container_id: Index of this container within its level.
        """
        if capacity <= 0:
            raise ValueError(f"Container capacity must be positive, got {capacity}")

        self._capacity = capacity
        self._id = container_id
        self._units: List[int] = []
        self.initialize(units)

    @property
    def id(self) -> int:
        """Index of this container within its level."""
        return self._id

    @property
    def capacity(self) -> int:
        """Maximum number of units."""
        return self._capacity

    @property
    def length(self) -> int:
        """Number of units currently held."""
        return len(self._units)

    def __len__(self) -> int:
        return len(self._units)

    @property
    def free_space(self) -> int:
        """Number of units that still fit."""
        return self._capacity - len(self._units)

    @property
    def is_empty(self) -> bool:
        return not self._units

    @property
    def is_full(self) -> bool:
        return len(self._units) >= self._capacity

    @property
    def is_complete(self) -> bool:
        """True if full and every unit has the same color."""
        if not self.is_full:
            return False
        first = self._units[0]
        return all(unit == first for unit in self._units)

    @property
    def top_color(self) -> Optional[int]:
        """Color of the top unit, or None if empty."""
        if not self._units:
            return None
        return self._units[-1]

    @property
    def units(self) -> ContainerState:
        """Units bottom first, as an immutable tuple."""
        return tuple(self._units)

    @property
    def state(self) -> ContainerState:
        """Immutable view of the content (alias of units, used for snapshots)."""
        return tuple(self._units)

    def initialize(self, units: Iterable[UnitSpec]) -> None:
        """
        Replace the content with the given units.

        Pre-merged ColorSegment runs are expanded into individual units.

        Raises:
            ValueError: If the units do not fit in the container.
        """
        expanded = expand_units(units)
        if len(expanded) > self._capacity:
            raise ValueError(
                f"Container {self._id}: {len(expanded)} units exceed capacity {self._capacity}"
            )
        self._units = expanded

    def restore(self, state: ContainerState) -> None:
        """Restore content from a snapshot state."""
        self.initialize(state)

    def count(self, color: int) -> int:
        """Number of units of a given color."""
        return self._units.count(color)

    def top_run_length(self) -> int:
        """Number of consecutive units matching the top color."""
        if not self._units:
            return 0
        top = self._units[-1]
        run = 0
        for unit in reversed(self._units):
            if unit != top:
                break
            run += 1
        return run

    def can_receive_from(self, other: Optional["Container"]) -> bool:
        """
        Check whether a unit can be poured from `other` into this container.

        Color compatibility is not required.
        """
        if other is None or other.is_empty or self.is_full or other is self:
            return False
        return True

    def pour_to(self, target: "Container") -> int:
        """
        Pour one unit from this container's top onto `target`.

        Returns:
            1 if a unit was moved, 0 if the pour was rejected (no mutation).
        """
        if not target.can_receive_from(self):
            return 0

        color = self._units.pop()
        target._units.append(color)
        return 1

    def __repr__(self) -> str:
        return f"Container({self._id}, {self._units}, capacity={self._capacity})"
