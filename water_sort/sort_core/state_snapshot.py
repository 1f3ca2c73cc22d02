"""
State Snapshot
==============

Undo history backed by a shared arena of immutable container versions, and
fixed-size numpy packing of the board for Gymnasium observations.

Each distinct container content is stored once in the arena and referenced
by index. A snapshot is a tuple of arena indices plus the move count, so a
pour adds at most the two container versions it changed.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from water_sort.sort_core.config_loader import GameConfig, get_config
from water_sort.sort_core.container import Container, ContainerState

# Padding value for empty unit slots in observation arrays
EMPTY_SLOT = -1


@dataclass(frozen=True)
class Snapshot:
    """Immutable record of every container version plus the move count."""
    versions: Tuple[int, ...]
    move_count: int


class ContainerArena:
    """
    Interned store of container versions.

    Identical contents share one entry, so repeated states (pour back and
    forth, undo then redo) never grow the arena.
    """

    def __init__(self):
        self._states: List[ContainerState] = []
        self._lookup: Dict[ContainerState, int] = {}

    def intern(self, state: ContainerState) -> int:
        """Return the index of a version, adding it if new."""
        index = self._lookup.get(state)
        if index is None:
            index = len(self._states)
            self._states.append(state)
            self._lookup[state] = index
        return index

    def __getitem__(self, index: int) -> ContainerState:
        return self._states[index]

    def __len__(self) -> int:
        return len(self._states)

    def clear(self) -> None:
        self._states.clear()
        self._lookup.clear()


class SnapshotHistory:
    """
    Undo stack of snapshots.

    The first snapshot (initial layout) is never popped.
    """

    def __init__(self, arena: Optional[ContainerArena] = None):
        self._arena = arena if arena is not None else ContainerArena()
        self._stack: List[Snapshot] = []

    @property
    def arena(self) -> ContainerArena:
        return self._arena

    @property
    def depth(self) -> int:
        """Number of snapshots, including the initial one."""
        return len(self._stack)

    def __len__(self) -> int:
        return len(self._stack)

    @property
    def top(self) -> Snapshot:
        return self._stack[-1]

    @property
    def initial(self) -> Snapshot:
        return self._stack[0]

    def clear(self) -> None:
        """Drop every snapshot and arena entry (level reload)."""
        self._stack.clear()
        self._arena.clear()

    def push_initial(self, containers: Sequence[Container], move_count: int = 0) -> Snapshot:
        """Record the initial layout, discarding any previous history."""
        self.clear()
        snapshot = Snapshot(
            versions=tuple(self._arena.intern(c.state) for c in containers),
            move_count=move_count
        )
        self._stack.append(snapshot)
        return snapshot

    def push(
        self,
        containers: Sequence[Container],
        move_count: int,
        changed: Optional[Iterable[int]] = None
    ) -> Snapshot:
        """
        Record the current state.

        Args:
            containers: All containers of the level.
            move_count: Move count after the committed move.
            changed: Indices of containers modified since the top snapshot.
                Other containers reuse their versions from the top snapshot.
                If None, every container is re-interned.
        """
        if not self._stack or changed is None:
            versions = [self._arena.intern(c.state) for c in containers]
        else:
            versions = list(self._stack[-1].versions)
            for index in changed:
                versions[index] = self._arena.intern(containers[index].state)

        snapshot = Snapshot(versions=tuple(versions), move_count=move_count)
        self._stack.append(snapshot)
        return snapshot

    def pop(self) -> Optional[Snapshot]:
        """
        Pop the top snapshot and return the new top.

        Returns None (and leaves the stack untouched) when only the initial
        snapshot remains.
        """
        if len(self._stack) <= 1:
            return None
        self._stack.pop()
        return self._stack[-1]

    def rewind(self) -> Snapshot:
        """Pop down to the initial snapshot and return it."""
        del self._stack[1:]
        return self._stack[0]

    def states(self, snapshot: Snapshot) -> Tuple[ContainerState, ...]:
        """Resolve a snapshot to per-container unit tuples."""
        return tuple(self._arena[v] for v in snapshot.versions)

    def restore(self, snapshot: Snapshot, containers: Sequence[Container]) -> None:
        """Write a snapshot's contents back into the containers."""
        for container, version in zip(containers, snapshot.versions):
            container.restore(self._arena[version])


@dataclass
class BoardSnapshot:
    """
    Fixed-size view of the board.

    Arrays are padded to the observation limits with a container mask.
    """
    move_count: int
    moves_remaining: int
    time_remaining: float
    num_containers: int

    units: np.ndarray           # (MAX_CONT, MAX_CAP) int16, EMPTY_SLOT padded
    fill: np.ndarray            # (MAX_CONT,) int16
    capacity: np.ndarray        # (MAX_CONT,) int16
    container_mask: np.ndarray  # (MAX_CONT,) bool
    complete: np.ndarray        # (MAX_CONT,) bool

    def to_obs_dict(self) -> Dict[str, np.ndarray]:
        """Convert to Gymnasium observation dictionary."""
        return {
            "units": self.units,
            "fill": self.fill,
            "capacity": self.capacity,
            "container_mask": self.container_mask.astype(np.int8),
            "complete": self.complete.astype(np.int8),
            "move_count": np.array(self.move_count, dtype=np.int32),
            "moves_remaining": np.array(self.moves_remaining, dtype=np.int32),
            "time_remaining": np.array(self.time_remaining, dtype=np.float32),
        }


class SnapshotBuilder:
    """Builds board snapshots with pre-allocated arrays."""

    def __init__(self, config: Optional[GameConfig] = None):
        if config is None:
            config = get_config()

        self._config = config
        self._max_containers = config.observation.max_containers
        self._max_capacity = config.observation.max_capacity

    @property
    def max_containers(self) -> int:
        return self._max_containers

    @property
    def max_capacity(self) -> int:
        return self._max_capacity

    def build(
        self,
        containers: Sequence[Container],
        move_count: int,
        moves_remaining: int = 0,
        time_remaining: float = 0.0
    ) -> BoardSnapshot:
        """
        Pack containers into fixed-size arrays.

        Raises:
            ValueError: If the level exceeds the observation limits.
        """
        if len(containers) > self._max_containers:
            raise ValueError(
                f"{len(containers)} containers exceed observation.max_containers ({self._max_containers})"
            )

        units = np.full((self._max_containers, self._max_capacity), EMPTY_SLOT, dtype=np.int16)
        fill = np.zeros(self._max_containers, dtype=np.int16)
        capacity = np.zeros(self._max_containers, dtype=np.int16)
        mask = np.zeros(self._max_containers, dtype=bool)
        complete = np.zeros(self._max_containers, dtype=bool)

        for i, container in enumerate(containers):
            if container.capacity > self._max_capacity:
                raise ValueError(
                    f"Container capacity {container.capacity} exceeds "
                    f"observation.max_capacity ({self._max_capacity})"
                )
            state = container.state
            if state:
                units[i, :len(state)] = state
            fill[i] = len(state)
            capacity[i] = container.capacity
            mask[i] = True
            complete[i] = container.is_complete

        return BoardSnapshot(
            move_count=move_count,
            moves_remaining=moves_remaining,
            time_remaining=time_remaining,
            num_containers=len(containers),
            units=units,
            fill=fill,
            capacity=capacity,
            container_mask=mask,
            complete=complete
        )


def color_totals(states: Iterable[Sequence[int]]) -> Counter:
    """Count units per color across container states."""
    return Counter(unit for state in states for unit in state)
