"""
Baseline Hint Agent - Plays the suggested hint move.

Rebuilds the containers from the observation arrays and asks the hint
finder for a move, skipping moves that cannot make progress:

- Pouring straight back what the previous step poured
- Moving a single-color container into an empty one

Serves as a working example of reading observations and as the default
agent for the evaluation harness.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from water_sort.sort_core.container import Container
from water_sort.sort_core.hints import Move, is_helpful, legal_moves


def containers_from_obs(observation: Dict[str, Any]) -> List[Container]:
    """Rebuild Container objects from a padded observation."""
    mask = np.asarray(observation["container_mask"]).astype(bool)
    fill = np.asarray(observation["fill"])
    capacity = np.asarray(observation["capacity"])
    units = np.asarray(observation["units"])

    containers = []
    for i in np.flatnonzero(mask):
        state = [int(u) for u in units[i, :int(fill[i])]]
        containers.append(Container(int(capacity[i]), state, container_id=int(i)))
    return containers


def _is_monochrome(container: Container) -> bool:
    return container.top_run_length() == len(container)


class SortAgent:
    """
    Greedy agent built on the hint finder.

    Picks the first helpful move that is not pointless, then any legal
    move that does not undo the previous one.
    """

    def __init__(self):
        self._last: Optional[Move] = None

    def reset(self, seed: Optional[int] = None) -> None:
        """Forget the previous move."""
        self._last = None

    def choose(self, containers: List[Container]) -> Optional[Move]:
        """Pick a move, or None if nothing can be poured."""
        reverse = (self._last[1], self._last[0]) if self._last else None
        fallback: Optional[Move] = None

        for i, j in legal_moves(containers):
            if (i, j) == reverse:
                continue
            source, target = containers[i], containers[j]
            if target.is_empty and _is_monochrome(source):
                continue
            if is_helpful(source, target):
                return (i, j)
            if fallback is None:
                fallback = (i, j)

        return fallback

    def act(self, observation: Dict[str, Any]) -> Tuple[int, int]:
        """
        Choose a pour from the observation.

        Args:
            observation: Dict of numpy arrays from the environment.

        Returns:
            (source, target) indices. (0, 0) when stuck, which the
            environment treats as a no-op step.
        """
        move = self.choose(containers_from_obs(observation))
        if move is None:
            self._last = None
            return (0, 0)

        self._last = move
        return move
