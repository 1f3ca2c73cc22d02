"""
Hints
=====

Suggests a legal pour, preferring ones that keep colors together.
"""

from __future__ import annotations

from typing import Iterator, Optional, Sequence, Tuple

from water_sort.sort_core.container import Container

Move = Tuple[int, int]


def legal_moves(containers: Sequence[Container]) -> Iterator[Move]:
    """Yield every (source, target) index pair that a pour would accept."""
    for i, source in enumerate(containers):
        if source.is_empty:
            continue
        for j, target in enumerate(containers):
            if i != j and target.can_receive_from(source):
                yield (i, j)


def is_helpful(source: Container, target: Container) -> bool:
    """True if the pour lands on an empty container or the same top color."""
    if source.is_complete:
        return False
    return target.is_empty or target.top_color == source.top_color


def find_valid_move(containers: Sequence[Container]) -> Optional[Move]:
    """
    Find a move to suggest.

    Returns the first helpful legal move, else the first legal move, else
    None when nothing can be poured.
    """
    fallback: Optional[Move] = None
    for i, j in legal_moves(containers):
        if is_helpful(containers[i], containers[j]):
            return (i, j)
        if fallback is None:
            fallback = (i, j)
    return fallback
