"""
Level Generator
===============

Builds initial container layouts, either from authored data or by shuffling
a generated unit pool.

Layouts are lists of per-container unit lists (color ids, bottom first).
The minimum-empty check is a heuristic only; it does not prove a layout
is solvable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Sized, Tuple, Union

import yaml

from water_sort.sort_core.color_catalog import ColorCatalog
from water_sort.sort_core.config_loader import ConfigurationError, GameConfig, get_config
from water_sort.sort_core.container import ColorSegment, UnitSpec, expand_units
from water_sort.sort_core.difficulty import (
    StarThresholds,
    calculate_level_stats,
    difficulty_tier,
    minimum_moves,
    star_thresholds,
)
from water_sort.sort_core.rng import UnitPool
from water_sort.sort_core.state_snapshot import color_totals

logger = logging.getLogger(__name__)

Layout = List[List[int]]


@dataclass(frozen=True)
class LevelDescriptor:
    """
    Immutable description of a level.

    Zero means "disabled" for max_moves and time_limit, and "derive" for the
    star thresholds.
    """
    num_containers: int
    num_colors: int
    capacity: Optional[int]
    level_number: int = 1
    predefined: Optional[Tuple[Tuple[UnitSpec, ...], ...]] = None
    min_empty: int = 0
    max_moves: int = 0
    time_limit: float = 0.0
    three_star_moves: int = 0
    two_star_moves: int = 0
    seed: Optional[int] = None
    stats_empty: Optional[int] = None

    @property
    def is_predefined(self) -> bool:
        """True if the level uses authored container data."""
        return self.predefined is not None and len(self.predefined) > 0

    @property
    def has_move_limit(self) -> bool:
        return self.max_moves > 0

    @property
    def has_time_limit(self) -> bool:
        return self.time_limit > 0

    def minimum_moves(self) -> int:
        """
        Minimum-move estimate for this topology.

        Uses the empty-container count the catalog estimated with when set,
        min_empty otherwise.
        """
        num_empty = self.min_empty if self.stats_empty is None else self.stats_empty
        return minimum_moves(self.num_containers, self.num_colors, num_empty)

    def star_thresholds(self) -> StarThresholds:
        """Explicit star thresholds where set, derived ones otherwise."""
        derived = star_thresholds(self.minimum_moves())
        return StarThresholds(
            three_star=self.three_star_moves if self.three_star_moves > 0 else derived.three_star,
            two_star=self.two_star_moves if self.two_star_moves > 0 else derived.two_star
        )

    def validate(self) -> None:
        """
        Check the descriptor is usable for level start.

        Raises:
            ConfigurationError: If any field is missing or degenerate.
        """
        if self.capacity is None or self.capacity <= 0:
            raise ConfigurationError(f"Level {self.level_number}: capacity must be positive, got {self.capacity}")

        for name in ("num_containers", "num_colors", "min_empty", "max_moves",
                     "three_star_moves", "two_star_moves"):
            value = getattr(self, name)
            if value < 0:
                raise ConfigurationError(f"Level {self.level_number}: {name} must be non-negative, got {value}")

        if self.time_limit < 0:
            raise ConfigurationError(f"Level {self.level_number}: time_limit must be non-negative, got {self.time_limit}")

        if self.stats_empty is not None and self.stats_empty < 0:
            raise ConfigurationError(f"Level {self.level_number}: stats_empty must be non-negative, got {self.stats_empty}")

        if self.is_predefined:
            if len(self.predefined) != self.num_containers:
                raise ConfigurationError(
                    f"Level {self.level_number}: predefined data lists {len(self.predefined)} containers, "
                    f"expected {self.num_containers}"
                )
            for index, segments in enumerate(self.predefined):
                try:
                    units = expand_units(segments)
                except (TypeError, ValueError) as e:
                    raise ConfigurationError(f"Level {self.level_number}: container {index}: {e}") from e
                if len(units) > self.capacity:
                    raise ConfigurationError(
                        f"Level {self.level_number}: container {index} holds {len(units)} units, "
                        f"capacity is {self.capacity}"
                    )
                if any(unit < 0 for unit in units):
                    raise ConfigurationError(f"Level {self.level_number}: container {index} has a negative color id")
            return

        if self.num_colors == 0 and self.num_containers > 0:
            raise ConfigurationError(
                f"Level {self.level_number}: {self.num_containers} containers expect a fill but num_colors is 0"
            )

        if self.num_colors > self.num_containers:
            raise ConfigurationError(
                f"Level {self.level_number}: {self.num_colors} colors do not fit in {self.num_containers} containers"
            )


def generate_predefined(descriptor: LevelDescriptor) -> Layout:
    """
    Map each authored per-container segment list into a unit list.

    Args:
        descriptor: Level with predefined data.

    Returns:
        Per-container unit lists.
    """
    if descriptor.predefined is None:
        raise ConfigurationError(f"Level {descriptor.level_number} has no predefined data")
    return [expand_units(segments) for segments in descriptor.predefined]


def generate_random(
    num_colors: int,
    capacity: int,
    num_containers: int,
    rng_seed: Optional[int] = None
) -> Layout:
    """
    Shuffle a pool of `capacity` units per color into containers.

    The first `num_colors` containers are filled sequentially from the
    shuffled pool; the rest stay empty. Slots the pool cannot fill are
    left unfilled.

    Args:
        num_colors: Distinct colors (ids 0..num_colors-1).
        capacity: Units per container and per color.
        num_containers: Total containers in the layout.
        rng_seed: Seed for the Fisher-Yates shuffle.

    Returns:
        Per-container unit lists.
    """
    if num_colors > num_containers:
        raise ValueError(f"num_colors ({num_colors}) exceeds num_containers ({num_containers})")

    pool = UnitPool(num_colors, capacity, seed=rng_seed)

    layout: Layout = [pool.draw(capacity) for _ in range(num_colors)]
    layout.extend([] for _ in range(num_containers - num_colors))
    return layout


def validate_minimum_empty(containers: Sequence[Sized], min_empty: int) -> bool:
    """True if at least `min_empty` containers are empty."""
    empty_count = sum(1 for container in containers if len(container) == 0)
    return empty_count >= min_empty


def generate(descriptor: LevelDescriptor) -> Layout:
    """
    Generate the initial layout for a descriptor.

    Uses authored data when present, the seeded shuffle otherwise.

    Raises:
        ConfigurationError: If the descriptor is degenerate.
    """
    descriptor.validate()

    if descriptor.is_predefined:
        layout = generate_predefined(descriptor)
    else:
        layout = generate_random(
            descriptor.num_colors,
            descriptor.capacity,
            descriptor.num_containers,
            descriptor.seed
        )

    if not validate_minimum_empty(layout, descriptor.min_empty):
        logger.warning(
            "Level %d has fewer than %d empty containers",
            descriptor.level_number, descriptor.min_empty
        )

    if descriptor.is_predefined:
        uneven = sorted(
            color for color, total in color_totals(layout).items()
            if total % descriptor.capacity
        )
        if uneven:
            logger.warning(
                "Level %d: colors %s do not fill whole containers of capacity %d",
                descriptor.level_number, uneven, descriptor.capacity
            )
    return layout


def descriptor_for_level(
    level_number: int,
    config: Optional[GameConfig] = None,
    seed: Optional[int] = None
) -> LevelDescriptor:
    """
    Build the catalog descriptor for a level number.

    Container and color counts come from the tier table; move limit, time
    limit, and star thresholds come from the difficulty calculator.

    Args:
        level_number: 1-based level number.
        config: Game configuration. Uses default if None.
        seed: Shuffle seed. Defaults to the level number.
    """
    if config is None:
        config = get_config()

    if level_number < 1:
        raise ConfigurationError(f"Level number must be at least 1, got {level_number}")

    levels = config.levels
    tier = levels.tier(difficulty_tier(level_number))

    stats = calculate_level_stats(
        level_number,
        tier.containers,
        tier.colors,
        num_empty=levels.stats_empty_containers,
        enable_time_limit=levels.timed_levels
    )
    thresholds = star_thresholds(stats.minimum_moves)

    # One more required empty container per two containers beyond six,
    # capped at the empties the layout actually has
    min_empty = 1 + int((tier.containers - 6) / 2)
    min_empty = min(min_empty, tier.containers - tier.colors)

    return LevelDescriptor(
        num_containers=tier.containers,
        num_colors=tier.colors,
        capacity=levels.capacity,
        level_number=level_number,
        min_empty=min_empty,
        stats_empty=levels.stats_empty_containers,
        max_moves=stats.max_moves,
        time_limit=float(stats.time_limit_seconds),
        three_star_moves=thresholds.three_star,
        two_star_moves=thresholds.two_star,
        seed=level_number if seed is None else seed
    )


def generate_level_pack(
    count: int,
    config: Optional[GameConfig] = None,
    base_seed: Optional[int] = None
) -> List[LevelDescriptor]:
    """Catalog descriptors for levels 1..count."""
    return [
        descriptor_for_level(
            n,
            config,
            seed=None if base_seed is None else base_seed + n
        )
        for n in range(1, count + 1)
    ]


def _number(data: Dict[str, Any], key: str, default: Any, kind: type = int) -> Any:
    """Read an optional numeric field, rejecting values that don't convert."""
    value = data.get(key)
    if value is None:
        return default
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Level field '{key}' must be a number, got {value!r}") from e


def _parse_segment(value: Any, catalog: ColorCatalog) -> UnitSpec:
    """Parse one authored segment: a color name/id or {color, amount}."""
    if isinstance(value, dict):
        if "color" not in value:
            raise ConfigurationError(f"Segment is missing 'color': {value}")
        amount = _number(value, "amount", 1)
        if amount < 0:
            raise ConfigurationError(f"Segment amount must be non-negative, got {amount}")
        return ColorSegment(color=catalog.resolve(value["color"]), amount=amount)
    return catalog.resolve(value)


def descriptor_from_dict(data: Dict[str, Any], catalog: ColorCatalog) -> LevelDescriptor:
    """
    Build a descriptor from authored level data.

    Args:
        data: Mapping with `containers` (list of segment lists) and optional
            `level`, `capacity`, `min_empty`, `max_moves`, `time_limit`,
            `three_star`, `two_star`.
        catalog: Resolves color names to ids.

    Raises:
        ConfigurationError: If the data is malformed.
    """
    if not isinstance(data, dict):
        raise ConfigurationError(f"Level data must be a mapping, got {type(data).__name__}")

    containers_data = data.get("containers")
    if not containers_data:
        raise ConfigurationError(f"Level data has no containers: {data}")
    if not isinstance(containers_data, list):
        raise ConfigurationError(f"Level containers must be a list, got {type(containers_data).__name__}")

    for index, container in enumerate(containers_data):
        if container is not None and not isinstance(container, list):
            raise ConfigurationError(f"Container {index} must be a list of segments, got {container!r}")

    predefined = tuple(
        tuple(_parse_segment(segment, catalog) for segment in (container or []))
        for container in containers_data
    )
    colors = {unit for segments in predefined for unit in expand_units(segments)}

    descriptor = LevelDescriptor(
        num_containers=len(predefined),
        num_colors=len(colors),
        capacity=_number(data, "capacity", None),
        level_number=_number(data, "level", 1),
        predefined=predefined,
        min_empty=_number(data, "min_empty", 0),
        max_moves=_number(data, "max_moves", 0),
        time_limit=_number(data, "time_limit", 0.0, float),
        three_star_moves=_number(data, "three_star", 0),
        two_star_moves=_number(data, "two_star", 0)
    )
    descriptor.validate()
    return descriptor


def load_level_descriptors(
    path: Union[str, Path],
    catalog: Optional[ColorCatalog] = None
) -> List[LevelDescriptor]:
    """
    Load authored levels from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ConfigurationError: If any level is malformed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Level file not found: {path}")

    if catalog is None:
        catalog = ColorCatalog()

    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Level file {path} must hold a mapping with a 'levels' list")

    levels = raw.get("levels") or []
    if not isinstance(levels, list):
        raise ConfigurationError(f"'levels' in {path} must be a list, got {type(levels).__name__}")
    return [descriptor_from_dict(level, catalog) for level in levels]
