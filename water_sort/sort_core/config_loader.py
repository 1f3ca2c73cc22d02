"""
Configuration Loader
====================

Loads and validates game_config.yaml, providing typed access to all parameters.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple, Optional

import yaml


class ConfigurationError(ValueError):
    """A level descriptor or level data is missing or degenerate."""


@dataclass(frozen=True)
class ColorConfig:
    """Configuration for a single liquid color."""
    id: int
    name: str
    rgb: Tuple[int, int, int]


@dataclass(frozen=True)
class ContainerConfig:
    """Container size settings."""
    default_capacity: int
    max_capacity: int


@dataclass(frozen=True)
class TierConfig:
    """Level layout for one difficulty tier."""
    name: str
    containers: int
    colors: int


@dataclass(frozen=True)
class LevelsConfig:
    """Procedural level catalog settings."""
    capacity: int
    stats_empty_containers: int
    timed_levels: bool
    tiers: Tuple[TierConfig, ...]

    def tier(self, tier: int) -> TierConfig:
        """Get the layout for a 1-based difficulty tier."""
        index = max(1, min(tier, len(self.tiers))) - 1
        return self.tiers[index]


@dataclass(frozen=True)
class SessionConfig:
    """Puzzle session parameters."""
    max_hints: int
    warning_seconds: float
    star_time_penalty_ratio: float


@dataclass(frozen=True)
class ObservationConfig:
    """Observation space parameters."""
    max_containers: int
    max_capacity: int


@dataclass(frozen=True)
class EnvConfig:
    """Gymnasium wrapper limits."""
    max_steps: int


@dataclass(frozen=True)
class GameConfig:
    """
    Complete game configuration loaded from YAML.

    All values are immutable to prevent accidental modification during runtime.
    """
    palette: Tuple[ColorConfig, ...]
    container: ContainerConfig
    levels: LevelsConfig
    session: SessionConfig
    observation: ObservationConfig
    env: EnvConfig

    @property
    def num_palette_colors(self) -> int:
        """Number of distinct colors in the palette."""
        return len(self.palette)

    def get_color(self, color_id: int) -> ColorConfig:
        """Get color config by ID (wraps around the palette)."""
        if color_id < 0:
            raise ValueError(f"Invalid color ID: {color_id}")
        return self.palette[color_id % len(self.palette)]


def _parse_color(color_data: dict) -> ColorConfig:
    """Parse a single palette entry from YAML."""
    rgb = color_data["rgb"]
    if len(rgb) != 3:
        raise ValueError(f"Color must have 3 values [R, G, B], got {rgb}")
    return ColorConfig(
        id=int(color_data["id"]),
        name=str(color_data["name"]),
        rgb=(int(rgb[0]), int(rgb[1]), int(rgb[2]))
    )


def _parse_tiers(tiers_data: List) -> Tuple[TierConfig, ...]:
    """Parse the per-tier level layout table from YAML."""
    return tuple(
        TierConfig(
            name=str(t["name"]),
            containers=int(t["containers"]),
            colors=int(t["colors"])
        )
        for t in tiers_data
    )


def _validate_config(config: GameConfig) -> None:
    """Validate configuration consistency."""
    if not config.palette:
        raise ValueError("Palette must contain at least one color")

    # Validate color IDs are sequential
    for i, color in enumerate(config.palette):
        if color.id != i:
            raise ValueError(f"Color ID mismatch: expected {i}, got {color.id}")

    names = [c.name for c in config.palette]
    if len(set(names)) != len(names):
        raise ValueError(f"Palette color names must be unique, got {names}")

    if config.container.default_capacity <= 0:
        raise ValueError(
            f"container.default_capacity must be positive, got {config.container.default_capacity}"
        )

    if config.container.max_capacity < config.container.default_capacity:
        raise ValueError(
            f"container.max_capacity ({config.container.max_capacity}) must be at least "
            f"default_capacity ({config.container.default_capacity})"
        )

    if len(config.levels.tiers) != 5:
        raise ValueError(f"levels.tiers must list 5 tiers, got {len(config.levels.tiers)}")

    for tier in config.levels.tiers:
        if tier.colors > tier.containers:
            raise ValueError(
                f"Tier '{tier.name}' has more colors ({tier.colors}) than containers ({tier.containers})"
            )

    if config.levels.capacity <= 0:
        raise ValueError(f"levels.capacity must be positive, got {config.levels.capacity}")

    # Observation arrays must be able to hold every catalog level
    largest = max(t.containers for t in config.levels.tiers)
    if config.observation.max_containers < largest:
        raise ValueError(
            f"observation.max_containers ({config.observation.max_containers}) is smaller "
            f"than the largest tier ({largest})"
        )
    if config.observation.max_capacity < config.container.max_capacity:
        raise ValueError(
            f"observation.max_capacity ({config.observation.max_capacity}) must match "
            f"container.max_capacity ({config.container.max_capacity})"
        )


def load_config(config_path: Optional[str] = None) -> GameConfig:
    """
    Load and validate game configuration from YAML.

    Args:
        config_path: Path to game_config.yaml. If None, uses default location.

    Returns:
        Validated GameConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config validation fails.
    """
    if config_path is None:
        config_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)),
            "game_config.yaml"
        )

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        raw = yaml.safe_load(f)

    palette = tuple(_parse_color(c) for c in raw["palette"])

    container_data = raw["container"]
    container = ContainerConfig(
        default_capacity=int(container_data["default_capacity"]),
        max_capacity=int(container_data.get("max_capacity", container_data["default_capacity"]))
    )

    levels_data = raw["levels"]
    levels = LevelsConfig(
        capacity=int(levels_data.get("capacity", container.default_capacity)),
        stats_empty_containers=int(levels_data.get("stats_empty_containers", 1)),
        timed_levels=bool(levels_data.get("timed_levels", True)),
        tiers=_parse_tiers(levels_data["tiers"])
    )

    session_data = raw.get("session", {})
    session = SessionConfig(
        max_hints=int(session_data.get("max_hints", 3)),
        warning_seconds=float(session_data.get("warning_seconds", 10.0)),
        star_time_penalty_ratio=float(session_data.get("star_time_penalty_ratio", 0.9))
    )

    obs_data = raw["observation"]
    observation = ObservationConfig(
        max_containers=int(obs_data["max_containers"]),
        max_capacity=int(obs_data.get("max_capacity", container.max_capacity))
    )

    env_data = raw.get("env", {})
    env = EnvConfig(
        max_steps=int(env_data.get("max_steps", 500))
    )

    config = GameConfig(
        palette=palette,
        container=container,
        levels=levels,
        session=session,
        observation=observation,
        env=env
    )

    _validate_config(config)
    return config


# Module-level cache for convenience
_cached_config: Optional[GameConfig] = None


def get_config() -> GameConfig:
    """Get the cached game configuration, loading if necessary."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reload_config(config_path: Optional[str] = None) -> GameConfig:
    """Reload the configuration (useful for testing)."""
    global _cached_config
    _cached_config = load_config(config_path)
    return _cached_config
