"""
Sort Core - The heart of the puzzle engine.

This module provides the puzzle session, level generation, difficulty
calculation, undo history, and the Gymnasium environment wrapper.

Main exports:
- PuzzleSession: One player's run through a level
- WaterSortEnv: Gymnasium environment for agents
- LevelDescriptor: Level definition (authored or procedural)
- GameConfig: Configuration loaded from game_config.yaml
"""

from water_sort.sort_core.config_loader import (
    ConfigurationError,
    GameConfig,
    get_config,
    load_config,
)
from water_sort.sort_core.color_catalog import ColorCatalog, LiquidColor
from water_sort.sort_core.container import ColorSegment, Container
from water_sort.sort_core.difficulty import (
    DifficultyResult,
    StarThresholds,
    calculate_level_stats,
    minimum_moves,
)
from water_sort.sort_core.level_generator import (
    LevelDescriptor,
    descriptor_for_level,
    generate,
    generate_level_pack,
    load_level_descriptors,
)
from water_sort.sort_core.context import InMemoryProgress, SessionContext
from water_sort.sort_core.game import ActivationResult, GameState, PuzzleSession, SessionPhase
from water_sort.sort_core.env_gym import WaterSortEnv
from water_sort.sort_core.replay_recorder import (
    ReplayRecorder,
    record_episode,
    generate_replay_filename,
)

__all__ = [
    "ConfigurationError",
    "GameConfig",
    "get_config",
    "load_config",
    "ColorCatalog",
    "LiquidColor",
    "ColorSegment",
    "Container",
    "DifficultyResult",
    "StarThresholds",
    "calculate_level_stats",
    "minimum_moves",
    "LevelDescriptor",
    "descriptor_for_level",
    "generate",
    "generate_level_pack",
    "load_level_descriptors",
    "InMemoryProgress",
    "SessionContext",
    "ActivationResult",
    "GameState",
    "PuzzleSession",
    "SessionPhase",
    "WaterSortEnv",
    "ReplayRecorder",
    "record_episode",
    "generate_replay_filename",
]
