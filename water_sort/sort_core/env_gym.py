"""
Gymnasium Environment Wrapper
=============================

Provides a standard Gymnasium interface to the water sort puzzle.
Reward is always 0.0 - agents compute their own from info.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import numpy as np

import gymnasium as gym
from gymnasium import spaces

from water_sort.sort_core.config_loader import GameConfig, load_config
from water_sort.sort_core.context import SessionContext
from water_sort.sort_core.game import PuzzleSession
from water_sort.sort_core.level_generator import LevelDescriptor, descriptor_for_level
from water_sort.sort_core.state_snapshot import BoardSnapshot, EMPTY_SLOT

logger = logging.getLogger(__name__)


class WaterSortEnv(gym.Env):
    """
    Water sort puzzle as a Gymnasium environment.

    Action Space:
        MultiDiscrete([max_containers, max_containers])
        (source, target) container indices. Out-of-range or illegal pours
        count as a step but do not change the board.

    Observation Space:
        Dict of padded unit arrays, fill levels, masks, and counters.

    Reward:
        Always 0.0. Agents must compute their own reward from the info dict.

    Info:
        Contains move_count, moves_remaining, stars, terminated_reason, etc.

    Episodes terminate on win or loss and are truncated after
    env.max_steps actions.
    """

    metadata = {
        "render_modes": ["ansi"],
    }

    def __init__(
        self,
        config_path: Optional[str] = None,
        level: int = 1,
        descriptor: Optional[LevelDescriptor] = None,
        render_mode: Optional[str] = None,
        context: Optional[SessionContext] = None,
        debug: bool = False,
    ):
        """
        Initialize water sort environment.

        Args:
            config_path: Path to game_config.yaml. Uses default if None.
            level: Catalog level to play when no descriptor is given.
            descriptor: Fixed level to play instead of the catalog.
            render_mode: "ansi" for a text board, None for headless.
            context: Session collaborators. Headless defaults if None.
            debug: If True, logs every step at INFO level.
        """
        super().__init__()

        self._config = load_config(config_path)
        self.render_mode = render_mode
        self._level = level
        self._descriptor = descriptor
        self._debug = debug
        self._steps = 0

        self._game = PuzzleSession(config=self._config, context=context)

        max_containers = self._config.observation.max_containers
        self.action_space = spaces.MultiDiscrete([max_containers, max_containers])
        self.observation_space = self._build_observation_space()

        if self._debug:
            logger.info(
                "WaterSortEnv initialized: max_containers=%d, max_capacity=%d, max_steps=%d",
                max_containers, self._config.observation.max_capacity, self._config.env.max_steps
            )

    def _build_observation_space(self) -> spaces.Dict:
        """Build the observation space definition."""
        max_cont = self._config.observation.max_containers
        max_cap = self._config.observation.max_capacity
        max_color = np.iinfo(np.int16).max

        return spaces.Dict({
            "units": spaces.Box(low=EMPTY_SLOT, high=max_color, shape=(max_cont, max_cap), dtype=np.int16),
            "fill": spaces.Box(low=0, high=max_cap, shape=(max_cont,), dtype=np.int16),
            "capacity": spaces.Box(low=0, high=max_cap, shape=(max_cont,), dtype=np.int16),
            "container_mask": spaces.MultiBinary(max_cont),
            "complete": spaces.MultiBinary(max_cont),
            "move_count": spaces.Box(low=0, high=np.iinfo(np.int32).max, shape=(), dtype=np.int32),
            "moves_remaining": spaces.Box(low=0, high=np.iinfo(np.int32).max, shape=(), dtype=np.int32),
            "time_remaining": spaces.Box(low=0, high=np.inf, shape=(), dtype=np.float32),
        })

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None
    ) -> Tuple[Dict[str, np.ndarray], Dict[str, Any]]:
        """
        Reset the environment.

        Args:
            seed: Layout seed. Defaults to the level number for catalog levels.
            options: {"level": n} selects a catalog level,
                {"descriptor": LevelDescriptor} a fixed one.

        Returns:
            (observation, info) tuple.
        """
        super().reset(seed=seed)
        options = options or {}

        if "descriptor" in options:
            self._descriptor = options["descriptor"]
        elif "level" in options:
            self._level = int(options["level"])
            self._descriptor = None

        descriptor = self._descriptor
        if descriptor is None:
            descriptor = descriptor_for_level(self._level, self._config, seed=seed)

        self._game.initialize_level(descriptor)
        self._steps = 0

        obs = self._snapshot_to_obs(self._game.snapshot())
        info = self._game.get_info()
        info["poured"] = 0

        return obs, info

    def step(
        self,
        action: Union[Sequence[int], np.ndarray]
    ) -> Tuple[Dict[str, np.ndarray], float, bool, bool, Dict[str, Any]]:
        """
        Execute one pour attempt.

        Args:
            action: (source, target) container indices.

        Returns:
            (observation, reward, terminated, truncated, info) tuple.
            Reward is always 0.0.
        """
        source, target = (int(a) for a in np.asarray(action).reshape(-1)[:2])
        self._steps += 1

        poured = 0
        event = "invalid_move"
        num_containers = len(self._game.containers)
        if 0 <= source < num_containers and 0 <= target < num_containers and source != target:
            # Every step ends idle, so the source activation always selects
            first = self._game.activate(source)
            if first.event == "selected":
                second = self._game.activate(target)
                event = second.event
                poured = second.poured
                self._game.animation_complete()
            else:
                event = first.event
        else:
            self._game.tick()

        obs = self._snapshot_to_obs(self._game.snapshot())

        # Reward is always 0.0 - agents compute their own
        reward = 0.0

        terminated = self._game.is_over
        truncated = not terminated and self._steps >= self._config.env.max_steps

        info = self._game.get_info()
        info["poured"] = poured
        info["event"] = event
        info["steps"] = self._steps

        if self._debug:
            logger.info(
                "Step %d: action=(%d, %d) event=%s moves=%d",
                self._steps, source, target, event, self._game.move_count
            )
            if terminated:
                logger.info("TERMINATED: %s", info.get("terminated_reason", "unknown"))

        return obs, reward, terminated, truncated, info

    def _snapshot_to_obs(self, snapshot: BoardSnapshot) -> Dict[str, np.ndarray]:
        """Convert snapshot to observation dict."""
        return snapshot.to_obs_dict()

    def render(self) -> Optional[str]:
        """
        Render the current board.

        Returns:
            Text board if render_mode is "ansi", None otherwise.
        """
        if self.render_mode != "ansi":
            return None

        lines = []
        for container in self._game.containers:
            cells = " ".join(f"{u:2d}" for u in container.units)
            pad = " ".join(" ." for _ in range(container.free_space))
            lines.append(f"{container.id:2d} | {cells} {pad}".rstrip())
        return "\n".join(lines)

    def close(self) -> None:
        """Nothing to release."""

    @property
    def game(self) -> PuzzleSession:
        """Access to underlying session (for debugging/tools)."""
        return self._game

    @property
    def config(self) -> GameConfig:
        """Game configuration."""
        return self._config
