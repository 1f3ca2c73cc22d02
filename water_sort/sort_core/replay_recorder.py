"""
Replay Recorder
===============

A simple wrapper to record Gymnasium environment episodes for replay.

Usage:
    from water_sort.sort_core import WaterSortEnv, ReplayRecorder

    env = WaterSortEnv()
    recorder = ReplayRecorder(env)

    obs, info = recorder.reset(seed=42, options={"level": 3})

    done = False
    while not done:
        action = your_agent(obs)
        obs, reward, terminated, truncated, info = recorder.step(action)
        done = terminated or truncated

    recorder.save("my_replay.json")
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np
import gymnasium as gym

from water_sort.sort_core.config_loader import GameConfig, load_config

logger = logging.getLogger(__name__)


def generate_replay_filename(
    agent_name: str = "replay",
    seed: Optional[int] = None,
    directory: Optional[Union[str, Path]] = None
) -> Path:
    """
    Generate a timestamped replay filename.

    Format: {agent_name}_{YYYYMMDD_HHMMSS}_s{seed}.json

    Args:
        agent_name: Name of the agent.
        seed: Random seed (optional, included if provided).
        directory: Directory for the file. Defaults to current directory.

    Returns:
        Path object for the replay file.
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    if seed is not None:
        filename = f"{agent_name}_{timestamp}_s{seed}.json"
    else:
        filename = f"{agent_name}_{timestamp}.json"

    if directory:
        return Path(directory) / filename
    return Path(filename)


def compute_config_hash(config: Optional[GameConfig] = None) -> str:
    """Hash the config parameters that affect layouts and scoring."""
    if config is None:
        config = load_config()
    hash_data = {
        "palette": [c.id for c in config.palette],
        "levels": {
            "capacity": config.levels.capacity,
            "stats_empty_containers": config.levels.stats_empty_containers,
            "timed_levels": config.levels.timed_levels,
            "tiers": [[t.containers, t.colors] for t in config.levels.tiers],
        },
        "session": {
            "max_hints": config.session.max_hints,
            "star_time_penalty_ratio": config.session.star_time_penalty_ratio,
        },
    }
    return hashlib.md5(json.dumps(hash_data, sort_keys=True).encode()).hexdigest()[:8]


def _action_pair(action: Any) -> List[int]:
    return [int(a) for a in np.asarray(action).reshape(-1)[:2]]


class ReplayRecorder:
    """
    Wrapper that records environment interactions for replay.

    Records every (source, target) action with the move count after it, so
    a replay can be re-run against the same level and seed.

    Attributes:
        env: The wrapped Gymnasium environment.
        recording: Whether currently recording.
    """

    def __init__(
        self,
        env: gym.Env,
        agent_name: str = "unknown",
        auto_save_path: Optional[str] = None
    ):
        """
        Initialize the replay recorder.

        Args:
            env: The Gymnasium environment to wrap.
            agent_name: Name of the agent (stored in replay metadata).
            auto_save_path: If provided, automatically save replay on episode end.
        """
        self.env = env
        self.agent_name = agent_name
        self.auto_save_path = auto_save_path

        self._recording = False
        self._seed: Optional[int] = None
        self._level: Optional[int] = None
        self._actions: List[List[int]] = []
        self._move_counts: List[int] = []
        self._rewards: List[float] = []
        self._termination_reason: str = ""
        self._stars: int = 0
        self._config_hash = compute_config_hash(getattr(env, "config", None))

    @property
    def recording(self) -> bool:
        """Whether currently recording."""
        return self._recording

    @property
    def observation_space(self):
        """Forward observation space from wrapped env."""
        return self.env.observation_space

    @property
    def action_space(self):
        """Forward action space from wrapped env."""
        return self.env.action_space

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict] = None
    ) -> Tuple[Any, Dict]:
        """
        Reset the environment and start recording.

        Args:
            seed: Random seed for the episode.
            options: Additional reset options.

        Returns:
            Initial observation and info dict.
        """
        self._actions = []
        self._move_counts = []
        self._rewards = []
        self._termination_reason = ""
        self._stars = 0
        self._seed = seed
        self._recording = True

        obs, info = self.env.reset(seed=seed, options=options)
        self._level = info.get("level")

        return obs, info

    def step(self, action: Any) -> Tuple[Any, float, bool, bool, Dict]:
        """
        Take a step and record it.

        Args:
            action: The (source, target) action to take.

        Returns:
            Tuple of (observation, reward, terminated, truncated, info).
        """
        pair = _action_pair(action)

        obs, reward, terminated, truncated, info = self.env.step(action)

        if self._recording:
            self._actions.append(pair)
            self._move_counts.append(int(info.get("move_count", 0)))
            self._rewards.append(float(reward))

            if terminated or truncated:
                self._termination_reason = info.get("terminated_reason") or "truncated"
                self._stars = int(info.get("stars", 0))

        if (terminated or truncated) and self.auto_save_path:
            self.save(self.auto_save_path)

        return obs, reward, terminated, truncated, info

    def get_replay_data(self) -> Dict[str, Any]:
        """
        Get the current replay data as a dictionary.

        Returns:
            Dictionary containing all replay data.
        """
        return {
            "seed": self._seed,
            "level": self._level,
            "agent": self.agent_name,
            "config_hash": self._config_hash,
            "actions": [list(a) for a in self._actions],
            "move_counts": self._move_counts.copy(),
            "rewards": self._rewards.copy(),
            "final_moves": self._move_counts[-1] if self._move_counts else 0,
            "total_steps": len(self._actions),
            "total_reward": sum(self._rewards),
            "stars": self._stars,
            "termination_reason": self._termination_reason,
        }

    def save(
        self,
        path: Optional[Union[str, Path]] = None,
        overwrite: bool = True,
        directory: Optional[Union[str, Path]] = None
    ) -> Path:
        """
        Save the replay to a JSON file.

        Args:
            path: Path to save the replay. If None, auto-generates a timestamped name.
            overwrite: If True, overwrite existing file.
            directory: Directory for auto-generated filename (only used if path is None).

        Returns:
            Path where the replay was saved.

        Raises:
            FileExistsError: If the file exists and overwrite is False.
        """
        if path is None:
            path = generate_replay_filename(
                agent_name=self.agent_name,
                seed=self._seed,
                directory=directory
            )
        else:
            path = Path(path)

        if path.exists() and not overwrite:
            raise FileExistsError(f"Replay file already exists: {path}")

        path.parent.mkdir(parents=True, exist_ok=True)

        replay_data = self.get_replay_data()

        with open(path, "w") as f:
            json.dump(replay_data, f, indent=2)

        logger.info(
            "Replay saved: %s (level=%s, seed=%s, steps=%d, moves=%d)",
            path, self._level, self._seed, len(self._actions), replay_data["final_moves"]
        )

        return path

    def close(self) -> None:
        """Close the wrapped environment."""
        self.env.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def record_episode(
    env: gym.Env,
    agent_fn,
    seed: Optional[int] = None,
    save_path: Optional[str] = None,
    agent_name: str = "unknown",
    options: Optional[Dict] = None
) -> Dict[str, Any]:
    """
    Convenience function to record a single episode.

    Args:
        env: The Gymnasium environment.
        agent_fn: Function that takes an observation and returns an action.
        seed: Random seed for the episode.
        save_path: If provided, save replay to this path.
        agent_name: Name of the agent.
        options: Reset options, e.g. {"level": 4}.

    Returns:
        Replay data dictionary.
    """
    recorder = ReplayRecorder(env, agent_name=agent_name)

    obs, info = recorder.reset(seed=seed, options=options)

    done = False
    while not done:
        action = agent_fn(obs)
        obs, reward, terminated, truncated, info = recorder.step(action)
        done = terminated or truncated

    replay_data = recorder.get_replay_data()

    if save_path:
        recorder.save(save_path)

    return replay_data
