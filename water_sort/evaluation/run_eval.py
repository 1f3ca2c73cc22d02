"""
Evaluation Harness
==================

Runs an agent against the fixed episode bank and computes win rate, moves,
and stars.

Usage:
    python -m water_sort.evaluation.run_eval
    python -m water_sort.evaluation.run_eval --agent path/to/agent.py
"""

from __future__ import annotations

import argparse
import importlib.util
import json
import logging
import os
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import numpy as np

from water_sort.evaluation.baseline_agent import SortAgent
from water_sort.sort_core.env_gym import WaterSortEnv

# (level number, layout seed)
Episode = Tuple[int, int]


@dataclass
class EvalResult:
    """Result for a single episode."""
    level: int
    seed: int
    won: bool
    move_count: int
    stars: int
    steps: int
    termination_reason: str
    elapsed_time: float
    actions: Optional[List[List[int]]] = None


@dataclass
class EvalSummary:
    """Summary of evaluation across all episodes."""
    win_rate: float
    mean_moves: float
    mean_stars: float
    total_stars: int
    total_time: float
    results: List[EvalResult]


def load_seed_bank(path: Optional[str] = None) -> List[Episode]:
    """
    Load the evaluation episode bank.

    Args:
        path: Path to seed_bank.json. Uses default if None.

    Returns:
        List of (level, seed) pairs.
    """
    if path is None:
        path = os.path.join(os.path.dirname(__file__), "seed_bank.json")

    with open(path, "r") as f:
        data = json.load(f)

    return [(int(e["level"]), int(e["seed"])) for e in data["episodes"]]


def load_agent(agent_path: Optional[str] = None) -> Callable:
    """
    Load an agent from a path.

    Args:
        agent_path: Path to agent directory or agent.py file. The baseline
            hint agent is used if None.

    Returns:
        Agent's act function.
    """
    if agent_path is None:
        return SortAgent().act

    agent_path = Path(agent_path)

    if agent_path.is_dir():
        agent_file = agent_path / "agent.py"
    else:
        agent_file = agent_path

    if not agent_file.exists():
        raise FileNotFoundError(f"Agent file not found: {agent_file}")

    spec = importlib.util.spec_from_file_location("agent_module", agent_file)
    if spec is None or spec.loader is None:
        raise ImportError(f"Failed to load agent module from {agent_file}")

    module = importlib.util.module_from_spec(spec)
    sys.modules["agent_module"] = module
    spec.loader.exec_module(module)

    # Look for SortAgent class or act function
    if hasattr(module, "SortAgent"):
        agent_instance = getattr(module, "SortAgent")()
        if hasattr(agent_instance, "act"):
            return agent_instance.act
        raise AttributeError("SortAgent class must have an 'act' method")

    elif hasattr(module, "act"):
        return getattr(module, "act")

    else:
        raise AttributeError(
            "Agent module must have either 'SortAgent' class with 'act' method "
            "or standalone 'act' function"
        )


def evaluate_single_seed(
    agent_fn: Callable,
    level: int,
    seed: int,
    record_actions: bool = False,
    verbose: bool = False
) -> EvalResult:
    """
    Evaluate agent on a single episode.

    Args:
        agent_fn: Agent's act function (obs) -> (source, target).
        level: Catalog level number.
        seed: Layout seed.
        record_actions: If True, record all actions for replay.
        verbose: If True, print progress.

    Returns:
        EvalResult for this episode.
    """
    env = WaterSortEnv()

    obs, info = env.reset(seed=seed, options={"level": level})
    reset_fn = getattr(getattr(agent_fn, "__self__", None), "reset", None)
    if callable(reset_fn):
        reset_fn()

    actions = [] if record_actions else None
    start_time = time.time()

    done = False
    while not done:
        action = agent_fn(obs)

        if record_actions:
            actions.append([int(a) for a in np.asarray(action).reshape(-1)[:2]])

        obs, _, terminated, truncated, info = env.step(action)
        done = terminated or truncated

    elapsed = time.time() - start_time

    result = EvalResult(
        level=level,
        seed=seed,
        won=info["state"] == "won",
        move_count=info["move_count"],
        stars=info["stars"],
        steps=info["steps"],
        termination_reason=info["terminated_reason"] or "truncated",
        elapsed_time=elapsed,
        actions=actions
    )

    env.close()

    if verbose:
        print(f"  Level {level} seed {seed}: {result.termination_reason}, "
              f"moves={result.move_count}, stars={result.stars}, time={elapsed:.2f}s")

    return result


def evaluate_agent(
    agent_fn: Callable,
    episodes: Optional[List[Episode]] = None,
    record_actions: bool = False,
    verbose: bool = True
) -> EvalSummary:
    """
    Evaluate agent on all episodes in the bank.

    Args:
        agent_fn: Agent's act function (obs) -> (source, target).
        episodes: (level, seed) pairs. Uses seed_bank.json if None.
        record_actions: If True, record actions for replay.
        verbose: If True, print progress.

    Returns:
        EvalSummary with aggregate statistics.
    """
    if episodes is None:
        episodes = load_seed_bank()

    if verbose:
        print(f"Evaluating on {len(episodes)} episodes...")

    results: List[EvalResult] = []
    total_start = time.time()

    for i, (level, seed) in enumerate(episodes):
        if verbose:
            print(f"[{i+1}/{len(episodes)}] Running level {level}, seed {seed}...")

        result = evaluate_single_seed(
            agent_fn,
            level,
            seed,
            record_actions=record_actions,
            verbose=verbose
        )
        results.append(result)

    total_time = time.time() - total_start

    wins = [r for r in results if r.won]
    stars = [r.stars for r in results]

    summary = EvalSummary(
        win_rate=float(np.mean([r.won for r in results])) if results else 0.0,
        mean_moves=float(np.mean([r.move_count for r in wins])) if wins else 0.0,
        mean_stars=float(np.mean(stars)) if stars else 0.0,
        total_stars=int(sum(stars)),
        total_time=total_time,
        results=results
    )

    if verbose:
        print()
        print("=" * 50)
        print("EVALUATION SUMMARY")
        print("=" * 50)
        print(f"Episodes evaluated: {len(episodes)}")
        print(f"Win rate:           {summary.win_rate:.2%}")
        print(f"Mean moves (wins):  {summary.mean_moves:.2f}")
        print(f"Mean stars:         {summary.mean_stars:.2f}")
        print(f"Total stars:        {summary.total_stars}")
        print(f"Total time:         {total_time:.2f}s")
        print("=" * 50)

    return summary


def save_results(
    summary: EvalSummary,
    agent_name: str,
    output_path: str
) -> None:
    """Save evaluation results to JSON."""
    data = {
        "agent": agent_name,
        "timestamp": time.strftime("%Y-%m-%d %H:%M:%S"),
        "win_rate": summary.win_rate,
        "mean_moves": summary.mean_moves,
        "mean_stars": summary.mean_stars,
        "total_stars": summary.total_stars,
        "total_time": summary.total_time,
        "results": [
            {
                "level": r.level,
                "seed": r.seed,
                "won": r.won,
                "move_count": r.move_count,
                "stars": r.stars,
                "steps": r.steps,
                "termination_reason": r.termination_reason,
                "elapsed_time": r.elapsed_time
            }
            for r in summary.results
        ]
    }

    with open(output_path, "w") as f:
        json.dump(data, f, indent=2)

    print(f"Results saved to {output_path}")


def main():
    parser = argparse.ArgumentParser(description="Evaluate a water sort agent")
    parser.add_argument(
        "--agent",
        type=str,
        default=None,
        help="Path to agent directory or agent.py file (baseline hint agent if omitted)"
    )
    parser.add_argument(
        "--seeds",
        type=str,
        default=None,
        help="Path to episode bank JSON (uses default if not specified)"
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Path to save results JSON"
    )
    parser.add_argument(
        "--record",
        action="store_true",
        help="Record actions for replay"
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Reduce output verbosity"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        help="Logging level for the engine (DEBUG, INFO, WARNING)"
    )

    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s"
    )

    print(f"Loading agent from {args.agent or 'baseline'}...")
    try:
        agent_fn = load_agent(args.agent)
    except (FileNotFoundError, ImportError, AttributeError) as e:
        print(f"Error loading agent: {e}")
        return 1

    episodes = None
    if args.seeds:
        episodes = load_seed_bank(args.seeds)

    summary = evaluate_agent(
        agent_fn,
        episodes=episodes,
        record_actions=args.record,
        verbose=not args.quiet
    )

    if args.output:
        agent_name = Path(args.agent).name if args.agent else "baseline"
        save_results(summary, agent_name, args.output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
