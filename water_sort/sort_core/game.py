"""
Puzzle Session
==============

Main session orchestrator combining containers, undo history, scoring, and
rules.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from water_sort.sort_core.config_loader import GameConfig, get_config
from water_sort.sort_core.container import Container, ContainerState
from water_sort.sort_core.context import SessionContext
from water_sort.sort_core.difficulty import DifficultyResult, StarThresholds, difficulty_tier
from water_sort.sort_core.hints import Move, find_valid_move
from water_sort.sort_core.level_generator import LevelDescriptor, descriptor_for_level, generate
from water_sort.sort_core.rules import TerminationResult, TerminationRules, all_complete
from water_sort.sort_core.scoring import LevelRecord, StarEvent, StarScorer
from water_sort.sort_core.state_snapshot import BoardSnapshot, SnapshotBuilder, SnapshotHistory

logger = logging.getLogger(__name__)


class SessionPhase(Enum):
    """Input state machine phases."""
    IDLE = "idle"
    SELECTED = "selected"
    ANIMATING = "animating"
    WON = "won"
    LOST = "lost"


class GameState(Enum):
    """Coarse session status."""
    PLAYING = "playing"
    PAUSED = "paused"
    WON = "won"
    LOST = "lost"


@dataclass
class ActivationResult:
    """
    Outcome of one container activation.

    event is one of: selected, deselected, poured, invalid_move, ignored.
    """
    event: str
    phase: SessionPhase
    source: Optional[int] = None
    target: Optional[int] = None
    poured: int = 0
    termination: TerminationResult = field(default_factory=TerminationResult.none)

    @property
    def moved(self) -> bool:
        return self.poured > 0


class PuzzleSession:
    """
    One player's run through a level.

    Orchestrates:
    - Container selection and pours
    - Undo history (snapshot arena)
    - Move and time limits with a one-shot loss latch
    - Star award and progress recording on a win
    - Effect/audio notifications through the injected context

    All mutations finish before a call returns. The ANIMATING phase only
    suspends input until the presentation layer reports the pour animation
    finished.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        context: Optional[SessionContext] = None
    ):
        """
        Initialize session.

        Args:
            config: Game configuration. Uses default if None.
            context: Collaborators (effects, audio, progress, clock).
                Headless defaults if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._context = context if context is not None else SessionContext()

        self._scorer = StarScorer(config)
        self._history = SnapshotHistory()
        self._snapshot_builder = SnapshotBuilder(config)
        self._rules = TerminationRules()

        # Level state
        self._descriptor: Optional[LevelDescriptor] = None
        self._containers: List[Container] = []
        self._thresholds = StarThresholds(0, 0)
        self._move_count: int = 0
        self._phase = SessionPhase.IDLE
        self._selected: Optional[int] = None
        self._animation_token: int = 0
        self._hints_remaining: int = config.session.max_hints
        self._stars: Optional[StarEvent] = None
        self._record: Optional[LevelRecord] = None

        # Clock state
        self._start_time: float = 0.0
        self._paused: bool = False
        self._pause_started: float = 0.0
        self._paused_total: float = 0.0
        self._end_time: Optional[float] = None
        self._last_warning_second: Optional[int] = None

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    @property
    def config(self) -> GameConfig:
        """Game configuration."""
        return self._config

    @property
    def context(self) -> SessionContext:
        return self._context

    @property
    def descriptor(self) -> Optional[LevelDescriptor]:
        """Descriptor of the loaded level."""
        return self._descriptor

    @property
    def difficulty(self) -> Optional[DifficultyResult]:
        """Difficulty breakdown of the loaded level."""
        d = self._descriptor
        if d is None:
            return None
        return DifficultyResult(
            level_number=d.level_number,
            tier=difficulty_tier(d.level_number),
            minimum_moves=d.minimum_moves(),
            max_moves=d.max_moves,
            time_limit_seconds=int(d.time_limit),
            num_containers=d.num_containers,
            num_colors=d.num_colors
        )

    @property
    def is_loaded(self) -> bool:
        return self._descriptor is not None

    @property
    def containers(self) -> Tuple[Container, ...]:
        return tuple(self._containers)

    @property
    def move_count(self) -> int:
        return self._move_count

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def state(self) -> GameState:
        if self._phase == SessionPhase.WON:
            return GameState.WON
        if self._phase == SessionPhase.LOST:
            return GameState.LOST
        if self._paused:
            return GameState.PAUSED
        return GameState.PLAYING

    @property
    def is_over(self) -> bool:
        """True if the level has been won or lost."""
        return self._phase in (SessionPhase.WON, SessionPhase.LOST)

    @property
    def selected(self) -> Optional[int]:
        """Index of the selected container, if any."""
        return self._selected

    @property
    def elapsed(self) -> float:
        """Seconds played, excluding paused time."""
        if not self.is_loaded:
            return 0.0
        if self._end_time is not None:
            now = self._end_time
        elif self._paused:
            now = self._pause_started
        else:
            now = self._context.clock()
        return max(0.0, now - self._start_time - self._paused_total)

    @property
    def time_remaining(self) -> float:
        """Seconds left on a timed level, 0 otherwise."""
        return self._rules.time_remaining(self.elapsed)

    @property
    def moves_remaining(self) -> int:
        """Moves left on a move-limited level, 0 otherwise."""
        return self._rules.moves_remaining(self._move_count)

    @property
    def has_time_limit(self) -> bool:
        return self._rules.time_limit_enabled

    @property
    def has_move_limit(self) -> bool:
        return self._rules.move_limit_enabled

    @property
    def history_depth(self) -> int:
        """Snapshots on the undo stack, including the initial layout."""
        return self._history.depth

    @property
    def thresholds(self) -> StarThresholds:
        return self._thresholds

    @property
    def stars(self) -> Optional[StarEvent]:
        """Star award once the level is won."""
        return self._stars

    @property
    def record(self) -> Optional[LevelRecord]:
        """Updated progress record once the level is won."""
        return self._record

    @property
    def hints_remaining(self) -> int:
        return self._hints_remaining

    @property
    def termination_reason(self) -> str:
        """Reason for level end, or empty string."""
        if self._phase == SessionPhase.WON:
            return "solved"
        if self._phase == SessionPhase.LOST:
            return self._rules.loss_reason
        return ""

    @property
    def level_index(self) -> int:
        """Zero-based index used for progress records."""
        if self._descriptor is None:
            return 0
        return self._descriptor.level_number - 1

    def board(self) -> Tuple[ContainerState, ...]:
        """Per-container unit tuples, bottom first."""
        return tuple(c.state for c in self._containers)

    def snapshot(self) -> BoardSnapshot:
        """Fixed-size array view of the board."""
        return self._snapshot_builder.build(
            self._containers,
            move_count=self._move_count,
            moves_remaining=self.moves_remaining,
            time_remaining=self.time_remaining
        )

    def is_solved(self) -> bool:
        """True if every non-empty container is complete."""
        return all_complete(self._containers)

    # ------------------------------------------------------------------
    # Level lifecycle
    # ------------------------------------------------------------------

    def initialize_level(self, descriptor: LevelDescriptor) -> Tuple[ContainerState, ...]:
        """
        Reset the session to a descriptor's generated layout.

        Args:
            descriptor: Level to load.

        Returns:
            Initial board.

        Raises:
            ConfigurationError: If the descriptor is malformed. The previous
                session state is left untouched.
        """
        layout = generate(descriptor)
        containers = [
            Container(descriptor.capacity, units, container_id=i)
            for i, units in enumerate(layout)
        ]

        self._descriptor = descriptor
        self._containers = containers
        self._thresholds = descriptor.star_thresholds()
        self._rules = TerminationRules(descriptor.max_moves, descriptor.time_limit)
        self._move_count = 0
        self._phase = SessionPhase.IDLE
        self._selected = None
        self._animation_token += 1
        self._hints_remaining = self._config.session.max_hints
        self._stars = None
        self._record = None
        self._history.push_initial(self._containers)
        self._restart_clock()

        logger.info(
            "Level %d started: %d containers, %d colors, capacity %d, max_moves=%d, time_limit=%.0f",
            descriptor.level_number, descriptor.num_containers, descriptor.num_colors,
            descriptor.capacity, descriptor.max_moves, descriptor.time_limit
        )
        return self.board()

    def load_next_level(self) -> Optional[Tuple[ContainerState, ...]]:
        """
        Advance to the catalog level after the loaded one.

        Returns:
            The new initial board, or None if the next level is still locked.
            A locked advance leaves the session untouched.
        """
        self._require_level()
        next_number = self._descriptor.level_number + 1

        if not self._context.progress.is_unlocked(next_number - 1):
            logger.info("Level %d is locked; finish level %d first", next_number, next_number - 1)
            return None

        return self.initialize_level(descriptor_for_level(next_number, self._config))

    def _restart_clock(self) -> None:
        self._start_time = self._context.clock()
        self._paused = False
        self._pause_started = 0.0
        self._paused_total = 0.0
        self._end_time = None
        self._last_warning_second = None

    def _require_level(self) -> None:
        if self._descriptor is None:
            raise RuntimeError("No level loaded; call initialize_level() first")

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def activate(self, container_id: int) -> ActivationResult:
        """
        Handle a "container activated" input event.

        Args:
            container_id: Index of the activated container.

        Returns:
            ActivationResult describing what happened.

        Raises:
            IndexError: If the container id is out of range.
        """
        self._require_level()
        if not 0 <= container_id < len(self._containers):
            raise IndexError(
                f"Container {container_id} out of range [0, {len(self._containers)})"
            )

        termination = self._check_limits()
        if termination.is_over or self._paused or self._phase == SessionPhase.ANIMATING:
            return ActivationResult("ignored", self._phase, termination=termination)

        if self._selected is None:
            return self._select(container_id)

        if container_id == self._selected:
            return self._deselect()

        return self._try_pour(self._selected, container_id)

    def _select(self, container_id: int) -> ActivationResult:
        if self._containers[container_id].is_empty:
            return ActivationResult("ignored", self._phase, source=container_id)

        self._selected = container_id
        self._phase = SessionPhase.SELECTED
        self._context.effects.on_select(container_id)
        self._context.audio.play("select")
        return ActivationResult("selected", self._phase, source=container_id)

    def _deselect(self) -> ActivationResult:
        container_id = self._selected
        self._clear_selection()
        return ActivationResult("deselected", self._phase, source=container_id)

    def _clear_selection(self) -> None:
        if self._selected is not None:
            self._context.effects.on_deselect(self._selected)
        self._selected = None
        if self._phase == SessionPhase.SELECTED:
            self._phase = SessionPhase.IDLE

    def _try_pour(self, source_id: int, target_id: int) -> ActivationResult:
        source = self._containers[source_id]
        target = self._containers[target_id]
        color = source.top_color

        poured = source.pour_to(target)
        if poured == 0:
            self._clear_selection()
            self._context.effects.on_invalid_move(source_id, target_id)
            self._context.audio.play("error")
            return ActivationResult("invalid_move", self._phase, source=source_id, target=target_id)

        self._move_count += poured
        self._history.push(self._containers, self._move_count, changed=(source_id, target_id))

        # Selection is dropped without a deselect effect; the pour replaces it
        self._selected = None
        self._phase = SessionPhase.ANIMATING
        self._animation_token += 1
        token = self._animation_token
        self._context.audio.play("pour")

        termination = self._rules.check_after_move(self._move_count, self.is_solved())
        if termination.won:
            self._enter_won()
        elif termination.lost:
            self._enter_lost(termination)

        self._context.effects.on_pour(
            source_id, target_id, color,
            lambda: self._finish_animation(token)
        )

        return ActivationResult(
            "poured", self._phase,
            source=source_id, target=target_id,
            poured=poured, termination=termination
        )

    def _finish_animation(self, token: int) -> None:
        if token == self._animation_token:
            self.animation_complete()

    def animation_complete(self) -> None:
        """Presentation layer signal: the pour animation finished."""
        if self._phase == SessionPhase.ANIMATING:
            self._phase = SessionPhase.IDLE

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def undo(self) -> bool:
        """
        Revert the last committed move.

        Ignored while animating, paused, after the level ended, or when only
        the initial snapshot remains.

        Returns:
            True if a move was undone.
        """
        if not self.is_loaded or self.is_over or self._paused:
            return False
        if self._phase == SessionPhase.ANIMATING:
            return False

        snapshot = self._history.pop()
        if snapshot is None:
            return False

        self._history.restore(snapshot, self._containers)
        self._move_count = snapshot.move_count
        self._clear_selection()
        self._phase = SessionPhase.IDLE
        self._context.audio.play("undo")
        return True

    def reset(self) -> None:
        """Restore the initial layout and return to playing."""
        if not self.is_loaded:
            return

        snapshot = self._history.rewind()
        self._history.restore(snapshot, self._containers)
        self._move_count = snapshot.move_count
        self._clear_selection()
        self._phase = SessionPhase.IDLE
        self._animation_token += 1
        self._rules.reset()
        self._stars = None
        self._record = None
        self._restart_clock()
        self._context.audio.play("reset")

    # ------------------------------------------------------------------
    # Time, pause, hints
    # ------------------------------------------------------------------

    def tick(self) -> TerminationResult:
        """
        Poll the clock once (call once per external frame/tick).

        Emits the time warning cue and enters LOST when a limit is hit.
        """
        if not self.is_loaded:
            return TerminationResult.none()
        if not self.is_over and not self._paused:
            self._emit_time_warning()
        return self._check_limits()

    def _emit_time_warning(self) -> None:
        if not self._rules.time_limit_enabled:
            return
        remaining = self.time_remaining
        if 0.0 < remaining <= self._config.session.warning_seconds:
            second = math.floor(remaining)
            if second != self._last_warning_second:
                self._last_warning_second = second
                self._context.audio.play("warning")

    def _check_limits(self) -> TerminationResult:
        """Evaluate move and time limits; idempotent once the level ended."""
        if self._phase == SessionPhase.WON:
            return TerminationResult.win()
        if self._phase == SessionPhase.LOST:
            return TerminationResult.loss(self._rules.loss_reason)

        result = self._rules.check_move_limit(self._move_count, self.is_solved())
        if not result.lost and not self._paused:
            result = self._rules.check_time_limit(self.elapsed)
        if result.lost:
            self._enter_lost(result)
        return result

    def pause(self) -> bool:
        """Freeze the clock and block input. Returns True if paused now."""
        if not self.is_loaded or self.is_over or self._paused:
            return False
        self._paused = True
        self._pause_started = self._context.clock()
        return True

    def resume(self) -> bool:
        """Resume after pause. Returns True if resumed now."""
        if not self._paused:
            return False
        self._paused_total += self._context.clock() - self._pause_started
        self._paused = False
        return True

    def hint(self) -> Optional[Move]:
        """
        Suggest a move, spending one hint.

        Returns:
            (source, target) indices, or None if no hints are left, the
            level is not in play, or no pour is possible.
        """
        self._require_level()
        if self.is_over or self._paused or self._hints_remaining <= 0:
            self._context.audio.play("error")
            return None

        move = find_valid_move(self._containers)
        if move is None:
            self._context.audio.play("error")
            return None

        self._hints_remaining -= 1
        self._context.audio.play("hint")
        return move

    # ------------------------------------------------------------------
    # Outcomes
    # ------------------------------------------------------------------

    def _freeze_clock(self) -> None:
        if self._end_time is None:
            self._end_time = self._pause_started if self._paused else self._context.clock()

    def _enter_won(self) -> None:
        elapsed = self.elapsed
        self._freeze_clock()
        self._phase = SessionPhase.WON
        self._selected = None

        self._stars = self._scorer.award(
            self._move_count,
            self._thresholds,
            elapsed=elapsed,
            time_limit=self._rules.time_limit
        )
        self._record = self._context.progress.record_completion(
            self.level_index, self._stars.stars, self._move_count
        )

        self._context.audio.play("win")
        self._context.effects.on_win(self._ids(lambda c: c.is_complete))
        logger.info(
            "Level %d solved in %d moves (%d stars)",
            self._descriptor.level_number, self._move_count, self._stars.stars
        )

    def _enter_lost(self, result: TerminationResult) -> None:
        if not self._rules.latch_loss(result):
            return
        self._freeze_clock()
        self._phase = SessionPhase.LOST
        self._selected = None

        self._context.audio.play("lose")
        self._context.effects.on_lose(result.reason, self._ids(lambda c: not c.is_complete))
        logger.info(
            "Level %d lost (%s) after %d moves",
            self._descriptor.level_number, result.reason, self._move_count
        )

    def _ids(self, predicate) -> List[int]:
        return [c.id for c in self._containers if predicate(c)]

    def get_info(self) -> Dict[str, Any]:
        """Summary dict (used as Gymnasium info)."""
        return {
            "level": self._descriptor.level_number if self._descriptor else 0,
            "state": self.state.value,
            "phase": self._phase.value,
            "move_count": self._move_count,
            "moves_remaining": self.moves_remaining,
            "time_remaining": self.time_remaining,
            "elapsed": self.elapsed,
            "history_depth": self.history_depth,
            "terminated_reason": self.termination_reason,
            "stars": self._stars.stars if self._stars else 0,
            "hints_remaining": self._hints_remaining,
        }
