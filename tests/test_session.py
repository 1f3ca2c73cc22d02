"""
Tests for the puzzle session state machine.
"""

from collections import Counter

import pytest

from water_sort.sort_core.config_loader import ConfigurationError, load_config
from water_sort.sort_core.context import AudioSink, EffectSink, InMemoryProgress, SessionContext
from water_sort.sort_core.difficulty import calculate_level_stats
from water_sort.sort_core.game import GameState, PuzzleSession, SessionPhase
from water_sort.sort_core.level_generator import LevelDescriptor, descriptor_for_level


class FakeClock:
    """Manually advanced clock."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class RecordingAudio(AudioSink):

    def __init__(self):
        self.cues = []

    def play(self, cue):
        self.cues.append(cue)


class RecordingEffects(EffectSink):
    """Records effect calls; pours complete immediately unless deferred."""

    def __init__(self, defer=False):
        self.defer = defer
        self.pending = []
        self.calls = []

    def on_select(self, container_id):
        self.calls.append(("select", container_id))

    def on_deselect(self, container_id):
        self.calls.append(("deselect", container_id))

    def on_pour(self, source_id, target_id, color, done):
        self.calls.append(("pour", source_id, target_id, color))
        if self.defer:
            self.pending.append(done)
        else:
            done()

    def on_invalid_move(self, source_id, target_id):
        self.calls.append(("invalid", source_id, target_id))

    def on_win(self, complete_ids):
        self.calls.append(("win", tuple(complete_ids)))

    def on_lose(self, reason, incomplete_ids):
        self.calls.append(("lose", reason))

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def effects():
    return RecordingEffects()


@pytest.fixture
def audio():
    return RecordingAudio()


@pytest.fixture
def progress():
    return InMemoryProgress()


@pytest.fixture
def session(config, clock, effects, audio, progress):
    context = SessionContext(audio=audio, effects=effects, progress=progress, clock=clock)
    return PuzzleSession(config=config, context=context)


def small_level(**overrides):
    """Two colors, capacity 2. Solved by (0,2), (1,0), (1,2)."""
    fields = dict(
        num_containers=3,
        num_colors=2,
        capacity=2,
        predefined=((0, 1), (1, 0), ()),
    )
    fields.update(overrides)
    return LevelDescriptor(**fields)


def pour(session, source, target):
    session.activate(source)
    return session.activate(target)


SOLUTION = [(0, 2), (1, 0), (1, 2)]


class TestSelection:
    """Test selection transitions."""

    def test_initial_state(self, session):
        board = session.initialize_level(small_level())

        assert board == ((0, 1), (1, 0), ())
        assert session.phase == SessionPhase.IDLE
        assert session.state == GameState.PLAYING
        assert session.move_count == 0
        assert session.history_depth == 1

    def test_select_and_deselect(self, session, effects):
        session.initialize_level(small_level())

        result = session.activate(0)
        assert result.event == "selected"
        assert session.phase == SessionPhase.SELECTED
        assert session.selected == 0

        result = session.activate(0)
        assert result.event == "deselected"
        assert session.phase == SessionPhase.IDLE
        assert session.selected is None
        assert effects.count("select") == 1
        assert effects.count("deselect") == 1

    def test_selecting_empty_container_is_noop(self, session):
        session.initialize_level(small_level())

        result = session.activate(2)

        assert result.event == "ignored"
        assert session.phase == SessionPhase.IDLE
        assert session.selected is None

    def test_invalid_pour_clears_selection(self, session, effects, audio):
        session.initialize_level(small_level())

        result = pour(session, 0, 1)

        assert result.event == "invalid_move"
        assert not result.moved
        assert session.phase == SessionPhase.IDLE
        assert session.move_count == 0
        assert session.board() == ((0, 1), (1, 0), ())
        assert effects.count("invalid") == 1
        assert "error" in audio.cues

    def test_out_of_range_container(self, session):
        session.initialize_level(small_level())

        with pytest.raises(IndexError):
            session.activate(3)

    def test_activate_before_level_loaded(self, session):
        with pytest.raises(RuntimeError):
            session.activate(0)


class TestPourAndUndo:
    """Test committed moves and history."""

    def test_successful_pour(self, session, effects):
        session.initialize_level(small_level())

        result = pour(session, 0, 2)

        assert result.event == "poured"
        assert result.poured == 1
        assert session.board() == ((0,), (1, 0), (1,))
        assert session.move_count == 1
        assert session.history_depth == 2
        assert session.phase == SessionPhase.IDLE
        assert ("pour", 0, 2, 1) in effects.calls

    def test_input_suspended_while_animating(self, config, clock):
        effects = RecordingEffects(defer=True)
        session = PuzzleSession(config, SessionContext(effects=effects, clock=clock))
        session.initialize_level(small_level())

        pour(session, 0, 2)

        assert session.phase == SessionPhase.ANIMATING
        assert session.activate(1).event == "ignored"
        assert session.undo() is False

        effects.pending.pop()()

        assert session.phase == SessionPhase.IDLE
        assert session.activate(1).event == "selected"

    def test_stale_animation_callback_is_ignored(self, config, clock):
        effects = RecordingEffects(defer=True)
        session = PuzzleSession(config, SessionContext(effects=effects, clock=clock))
        session.initialize_level(small_level())

        pour(session, 0, 2)
        stale = effects.pending.pop()
        session.reset()
        session.activate(0)
        stale()

        assert session.phase == SessionPhase.SELECTED

    def test_pour_then_undo_restores_snapshot(self, session):
        session.initialize_level(small_level())
        before = session.board()

        pour(session, 0, 2)

        assert session.undo() is True
        assert session.board() == before
        assert session.move_count == 0
        assert session.history_depth == 1

    def test_undo_with_only_initial_snapshot_is_noop(self, session):
        session.initialize_level(small_level())

        assert session.undo() is False
        assert session.board() == ((0, 1), (1, 0), ())

    def test_undo_floor_after_three_pours(self, session):
        session.initialize_level(small_level())
        initial = session.board()
        for move in [(0, 2), (1, 2), (0, 1)]:
            pour(session, *move)
        assert session.history_depth == 4

        assert session.undo() and session.undo()
        assert session.history_depth == 2
        assert session.undo()
        assert session.history_depth == 1
        assert session.board() == initial

        assert session.undo() is False
        assert session.history_depth == 1
        assert session.board() == initial
        assert session.move_count == 0

    def test_undo_steps_back_one_move_at_a_time(self, session):
        session.initialize_level(small_level())
        pour(session, 0, 2)
        after_first = session.board()
        pour(session, 1, 0)

        session.undo()

        assert session.board() == after_first
        assert session.move_count == 1

    def test_reset_restores_initial_layout(self, session, clock):
        session.initialize_level(small_level())
        pour(session, 0, 2)
        pour(session, 1, 0)
        session.activate(1)

        session.reset()

        assert session.board() == ((0, 1), (1, 0), ())
        assert session.move_count == 0
        assert session.history_depth == 1
        assert session.phase == SessionPhase.IDLE
        assert session.state == GameState.PLAYING

    def test_colors_conserved(self, session):
        session.initialize_level(small_level())
        for move in [(0, 2), (1, 2), (2, 0), (0, 1)]:
            pour(session, *move)
            totals = Counter(u for units in session.board() for u in units)
            assert totals == {0: 2, 1: 2}
            assert all(len(units) <= 2 for units in session.board())


class TestWin:
    """Test level completion."""

    def test_solving_wins(self, session, effects, audio, progress):
        session.initialize_level(small_level())

        for move in SOLUTION:
            result = pour(session, *move)

        assert result.termination.won
        assert session.phase == SessionPhase.WON
        assert session.state == GameState.WON
        assert session.termination_reason == "solved"
        assert ("win", (0, 2)) in effects.calls
        assert audio.cues.count("win") == 1

        assert session.stars.stars == 3
        record = progress.get_record(0)
        assert record.completed
        assert record.stars == 3
        assert record.best_moves == 3
        assert progress.is_unlocked(1)

    def test_input_ignored_after_win(self, session):
        session.initialize_level(small_level())
        for move in SOLUTION:
            pour(session, *move)

        assert session.activate(0).event == "ignored"
        assert session.undo() is False

    def test_win_on_last_allowed_move(self, session):
        session.initialize_level(small_level(max_moves=3))

        for move in SOLUTION:
            pour(session, *move)

        assert session.state == GameState.WON
        assert session.moves_remaining == 0

    def test_extra_moves_cost_stars(self, session):
        session.initialize_level(small_level(three_star_moves=3, two_star_moves=4))

        pour(session, 0, 2)
        pour(session, 2, 0)
        for move in SOLUTION:
            pour(session, *move)

        assert session.move_count == 5
        assert session.stars.stars == 1

    def test_late_finish_loses_a_star(self, session, clock):
        session.initialize_level(small_level(time_limit=100.0))

        pour(session, 0, 2)
        pour(session, 1, 0)
        clock.now = 95.0
        pour(session, 1, 2)

        assert session.state == GameState.WON
        assert session.stars.stars == 2
        assert session.stars.time_penalty


class TestLoss:
    """Test move and time limits."""

    def test_move_limit_loss(self, session, effects, audio):
        session.initialize_level(small_level(max_moves=2))

        pour(session, 0, 2)
        result = pour(session, 1, 0)

        assert result.termination.lost
        assert session.state == GameState.LOST
        assert session.termination_reason == "move_limit"
        assert effects.count("lose") == 1

    def test_loss_fires_once(self, session, effects, audio):
        session.initialize_level(small_level(max_moves=2))
        pour(session, 0, 2)
        pour(session, 1, 0)

        for _ in range(5):
            session.tick()
            session.activate(1)

        assert effects.count("lose") == 1
        assert audio.cues.count("lose") == 1
        assert session.move_count == 2

    def test_time_limit_loss(self, session, clock, effects):
        session.initialize_level(small_level(time_limit=10.0))

        clock.now = 9.9
        assert not session.tick().lost

        clock.now = 10.0
        assert session.tick().lost
        assert session.state == GameState.LOST
        assert session.termination_reason == "time_limit"
        assert session.time_remaining == 0.0

        clock.now = 20.0
        session.tick()
        assert effects.count("lose") == 1

    def test_time_limit_checked_on_input(self, session, clock):
        session.initialize_level(small_level(time_limit=10.0))
        clock.now = 11.0

        result = session.activate(0)

        assert result.event == "ignored"
        assert session.state == GameState.LOST

    def test_reset_clears_loss(self, session, clock, effects):
        session.initialize_level(small_level(time_limit=10.0))
        clock.now = 10.0
        session.tick()

        session.reset()

        assert session.state == GameState.PLAYING
        assert session.time_remaining == 10.0
        clock.now = 20.0
        session.tick()
        assert effects.count("lose") == 2

    def test_remaining_values(self, session, clock):
        session.initialize_level(small_level(max_moves=5, time_limit=30.0))
        clock.now = 12.0
        pour(session, 0, 2)

        assert session.moves_remaining == 4
        assert session.time_remaining == pytest.approx(18.0)
        assert session.has_move_limit
        assert session.has_time_limit

    def test_unlimited_level(self, session):
        session.initialize_level(small_level())

        assert session.moves_remaining == 0
        assert session.time_remaining == 0.0
        assert not session.has_move_limit
        assert not session.has_time_limit


class TestPauseAndWarning:
    """Test pause/resume and the countdown cue."""

    def test_pause_freezes_clock_and_input(self, session, clock):
        session.initialize_level(small_level(time_limit=10.0))
        clock.now = 2.0

        assert session.pause()
        assert session.state == GameState.PAUSED
        clock.now = 50.0
        session.tick()

        assert session.state == GameState.PAUSED
        assert session.elapsed == pytest.approx(2.0)
        assert session.activate(0).event == "ignored"

        assert session.resume()
        assert session.elapsed == pytest.approx(2.0)
        assert session.activate(0).event == "selected"

    def test_warning_once_per_second(self, session, clock, audio):
        session.initialize_level(small_level(time_limit=20.0))

        clock.now = 9.0
        session.tick()
        assert audio.cues.count("warning") == 0

        clock.now = 10.5
        session.tick()
        session.tick()
        assert audio.cues.count("warning") == 1

        clock.now = 11.2
        session.tick()
        assert audio.cues.count("warning") == 2


class TestHints:
    """Test hint suggestions."""

    def test_hint_suggests_move_to_empty(self, session):
        session.initialize_level(small_level())

        assert session.hint() == (0, 2)
        assert session.hints_remaining == 2

    def test_hints_run_out(self, session, config):
        session.initialize_level(small_level())

        for _ in range(config.session.max_hints):
            assert session.hint() is not None

        assert session.hint() is None
        assert session.hints_remaining == 0


class TestLevelLoading:
    """Test initialize_level failure and catalog levels."""

    def test_malformed_descriptor_creates_no_session(self, session):
        with pytest.raises(ConfigurationError):
            session.initialize_level(small_level(capacity=None))

        assert not session.is_loaded
        assert session.containers == ()

    def test_malformed_descriptor_keeps_previous_level(self, session):
        session.initialize_level(small_level())
        pour(session, 0, 2)

        with pytest.raises(ConfigurationError):
            session.initialize_level(small_level(num_colors=0, predefined=None))

        assert session.board() == ((0,), (1, 0), (1,))
        assert session.move_count == 1

    def test_catalog_level(self, session, config):
        descriptor = descriptor_for_level(3, config)

        board = session.initialize_level(descriptor)

        assert len(board) == 5
        assert sum(1 for units in board if not units) == 1
        assert session.moves_remaining == descriptor.max_moves

    def test_snapshot_and_info(self, session, config):
        session.initialize_level(small_level(max_moves=9))
        pour(session, 0, 2)

        obs = session.snapshot().to_obs_dict()
        info = session.get_info()

        assert int(obs["move_count"]) == 1
        assert int(obs["moves_remaining"]) == 8
        assert info["move_count"] == 1
        assert info["state"] == "playing"
        assert info["hints_remaining"] == config.session.max_hints

    def test_difficulty_report(self, session, config):
        session.initialize_level(descriptor_for_level(25, config))

        report = session.difficulty

        assert report.tier == 3
        assert report.time_limit_seconds == 150
        assert "Level 25" in report.describe()

    def test_difficulty_uses_estimate_empties(self, session, config):
        descriptor = descriptor_for_level(41, config)
        session.initialize_level(descriptor)

        stats = calculate_level_stats(
            41,
            descriptor.num_containers,
            descriptor.num_colors,
            num_empty=config.levels.stats_empty_containers,
            enable_time_limit=config.levels.timed_levels
        )

        assert session.difficulty.minimum_moves == stats.minimum_moves
        assert session.difficulty.max_moves == stats.max_moves


class TestNextLevel:
    """Test advancing through the catalog."""

    def test_advance_after_win(self, session, progress):
        session.initialize_level(small_level(level_number=1))
        for source, target in SOLUTION:
            pour(session, source, target)
        assert session.state == GameState.WON

        board = session.load_next_level()

        assert board is not None
        assert session.descriptor.level_number == 2
        assert len(board) == 5
        assert session.phase == SessionPhase.IDLE
        assert session.move_count == 0
        assert progress.is_unlocked(1)

    def test_locked_advance_changes_nothing(self, session, effects):
        session.initialize_level(small_level(level_number=1))
        pour(session, 0, 2)
        descriptor = session.descriptor

        assert session.load_next_level() is None

        assert session.descriptor is descriptor
        assert session.board() == ((0,), (1, 0), (1,))
        assert session.move_count == 1
        assert session.history_depth == 2

    def test_advance_from_earlier_completed_level(self, session, progress):
        progress.record_completion(4, stars=2, moves=12)
        session.initialize_level(small_level(level_number=5))

        session.load_next_level()

        assert session.descriptor.level_number == 6
        assert session.level_index == 5

    def test_requires_loaded_level(self, session):
        with pytest.raises(RuntimeError):
            session.load_next_level()
