"""
Session Context
===============

Collaborators a puzzle session talks to, bundled and passed in explicitly:
presentation effects, audio cues, progress persistence, and the clock.

The null implementations let the core run headless; effects complete
immediately and nothing is stored beyond memory.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Sequence

from water_sort.sort_core.scoring import LevelRecord

# Zero-argument callable returning monotonic seconds
Clock = Callable[[], float]


class AudioSink:
    """
    Receives named audio cues.

    Cues: select, pour, error, win, lose, undo, reset, warning, hint.
    """

    def play(self, cue: str) -> None:
        pass


class NullAudioSink(AudioSink):
    """Ignores every cue."""


class EffectSink:
    """
    Presentation layer hooks.

    `on_pour` receives a completion callback and must call it once the pour
    animation has finished; the session keeps input suspended until then.
    """

    def on_select(self, container_id: int) -> None:
        pass

    def on_deselect(self, container_id: int) -> None:
        pass

    def on_pour(self, source_id: int, target_id: int, color: int, done: Callable[[], None]) -> None:
        done()

    def on_invalid_move(self, source_id: int, target_id: int) -> None:
        pass

    def on_win(self, complete_ids: Sequence[int]) -> None:
        pass

    def on_lose(self, reason: str, incomplete_ids: Sequence[int]) -> None:
        pass


class NullEffectSink(EffectSink):
    """Completes every animation immediately."""


@dataclass
class AudioOptions:
    """Global audio settings."""
    music_volume: float = 0.7
    sfx_volume: float = 1.0
    muted: bool = False


class ProgressSink:
    """Stores per-level records and global audio options."""

    def get_record(self, level_index: int) -> LevelRecord:
        raise NotImplementedError

    def record_completion(self, level_index: int, stars: int, moves: int) -> LevelRecord:
        raise NotImplementedError

    def is_unlocked(self, level_index: int) -> bool:
        """Level 0 is always open; later levels need the previous one completed."""
        if level_index <= 0:
            return True
        return self.get_record(level_index - 1).completed

    @property
    def audio_options(self) -> AudioOptions:
        raise NotImplementedError


class InMemoryProgress(ProgressSink):
    """Progress kept in memory, keyed by level index."""

    def __init__(self, audio_options: Optional[AudioOptions] = None):
        self._records: Dict[int, LevelRecord] = {}
        self._audio_options = audio_options or AudioOptions()

    def get_record(self, level_index: int) -> LevelRecord:
        return self._records.get(level_index, LevelRecord())

    def record_completion(self, level_index: int, stars: int, moves: int) -> LevelRecord:
        record = self.get_record(level_index).merge(stars, moves)
        self._records[level_index] = record
        return record

    @property
    def total_stars(self) -> int:
        return sum(r.stars for r in self._records.values())

    @property
    def audio_options(self) -> AudioOptions:
        return self._audio_options

    def reset(self) -> None:
        """Clear all level records."""
        self._records.clear()


@dataclass
class SessionContext:
    """Bundle of collaborators injected into a PuzzleSession."""
    audio: AudioSink = field(default_factory=NullAudioSink)
    effects: EffectSink = field(default_factory=NullEffectSink)
    progress: ProgressSink = field(default_factory=InMemoryProgress)
    clock: Clock = time.monotonic
