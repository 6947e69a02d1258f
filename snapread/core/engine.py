"""RSVP playback engine: word-sequence state, autoplay loop, navigation.

WHY: Speed reading shows one chunk of words at a time at a fixed point
on screen. Something has to own the word sequence and the reading
position, decide how long each chunk stays up, and move forward on a
timer that can be paused, resumed, sped up, or redirected at any moment
without ever showing a chunk twice or after a pause.

HOW: ``RSVPEngine`` is a small state machine (idle → playing → paused /
ended) over an immutable tuple of words. Playing runs one loop step
synchronously and then re-arms itself through a ``Scheduler``: each
step emits a ``word`` and a ``progress`` event, computes the delay from
the timing model, advances the position by ``chunk_size`` and schedules
the next step. The one outstanding scheduler handle is kept on the
engine and cancelled by every operation that must preempt it.

RULES:
- At most one scheduled step is outstanding per engine
- load(), pause() and stop() cancel the outstanding step before changing
  state; a cancelled step never fires
- A step that does fire re-reads the status and does nothing unless the
  engine is still playing
- Positions stay within [0, len(words)]; navigation clamps to
  [0, len(words) - 1]
- Rate and chunk size changes apply from the next step on; an already
  scheduled delay is never changed
- Inputs are clamped, never rejected; the engine raises no errors of its
  own
- Engines share no state; each owns its emitter and scheduler handle
"""

from __future__ import annotations

import enum
import logging
import math
from typing import Any, Callable, Optional, Sequence, Tuple, Union

from snapread.config import DEFAULT_CHUNK_SIZE, DEFAULT_WPM, clamp_chunk_size, clamp_wpm
from snapread.core.events import (
    EndEvent,
    EventEmitter,
    EventKind,
    LoadEvent,
    PauseEvent,
    PlayEvent,
    SpeedChangeEvent,
    StopEvent,
    WordEvent,
)
from snapread.core.orp import split_at_orp
from snapread.core.scheduler import AsyncioScheduler, Scheduler
from snapread.core.timing import Progress, build_progress, calculate_delay

logger = logging.getLogger(__name__)

_SENTENCE_END = (".", "!", "?")


class PlaybackStatus(str, enum.Enum):
    """Playback lifecycle states.

    RULES:
    - idle: nothing loaded, freshly loaded, or stopped
    - playing: a step is running or scheduled
    - paused: halted mid-sequence, resumable from the same position
    - ended: the loop reached the end; play() restarts from index 0
    """

    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"


class RSVPEngine:
    """Caller-owned RSVP playback engine.

    Args:
        scheduler: Timer backend for the autoplay loop. Defaults to an
            ``AsyncioScheduler`` bound to the running loop at play time.
        wpm: Initial rate, clamped to [50, 1500].
        chunk_size: Initial words per step, clamped to [1, 3].

    Readable state: ``words``, ``current_index``, ``total_words``,
    ``wpm``, ``chunk_size``, ``status``, ``is_playing``. Only the
    engine's own operations change them.
    """

    def __init__(
        self,
        scheduler: Optional[Scheduler] = None,
        wpm: int = DEFAULT_WPM,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._scheduler = scheduler or AsyncioScheduler()
        self._events = EventEmitter()
        self._pending: Any = None
        self._generation = 0

        self._words: Tuple[str, ...] = ()
        self._current_index = 0
        self._status = PlaybackStatus.IDLE
        self._wpm = clamp_wpm(wpm)
        self._chunk_size = clamp_chunk_size(chunk_size)

    # -- readable state ------------------------------------------------------

    @property
    def words(self) -> Tuple[str, ...]:
        return self._words

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def total_words(self) -> int:
        return len(self._words)

    @property
    def wpm(self) -> int:
        return self._wpm

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def status(self) -> PlaybackStatus:
        return self._status

    @property
    def is_playing(self) -> bool:
        return self._status is PlaybackStatus.PLAYING

    @property
    def has_pending_step(self) -> bool:
        return self._pending is not None

    # -- events ----------------------------------------------------------------

    def on(self, kind: Union[EventKind, str], callback: Callable[[Any], None]) -> Callable[[], None]:
        """Subscribe to an event; returns an unsubscribe callable."""
        return self._events.on(kind, callback)

    def off(self, kind: Union[EventKind, str], callback: Callable[[Any], None]) -> None:
        self._events.off(kind, callback)

    # -- transitions -------------------------------------------------------------

    def load(self, words: Sequence[str], start_index: int = 0) -> None:
        """Replace the word sequence and reset playback.

        ``start_index`` (usually a saved bookmark) is clamped into
        [0, len(words) - 1], or 0 for an empty sequence.
        """
        self._cancel_pending()
        self._words = tuple(words)
        self._current_index = self._clamp_index(start_index)
        self._status = PlaybackStatus.IDLE
        logger.info("Loaded %d words, starting at %d", len(self._words), self._current_index)
        self._events.emit(
            EventKind.LOAD,
            LoadEvent(total_words=len(self._words), current_index=self._current_index),
        )

    def play(self) -> None:
        """Start or resume autoplay.

        No-op for an empty sequence or when already playing. Restarts
        from the beginning when the position is at or past the end.
        """
        if not self._words or self._status is PlaybackStatus.PLAYING:
            return
        if self._current_index >= len(self._words):
            self._current_index = 0

        self._status = PlaybackStatus.PLAYING
        self._generation += 1
        logger.debug("Play from %d at %d wpm", self._current_index, self._wpm)
        self._events.emit(EventKind.PLAY, PlayEvent(index=self._current_index))
        self._step()

    def pause(self) -> None:
        self._cancel_pending()
        self._status = PlaybackStatus.PAUSED
        logger.debug("Paused at %d", self._current_index)
        self._events.emit(EventKind.PAUSE, PauseEvent(word_index=self._current_index))

    def toggle_play(self) -> None:
        if self.is_playing:
            self.pause()
        else:
            self.play()

    def stop(self) -> None:
        """Cancel autoplay and return to idle, keeping the position."""
        self._cancel_pending()
        self._status = PlaybackStatus.IDLE
        logger.debug("Stopped at %d", self._current_index)
        self._events.emit(EventKind.STOP, StopEvent(index=self._current_index))

    # -- navigation ----------------------------------------------------------------

    def rewind(self, count: Optional[int] = None) -> None:
        """Move back ``count`` words, or to the start of the current sentence."""
        if count is not None:
            self._current_index = self._clamp_index(self._current_index - count)
        else:
            self._current_index = self.find_sentence_start(self._current_index)
        self._emit_position()

    def skip(self, count: Optional[int] = None) -> None:
        """Move forward ``count`` words, or to the start of the next sentence."""
        if count is not None:
            self._current_index = self._clamp_index(self._current_index + count)
        else:
            self._current_index = self.find_sentence_end(self._current_index)
        self._emit_position()

    def jump_to(self, index: int) -> None:
        self._current_index = self._clamp_index(index)
        self._emit_position()

    def seek(self, fraction: float) -> None:
        """Jump to a fraction (0.0–1.0) of the way through the sequence."""
        fraction = max(0.0, min(1.0, fraction))
        self.jump_to(int(math.floor(fraction * len(self._words))))

    def find_sentence_start(self, index: int) -> int:
        """Index just after the nearest sentence-ending word before ``index``."""
        for i in range(min(index, len(self._words)) - 1, -1, -1):
            if self._words[i].endswith(_SENTENCE_END):
                return i + 1
        return 0

    def find_sentence_end(self, index: int) -> int:
        """Index just after the first sentence-ending word at or after ``index``.

        Clamped to the last word; the last word when no sentence ends.
        """
        last = max(0, len(self._words) - 1)
        for i in range(max(0, index), len(self._words)):
            if self._words[i].endswith(_SENTENCE_END):
                return min(i + 1, last)
        return last

    # -- configuration ---------------------------------------------------------------

    def set_speed(self, wpm: int) -> None:
        self._wpm = clamp_wpm(wpm)
        self._events.emit(EventKind.SPEED_CHANGE, SpeedChangeEvent(wpm=self._wpm))

    def adjust_speed(self, delta: int) -> None:
        self.set_speed(self._wpm + delta)

    def set_chunk_size(self, size: int) -> None:
        self._chunk_size = clamp_chunk_size(size)

    # -- derived values ------------------------------------------------------------------

    def current_chunk(self) -> str:
        """Space-joined chunk at the current position ("" past the end)."""
        start = self._current_index
        return " ".join(self._words[start:start + self._chunk_size])

    def get_progress(self) -> Progress:
        return build_progress(self._current_index, len(self._words), self._wpm)

    # -- internals ---------------------------------------------------------------------

    def _step(self) -> None:
        """One iteration of the autoplay loop."""
        self._pending = None
        if self._status is not PlaybackStatus.PLAYING:
            return

        if self._current_index >= len(self._words):
            self._status = PlaybackStatus.ENDED
            logger.debug("Reached end of %d words", len(self._words))
            self._events.emit(EventKind.END, EndEvent(total_words=len(self._words)))
            return

        generation = self._generation
        chunk = self.current_chunk()
        self._events.emit(EventKind.WORD, self._word_event(chunk))
        self._events.emit(EventKind.PROGRESS, self.get_progress())

        # A subscriber may have paused, stopped, reloaded or restarted
        # playback during emission; that transition owns the loop now.
        if self._generation != generation or self._status is not PlaybackStatus.PLAYING:
            return

        delay_ms = calculate_delay(chunk, self._wpm)
        self._current_index += self._chunk_size
        self._pending = self._scheduler.call_later(delay_ms, self._step)

    def _cancel_pending(self) -> None:
        self._generation += 1
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _clamp_index(self, index: int) -> int:
        if isinstance(index, float) and math.isnan(index):
            return 0
        return int(max(0, min(index, len(self._words) - 1)))

    def _word_event(self, chunk: str) -> WordEvent:
        split = split_at_orp(chunk)
        return WordEvent(
            word=chunk,
            index=self._current_index,
            before=split.before,
            orp_char=split.orp_char,
            after=split.after,
            orp_index=split.orp_index,
            word_length=split.length,
        )

    def _emit_position(self) -> None:
        if self._current_index < len(self._words):
            self._events.emit(EventKind.WORD, self._word_event(self.current_chunk()))
        self._events.emit(EventKind.PROGRESS, self.get_progress())
