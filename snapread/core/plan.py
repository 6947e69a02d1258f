"""Playback planning: the display schedule without waiting for it.

WHY: Clients that render elsewhere (the HTTP API, the ``plan`` CLI
command, tests) want to know which chunk is shown when, and for how
long, without sleeping through real time.

HOW: A throwaway ``RSVPEngine`` runs on a ``ManualScheduler``. Each
``word`` event is recorded with the scheduler's virtual clock; the
delay is the gap to the next step (or the computed delay for the final
chunk).

RULES:
- Uses exactly the engine's loop, timing and ORP code; no parallel logic
- start_index is clamped like engine.load(); limit caps recorded steps
- An empty word list yields an empty plan
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

from snapread.core.engine import RSVPEngine
from snapread.core.events import EventKind, WordEvent
from snapread.core.scheduler import ManualScheduler
from snapread.core.timing import calculate_delay


@dataclass(frozen=True)
class PlannedStep:
    """One chunk of the display schedule.

    ``offset_ms`` is when the chunk appears, relative to the first one.
    """

    index: int
    word: str
    before: str
    orp_char: str
    after: str
    orp_index: int
    offset_ms: float
    delay_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def plan_playback(
    words: Sequence[str],
    wpm: int,
    chunk_size: int = 1,
    start_index: int = 0,
    limit: Optional[int] = None,
) -> List[PlannedStep]:
    """Return the display schedule for ``words`` from ``start_index``."""
    scheduler = ManualScheduler()
    engine = RSVPEngine(scheduler=scheduler, wpm=wpm, chunk_size=chunk_size)
    steps: List[PlannedStep] = []

    def _record(event: WordEvent) -> None:
        steps.append(PlannedStep(
            index=event.index,
            word=event.word,
            before=event.before,
            orp_char=event.orp_char,
            after=event.after,
            orp_index=event.orp_index,
            offset_ms=scheduler.now_ms,
            delay_ms=calculate_delay(event.word, engine.wpm),
        ))
        if limit is not None and len(steps) >= limit:
            engine.stop()

    engine.on(EventKind.WORD, _record)
    engine.load(words, start_index)
    engine.play()
    scheduler.run_until_idle()
    return steps
