"""RSVP playback core: engine, timing, ORP, events and scheduling.

WHY: The core is the part of SnapRead with real timing behaviour. It is
kept free of parsing, storage and rendering so it can be driven by the
CLI, the HTTP API, or tests alike.

HOW: engine.py holds the state machine and autoplay loop, timing.py and
orp.py are pure functions it calls on every step, events.py is its only
output channel, scheduler.py supplies the cancellable timers it runs on,
and plan.py replays it on a virtual clock.

RULES:
- Nothing in core imports from ingest, library, session, cli or server
- All core inputs are clamped rather than rejected
"""

from snapread.core.engine import PlaybackStatus, RSVPEngine
from snapread.core.events import EventKind, WordEvent
from snapread.core.orp import OrpSplit, calculate_orp, split_at_orp
from snapread.core.scheduler import AsyncioScheduler, ManualScheduler, Scheduler
from snapread.core.timing import Progress, calculate_delay

__all__ = [
    "AsyncioScheduler",
    "EventKind",
    "ManualScheduler",
    "OrpSplit",
    "PlaybackStatus",
    "Progress",
    "RSVPEngine",
    "Scheduler",
    "WordEvent",
    "calculate_delay",
    "calculate_orp",
    "split_at_orp",
]
