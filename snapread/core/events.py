"""Typed publish/subscribe channel for playback events.

WHY: The engine never renders or persists anything itself. Everything a
presentation or persistence layer needs (the word to draw, progress,
lifecycle changes) leaves the engine as an event. A closed set of event
kinds, each with one payload type, lets subscribers rely on the payload
shape.

HOW: ``EventKind`` enumerates the channels. Each kind maps to a payload
dataclass in ``EVENT_PAYLOADS``. ``EventEmitter`` keeps a list of
callbacks per kind and calls them synchronously, in registration order,
on the thread and call stack of whoever emitted.

RULES:
- on() returns an unsubscribe callable; off() removes one registration
- emit() invokes a snapshot of the callbacks, so subscribers may
  unsubscribe (or subscribe) from inside a callback safely
- Nothing is queued or dropped; an exception raised by a subscriber
  propagates to the emitter's caller
- Emitting a payload of the wrong type for its kind raises TypeError
- String channel names are accepted and converted via EventKind(name)
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Union

from snapread.core.timing import Progress


class EventKind(str, enum.Enum):
    """Closed set of playback event channels.

    Inherits from str so values serialize cleanly to JSON and compare
    equal to the channel names ("word", "speedChange", ...).
    """

    LOAD = "load"
    PLAY = "play"
    PAUSE = "pause"
    STOP = "stop"
    END = "end"
    WORD = "word"
    PROGRESS = "progress"
    SPEED_CHANGE = "speedChange"


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Payload:
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LoadEvent(_Payload):
    total_words: int
    current_index: int


@dataclass(frozen=True)
class PlayEvent(_Payload):
    index: int


@dataclass(frozen=True)
class PauseEvent(_Payload):
    word_index: int


@dataclass(frozen=True)
class StopEvent(_Payload):
    index: int


@dataclass(frozen=True)
class EndEvent(_Payload):
    total_words: int


@dataclass(frozen=True)
class WordEvent(_Payload):
    """The chunk to display, split around its ORP letter.

    ``word`` is the full chunk text and ``index`` the position of its
    first word. ``word_length`` is ``len(word)``.
    """

    word: str
    index: int
    before: str
    orp_char: str
    after: str
    orp_index: int
    word_length: int


@dataclass(frozen=True)
class SpeedChangeEvent(_Payload):
    wpm: int


EVENT_PAYLOADS: Dict[EventKind, type] = {
    EventKind.LOAD: LoadEvent,
    EventKind.PLAY: PlayEvent,
    EventKind.PAUSE: PauseEvent,
    EventKind.STOP: StopEvent,
    EventKind.END: EndEvent,
    EventKind.WORD: WordEvent,
    EventKind.PROGRESS: Progress,
    EventKind.SPEED_CHANGE: SpeedChangeEvent,
}

Listener = Callable[[Any], None]


class EventEmitter:
    """Per-instance registry of event callbacks.

    Each engine owns its own emitter; two engines never share
    subscribers.
    """

    def __init__(self) -> None:
        self._listeners: Dict[EventKind, List[Listener]] = {}

    def on(self, kind: Union[EventKind, str], callback: Listener) -> Callable[[], None]:
        """Register ``callback`` for ``kind`` and return its unsubscribe handle."""
        kind = EventKind(kind)
        self._listeners.setdefault(kind, []).append(callback)

        def unsubscribe() -> None:
            self.off(kind, callback)

        return unsubscribe

    def off(self, kind: Union[EventKind, str], callback: Listener) -> None:
        """Remove every registration of ``callback`` for ``kind``.

        Unknown callbacks are ignored.
        """
        kind = EventKind(kind)
        listeners = self._listeners.get(kind)
        if not listeners:
            return
        self._listeners[kind] = [cb for cb in listeners if cb != callback]

    def emit(self, kind: Union[EventKind, str], payload: Any) -> None:
        kind = EventKind(kind)
        expected = EVENT_PAYLOADS[kind]
        if not isinstance(payload, expected):
            raise TypeError(
                "Event '{}' expects a {} payload, got {}".format(
                    kind.value, expected.__name__, type(payload).__name__
                )
            )
        for callback in list(self._listeners.get(kind, ())):
            callback(payload)

    def listener_count(self, kind: Union[EventKind, str]) -> int:
        return len(self._listeners.get(EventKind(kind), ()))
