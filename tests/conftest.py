"""Shared test fixtures for the snapread test suite.

WHY: Engine, planner, session and API tests all need the same small
word sequences, a deterministic scheduler, and a throwaway library
directory. Centralizing them keeps the expected values in one place.

HOW: Pytest fixtures provide sample word lists, an RSVPEngine running
on a ManualScheduler (virtual clock, nothing sleeps), and a Library
rooted in pytest's tmp_path.

RULES:
- SENTENCE_WORDS is the canonical skip/rewind example
- Engines in tests never use the asyncio scheduler
- Every library fixture lives under tmp_path (never ~/.snapread)
"""

from typing import Any, List, Tuple

import pytest

from snapread.core.engine import RSVPEngine
from snapread.core.scheduler import ManualScheduler
from snapread.ingest import parse_document
from snapread.library.store import Library

SENTENCE_WORDS: List[str] = ["A", "quick.", "brown", "fox", "jumped."]

SAMPLE_TEXT = (
    "Chapter 1\n"
    "It was a bright cold day in April, and the clocks were striking thirteen.\n\n"
    "Chapter 2\n"
    "Outside, even through the shut window-pane, the world looked cold.\n"
)


class EventRecorder:
    """Collects (kind, payload) pairs from every engine channel."""

    KINDS = ("load", "play", "pause", "stop", "end", "word", "progress", "speedChange")

    def __init__(self, engine: RSVPEngine) -> None:
        self.events: List[Tuple[str, Any]] = []
        for kind in self.KINDS:
            engine.on(kind, self._make_listener(kind))

    def _make_listener(self, kind: str):
        def listener(payload: Any) -> None:
            self.events.append((kind, payload))
        return listener

    def of(self, kind: str) -> List[Any]:
        return [payload for k, payload in self.events if k == kind]

    def kinds(self) -> List[str]:
        return [k for k, _ in self.events]

    def clear(self) -> None:
        self.events.clear()


@pytest.fixture
def sentence_words() -> List[str]:
    return list(SENTENCE_WORDS)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def engine(scheduler: ManualScheduler) -> RSVPEngine:
    """Engine at 300 wpm, chunk size 1, on a virtual clock."""
    return RSVPEngine(scheduler=scheduler, wpm=300, chunk_size=1)


@pytest.fixture
def recorder(engine: RSVPEngine) -> EventRecorder:
    return EventRecorder(engine)


@pytest.fixture
def library(tmp_path) -> Library:
    return Library(tmp_path / "library")


@pytest.fixture
def sample_text_bytes() -> bytes:
    return SAMPLE_TEXT.encode("utf-8")


@pytest.fixture
def stored_text(library: Library, sample_text_bytes: bytes):
    """A plain-text document already added to the library."""
    document = parse_document(sample_text_bytes, "orwell.txt")
    return library.add_file("orwell.txt", sample_text_bytes, document)


@pytest.fixture
def make_recorder():
    """Factory for recorders on engines a test builds itself."""
    return EventRecorder
