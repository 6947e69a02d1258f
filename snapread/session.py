"""Reading session: one library document playing on one engine.

WHY: The engine only knows words and positions; the library only knows
files and bookmarks. Opening a book means parsing its stored bytes,
restoring the saved position and preferences, and saving the position
again whenever the reader stops. Chapter navigation needs the parsed
chapter markers, which the engine never sees.

HOW: ``ReadingSession`` subscribes to the engine's ``pause`` and ``end``
events to save bookmarks, applies saved settings before ``load``, and
translates chapter navigation into ``engine.jump_to``.

RULES:
- open() closes any previously open document first
- Bookmarks are saved on pause, on end, on seek/chapter jumps and on close()
- close() saves, stops the engine and unsubscribes; it is idempotent
- The bookmark's chapter field is the 0-based chapter containing the
  current position
"""

from __future__ import annotations

import bisect
import logging
from typing import Callable, List, Optional

from snapread.core.engine import RSVPEngine
from snapread.core.events import EventKind
from snapread.ingest import parse_document
from snapread.ingest.base import Chapter, DocumentParseError, ParsedDocument
from snapread.library.store import Library, LibraryFile

logger = logging.getLogger(__name__)


class ReadingSession:
    """Connects a Library to an RSVPEngine for one open document."""

    def __init__(self, library: Library, engine: RSVPEngine) -> None:
        self.library = library
        self.engine = engine
        self.file: Optional[LibraryFile] = None
        self.document: Optional[ParsedDocument] = None
        self._unsubscribers: List[Callable[[], None]] = []

    @property
    def is_open(self) -> bool:
        return self.file is not None

    @property
    def chapters(self) -> List[Chapter]:
        return self.document.chapters if self.document is not None else []

    def open(self, file_id: str) -> ParsedDocument:
        """Parse a stored document and load it at its bookmark.

        Raises:
            KeyError: Unknown file id.
            DocumentParseError: The stored bytes are missing or unreadable.
        """
        self.close()

        entry = self.library.get_file(file_id)
        if entry is None:
            raise KeyError("Unknown file id: {}".format(file_id))
        data = self.library.read_file_bytes(file_id)
        if data is None:
            raise DocumentParseError("Stored file for {} is missing".format(file_id))

        document = parse_document(data, entry.name)
        bookmark = self.library.get_bookmark(file_id)
        start_index = bookmark.word_index if bookmark is not None else 0

        settings = self.library.get_settings()
        self.engine.set_speed(settings["wpm"])
        self.engine.set_chunk_size(settings["chunk_size"])

        self.file = entry
        self.document = document
        self._unsubscribers = [
            self.engine.on(EventKind.PAUSE, self._on_stopping),
            self.engine.on(EventKind.END, self._on_stopping),
        ]
        self.engine.load(document.words, start_index)
        if start_index > 0:
            # show the resumed word before play starts
            self.engine.jump_to(start_index)
        logger.info("Opened %s at word %d", entry.name, self.engine.current_index)
        return document

    def close(self) -> None:
        if self.file is None:
            return
        self.save_bookmark()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self.engine.stop()
        self.file = None
        self.document = None

    def save_bookmark(self) -> None:
        if self.file is None:
            return
        self.library.save_bookmark(
            self.file.id,
            word_index=self.engine.current_index,
            total_words=self.engine.total_words,
            chapter=self.current_chapter_number(),
        )

    # -- navigation --------------------------------------------------------------

    def current_chapter_number(self) -> int:
        """0-based index of the chapter containing the current position."""
        starts = [c.start_word_index for c in self.chapters]
        if not starts:
            return 0
        return max(0, bisect.bisect_right(starts, self.engine.current_index) - 1)

    def current_chapter(self) -> Optional[Chapter]:
        chapters = self.chapters
        return chapters[self.current_chapter_number()] if chapters else None

    def jump_to_chapter(self, number: int) -> None:
        chapters = self.chapters
        if not chapters:
            return
        number = max(0, min(number, len(chapters) - 1))
        self.engine.jump_to(chapters[number].start_word_index)
        self.save_bookmark()

    def next_chapter(self) -> None:
        self.jump_to_chapter(self.current_chapter_number() + 1)

    def previous_chapter(self) -> None:
        """Go to the start of the current chapter, or the previous one if already there."""
        current = self.current_chapter()
        if current is None:
            return
        number = self.current_chapter_number()
        if self.engine.current_index <= current.start_word_index:
            number -= 1
        self.jump_to_chapter(number)

    def seek(self, fraction: float) -> None:
        self.engine.seek(fraction)
        self.save_bookmark()

    def _on_stopping(self, _event: object) -> None:
        self.save_bookmark()
