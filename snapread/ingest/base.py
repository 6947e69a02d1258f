"""Parsed document model, abstract parser, and ingestion errors.

WHY: EPUB, PDF, Markdown and plain text files all end up as the same
thing for the reader: a flat list of words plus chapter markers that
point into it. A shared model and parser interface let the library, the
CLI and the HTTP API treat every format the same way.

HOW: ``ParsedDocument`` holds the word list, chapters and metadata.
``BaseParser`` is an ABC with a ``name`` property and ``parse()`` taking
raw bytes plus the original filename. Parsers raise ``DocumentParseError``
for content they cannot read.

RULES:
- words are whitespace-free tokens with punctuation attached
- Chapter.start_word_index always points into ``words``
- Every document has at least one chapter for text formats
  (fallback "Start" at index 0)
- Parsers are stateless; one instance can parse many files
- To add a format: subclass BaseParser, register it in ingest/__init__.py
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional


class UnsupportedFormatError(ValueError):
    """The file extension has no registered parser."""


class DocumentParseError(ValueError):
    """The file matched a parser but its content could not be read."""


@dataclass
class Chapter:
    """A navigation marker into a document's word list."""

    title: str
    start_word_index: int
    word_count: Optional[int] = None
    level: Optional[int] = None


@dataclass
class ParsedDocument:
    """A document reduced to what the reader needs.

    Attributes:
        title: Metadata title, or the filename stem.
        author: Metadata author/creator, or "".
        format: Format key ("epub", "pdf", "txt", "md").
        words: Ordered tokens for playback.
        chapters: Navigation markers, ordered by start_word_index.
        full_text: Extracted text before tokenization.
    """

    title: str
    author: str
    format: str
    words: List[str] = field(default_factory=list)
    chapters: List[Chapter] = field(default_factory=list)
    full_text: str = ""

    @property
    def word_count(self) -> int:
        return len(self.words)


class BaseParser(ABC):
    """Abstract base for all document parsers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name, e.g. 'EPUB'."""

    @abstractmethod
    def parse(self, data: bytes, filename: str) -> ParsedDocument:
        """Extract words, chapters and metadata from raw file bytes.

        Args:
            data: The file content.
            filename: Original filename, used for the title fallback.

        Raises:
            DocumentParseError: The content cannot be read.
        """


def decode_text(data: bytes) -> str:
    """Decode UTF-8 text, tolerating a BOM and replacing invalid bytes."""
    return data.decode("utf-8-sig", errors="replace")


def title_from_filename(filename: str) -> str:
    """Filename without directory or final extension."""
    name = filename.replace("\\", "/").rsplit("/", 1)[-1]
    stem, dot, _ = name.rpartition(".")
    return stem if dot and stem else name
