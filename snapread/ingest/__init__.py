"""Document ingestion registry — file bytes to a playable word list.

WHY: The library, CLI and HTTP API need one lookup from a filename to
the parser that handles it. A central dict makes adding a format a
one-line change.

HOW: PARSERS maps format keys to parser *classes*. SUPPORTED_FORMATS in
config maps extensions to those keys. ``parse_document`` resolves the
extension, instantiates the parser and returns its ParsedDocument.

RULES:
- Keys match the values of config.SUPPORTED_FORMATS
- Unknown extensions raise UnsupportedFormatError (a ValueError)
- Every parser listed here must be importable without side effects
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Union

from snapread.config import SUPPORTED_FORMATS
from snapread.ingest.base import (
    BaseParser,
    Chapter,
    DocumentParseError,
    ParsedDocument,
    UnsupportedFormatError,
)
from snapread.ingest.epub import EpubParser
from snapread.ingest.markdown import MarkdownParser
from snapread.ingest.pdf import PdfParser
from snapread.ingest.plain_text import PlainTextParser

PARSERS: Dict[str, type] = {
    "epub": EpubParser,
    "pdf": PdfParser,
    "txt": PlainTextParser,
    "md": MarkdownParser,
}


def format_for_filename(filename: str) -> str:
    """Return the format key for ``filename``'s extension.

    Raises:
        UnsupportedFormatError: The extension is not supported.
    """
    ext = Path(filename).suffix.lower()
    key = SUPPORTED_FORMATS.get(ext)
    if key is None:
        raise UnsupportedFormatError(
            "Unsupported file type '{}'. Supported formats: {}".format(
                ext, ", ".join(sorted(SUPPORTED_FORMATS))
            )
        )
    return key


def get_parser(filename: str) -> BaseParser:
    return PARSERS[format_for_filename(filename)]()


def parse_document(data: bytes, filename: str) -> ParsedDocument:
    """Parse raw file bytes into a ParsedDocument."""
    return get_parser(filename).parse(data, filename)


def parse_path(path: Union[str, Path]) -> ParsedDocument:
    """Read and parse a file from disk."""
    path = Path(path)
    parser = get_parser(path.name)
    return parser.parse(path.read_bytes(), path.name)


__all__ = [
    "PARSERS",
    "BaseParser",
    "Chapter",
    "DocumentParseError",
    "ParsedDocument",
    "UnsupportedFormatError",
    "format_for_filename",
    "get_parser",
    "parse_document",
    "parse_path",
]
