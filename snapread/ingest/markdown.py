"""Markdown parser (.md, .markdown).

WHY: Markdown syntax (``**``, ``#``, link targets) would be flashed at
the reader as if it were words.

HOW: The raw text is stripped of syntax before tokenization. Headings
are read from the raw text and indexed against the stripped words.

RULES:
- full_text keeps the raw Markdown; words come from the stripped text
- Headings "#" to "###" become chapters with their level
"""

from __future__ import annotations

from snapread.ingest.base import BaseParser, ParsedDocument, decode_text, title_from_filename
from snapread.ingest.tokenizer import (
    detect_markdown_headings,
    fill_word_counts,
    strip_markdown,
    tokenize,
)


class MarkdownParser(BaseParser):

    @property
    def name(self) -> str:
        return "Markdown"

    def parse(self, data: bytes, filename: str) -> ParsedDocument:
        raw = decode_text(data)
        words = tokenize(strip_markdown(raw))
        return ParsedDocument(
            title=title_from_filename(filename),
            author="",
            format="md",
            words=words,
            chapters=fill_word_counts(detect_markdown_headings(raw), len(words)),
            full_text=raw,
        )
