"""Plain text parser (.txt, .text)."""

from __future__ import annotations

from snapread.ingest.base import BaseParser, ParsedDocument, decode_text, title_from_filename
from snapread.ingest.tokenizer import detect_chapters, fill_word_counts, tokenize


class PlainTextParser(BaseParser):
    """UTF-8 text; chapters from "Chapter N" and all-caps lines."""

    @property
    def name(self) -> str:
        return "Plain Text"

    def parse(self, data: bytes, filename: str) -> ParsedDocument:
        text = decode_text(data)
        words = tokenize(text)
        return ParsedDocument(
            title=title_from_filename(filename),
            author="",
            format="txt",
            words=words,
            chapters=fill_word_counts(detect_chapters(text), len(words)),
            full_text=text,
        )
