"""PDF parser built on pypdf.

WHY: PDFs carry no reliable chapter structure, only pages. The reader
still needs coarse navigation points into long documents.

HOW: Each page's text is extracted with pypdf and tokenized. Page 1 and
every 10th page become chapter markers ("Page N"). A page whose text
cannot be extracted is logged and skipped.

RULES:
- Blank pages add no words and no markers
- Markers are placed only on pages that have text
- Title/author come from the PDF info dictionary, falling back to the
  filename stem and ""
- Unreadable or encrypted files raise DocumentParseError
"""

from __future__ import annotations

import io
import logging
from typing import List

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from snapread.ingest.base import (
    BaseParser,
    Chapter,
    DocumentParseError,
    ParsedDocument,
    title_from_filename,
)
from snapread.ingest.tokenizer import fill_word_counts, tokenize

logger = logging.getLogger(__name__)

PAGE_MARKER_INTERVAL = 10


class PdfParser(BaseParser):

    @property
    def name(self) -> str:
        return "PDF"

    def parse(self, data: bytes, filename: str) -> ParsedDocument:
        try:
            reader = PdfReader(io.BytesIO(data))
            if reader.is_encrypted:
                raise DocumentParseError("Encrypted PDFs are not supported")
            pages = list(reader.pages)
        except PdfReadError as exc:
            raise DocumentParseError("Invalid PDF file: {}".format(exc)) from exc

        words: List[str] = []
        chapters: List[Chapter] = []
        texts: List[str] = []

        for page_num, page in enumerate(pages, start=1):
            try:
                page_text = (page.extract_text() or "").strip()
            except Exception:
                logger.warning("Failed to extract text from page %d", page_num, exc_info=True)
                continue
            if not page_text:
                continue

            if page_num == 1 or page_num % PAGE_MARKER_INTERVAL == 0:
                chapters.append(Chapter(
                    title="Page {}".format(page_num),
                    start_word_index=len(words),
                ))
            words.extend(tokenize(page_text))
            texts.append(page_text)

        title = title_from_filename(filename)
        author = ""
        metadata = reader.metadata
        if metadata is not None:
            title = (metadata.title or "").strip() or title
            author = (metadata.author or "").strip()

        return ParsedDocument(
            title=title,
            author=author,
            format="pdf",
            words=words,
            chapters=fill_word_counts(chapters, len(words)),
            full_text="\n\n".join(texts),
        )
