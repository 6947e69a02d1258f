"""EPUB parser built on ebooklib and BeautifulSoup.

WHY: EPUB books are zipped XHTML documents with a reading order (the
spine) and Dublin Core metadata. The reader needs the spine's text in
order, one chapter marker per spine document, and the book's title and
author.

HOW: The bytes are written to a temporary file for ``epub.read_epub``.
Spine items are visited in order; each document is parsed with
BeautifulSoup, scripts/styles/nav blocks are removed, and the remaining
text is tokenized. A document that fails to load is logged and skipped.

RULES:
- Chapter title: first h1/h2/h3 in the document, else "Chapter N"
- Documents with no text (covers, nav pages) produce no chapter
- Title falls back to the filename stem; author to ""
- Unreadable archives raise DocumentParseError
"""

from __future__ import annotations

import logging
import os
import tempfile
import warnings
import zipfile
from typing import List, Optional, Tuple

import ebooklib
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning
from ebooklib import epub

from snapread.ingest.base import (
    BaseParser,
    Chapter,
    DocumentParseError,
    ParsedDocument,
    title_from_filename,
)
from snapread.ingest.tokenizer import tokenize

logger = logging.getLogger(__name__)

_REMOVED_TAGS = ["script", "style", "nav"]
_HEADING_TAGS = ["h1", "h2", "h3"]


def _first_metadata(book: epub.EpubBook, name: str) -> str:
    values = book.get_metadata("DC", name)
    if values and values[0] and values[0][0]:
        return str(values[0][0]).strip()
    return ""


def _extract_document(content: bytes) -> Tuple[Optional[str], str]:
    """Return (heading, text) for one XHTML document."""
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", XMLParsedAsHTMLWarning)
        soup = BeautifulSoup(content, "html.parser")
    for tag in soup(_REMOVED_TAGS):
        tag.decompose()

    heading: Optional[str] = None
    heading_tag = soup.find(_HEADING_TAGS)
    if heading_tag is not None:
        heading = heading_tag.get_text(" ", strip=True) or None

    body = soup.body or soup
    return heading, body.get_text(separator="\n").strip()


class EpubParser(BaseParser):

    @property
    def name(self) -> str:
        return "EPUB"

    def parse(self, data: bytes, filename: str) -> ParsedDocument:
        book = self._read_book(data)

        words: List[str] = []
        chapters: List[Chapter] = []
        texts: List[str] = []

        for idref, _linear in book.spine:
            item = book.get_item_with_id(idref)
            if item is None or item.get_type() != ebooklib.ITEM_DOCUMENT:
                continue
            try:
                heading, text = _extract_document(item.get_content())
            except Exception:
                logger.warning("Failed to load EPUB chapter %s", idref, exc_info=True)
                continue

            chapter_words = tokenize(text)
            if not chapter_words:
                continue

            chapters.append(Chapter(
                title=heading or "Chapter {}".format(len(chapters) + 1),
                start_word_index=len(words),
                word_count=len(chapter_words),
            ))
            words.extend(chapter_words)
            texts.append(text)

        return ParsedDocument(
            title=_first_metadata(book, "title") or title_from_filename(filename),
            author=_first_metadata(book, "creator"),
            format="epub",
            words=words,
            chapters=chapters,
            full_text="\n\n".join(texts),
        )

    @staticmethod
    def _read_book(data: bytes) -> epub.EpubBook:
        fd, path = tempfile.mkstemp(suffix=".epub", prefix="snapread_")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            return epub.read_epub(path, options={"ignore_ncx": True})
        except (epub.EpubException, zipfile.BadZipFile, KeyError) as exc:
            raise DocumentParseError("Invalid EPUB file: {}".format(exc)) from exc
        finally:
            try:
                os.unlink(path)
            except OSError:
                logger.warning("Failed to remove temp file: %s", path)
