"""Tests for the document parsers and the parser registry.

WHY: Each parser turns a different container format into the same
ParsedDocument. Chapter indexes must point into the returned word list,
and unreadable input must fail with DocumentParseError rather than
whatever the underlying library raises.

HOW: Text and Markdown are parsed from literal bytes. EPUB files are
built with ebooklib in tmp_path. PDF text extraction is mocked at the
PdfReader seam (pypdf cannot author text pages), plus one real blank
PDF written with pypdf's PdfWriter.

RULES:
- No test depends on files outside tmp_path
- Chapter start indexes are checked against the words they point to
"""

from __future__ import annotations

import io
from unittest.mock import MagicMock, patch

import pytest
from ebooklib import epub
from pypdf import PdfWriter
from pypdf.errors import PdfReadError

from snapread.ingest import (
    PARSERS,
    DocumentParseError,
    UnsupportedFormatError,
    format_for_filename,
    get_parser,
    parse_document,
    parse_path,
)
from snapread.ingest.base import decode_text, title_from_filename
from snapread.ingest.epub import EpubParser
from snapread.ingest.pdf import PdfParser


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _build_epub(path, chapters, title="Test Book", author="Jane Doe"):
    book = epub.EpubBook()
    book.set_identifier("snapread-test")
    book.set_title(title)
    book.set_language("en")
    if author:
        book.add_author(author)

    items = []
    for i, body in enumerate(chapters, start=1):
        item = epub.EpubHtml(title="c{}".format(i), file_name="c{}.xhtml".format(i), lang="en")
        item.content = "<html><head><title>c</title></head><body>{}</body></html>".format(body)
        book.add_item(item)
        items.append(item)

    book.toc = tuple(items)
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = items
    epub.write_epub(str(path), book)
    return path.read_bytes()


def _fake_pdf_reader(page_texts, title=None, author=None, encrypted=False):
    reader = MagicMock()
    reader.is_encrypted = encrypted
    pages = []
    for text in page_texts:
        page = MagicMock()
        if isinstance(text, Exception):
            page.extract_text.side_effect = text
        else:
            page.extract_text.return_value = text
        pages.append(page)
    reader.pages = pages
    reader.metadata = MagicMock(title=title, author=author)
    return reader


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestRegistry:

    @pytest.mark.parametrize("filename, expected", [
        ("book.epub", "epub"),
        ("paper.PDF", "pdf"),
        ("notes.txt", "txt"),
        ("notes.text", "txt"),
        ("README.md", "md"),
        ("guide.markdown", "md"),
    ])
    def test_format_for_filename(self, filename, expected):
        assert format_for_filename(filename) == expected

    def test_unsupported_extension(self):
        with pytest.raises(UnsupportedFormatError, match=r"\.docx"):
            format_for_filename("letter.docx")

    def test_unsupported_is_value_error(self):
        with pytest.raises(ValueError):
            parse_document(b"data", "image.png")

    def test_every_format_has_a_parser(self):
        assert set(PARSERS) == {"epub", "pdf", "txt", "md"}
        assert isinstance(get_parser("x.epub"), EpubParser)
        assert isinstance(get_parser("x.pdf"), PdfParser)

    def test_parse_path(self, tmp_path):
        path = tmp_path / "story.txt"
        path.write_text("Once upon a time.", encoding="utf-8")
        document = parse_path(path)
        assert document.title == "story"
        assert document.words == ["Once", "upon", "a", "time."]


class TestHelpers:

    def test_decode_strips_bom(self):
        assert decode_text(b"\xef\xbb\xbfhello") == "hello"

    def test_decode_replaces_invalid_bytes(self):
        assert decode_text(b"caf\xe9") == "caf\ufffd"

    @pytest.mark.parametrize("filename, expected", [
        ("book.epub", "book"),
        ("my.great.novel.txt", "my.great.novel"),
        ("dir/sub/file.md", "file"),
        ("C:\\docs\\file.pdf", "file"),
        ("noext", "noext"),
        (".hidden", ".hidden"),
    ])
    def test_title_from_filename(self, filename, expected):
        assert title_from_filename(filename) == expected


# ---------------------------------------------------------------------------
# Plain text and Markdown
# ---------------------------------------------------------------------------


class TestPlainTextParser:

    def test_words_and_chapters(self, sample_text_bytes):
        document = parse_document(sample_text_bytes, "orwell.txt")
        assert document.format == "txt"
        assert document.title == "orwell"
        assert document.author == ""
        assert document.word_count == 28
        assert [(c.title, c.start_word_index, c.word_count) for c in document.chapters] == [
            ("Chapter 1", 0, 16),
            ("Chapter 2", 16, 12),
        ]
        assert document.words[16] == "Chapter"

    def test_full_text_preserved(self, sample_text_bytes):
        document = parse_document(sample_text_bytes, "orwell.txt")
        assert document.full_text == sample_text_bytes.decode("utf-8")

    def test_empty_file(self):
        document = parse_document(b"", "empty.txt")
        assert document.words == []
        assert [c.title for c in document.chapters] == ["Start"]


class TestMarkdownParser:

    def test_syntax_removed_and_headings_indexed(self):
        md = b"# Intro\n\nRead **this** first.\n\n## Next\n\nThen [that](http://example.com).\n"
        document = parse_document(md, "guide.md")
        assert document.format == "md"
        assert document.words == ["Intro", "Read", "this", "first.", "Next", "Then", "that."]
        assert [(c.title, c.start_word_index, c.level, c.word_count) for c in document.chapters] == [
            ("Intro", 0, 1, 4),
            ("Next", 4, 2, 3),
        ]
        assert document.full_text.startswith("# Intro")


# ---------------------------------------------------------------------------
# EPUB
# ---------------------------------------------------------------------------


class TestEpubParser:

    def test_spine_order_titles_and_metadata(self, tmp_path):
        data = _build_epub(tmp_path / "book.epub", [
            "<h1>Opening</h1><p>It was a dark night.</p><script>var hidden = 1;</script>",
            "<p>No heading here at all.</p>",
        ])
        document = parse_document(data, "book.epub")

        assert document.format == "epub"
        assert document.title == "Test Book"
        assert document.author == "Jane Doe"
        assert document.words[:6] == ["Opening", "It", "was", "a", "dark", "night."]
        assert "hidden" not in " ".join(document.words)
        assert [(c.title, c.start_word_index, c.word_count) for c in document.chapters] == [
            ("Opening", 0, 6),
            ("Chapter 2", 6, 5),
        ]
        assert document.word_count == 11

    def test_empty_documents_skipped(self, tmp_path):
        data = _build_epub(tmp_path / "book.epub", [
            "<div></div>",
            "<h2>Only</h2><p>Real text.</p>",
        ])
        document = parse_document(data, "book.epub")
        assert [c.title for c in document.chapters] == ["Only"]
        assert document.chapters[0].start_word_index == 0

    def test_missing_author(self, tmp_path):
        data = _build_epub(tmp_path / "book.epub", ["<p>Text.</p>"], author=None)
        assert parse_document(data, "book.epub").author == ""

    def test_invalid_archive(self):
        with pytest.raises(DocumentParseError):
            parse_document(b"this is not a zip file", "broken.epub")


# ---------------------------------------------------------------------------
# PDF
# ---------------------------------------------------------------------------


class TestPdfParser:

    def test_page_markers(self):
        texts = ["page{} text".format(n) for n in range(1, 13)]
        texts[4] = ""  # page 5 is blank
        reader = _fake_pdf_reader(texts, title="Report", author="A. Writer")
        with patch("snapread.ingest.pdf.PdfReader", return_value=reader):
            document = parse_document(b"%PDF-fake", "report.pdf")

        assert document.format == "pdf"
        assert document.title == "Report"
        assert document.author == "A. Writer"
        assert document.word_count == 22
        assert [(c.title, c.start_word_index, c.word_count) for c in document.chapters] == [
            ("Page 1", 0, 16),
            ("Page 10", 16, 6),
        ]
        assert document.words[16] == "page10"

    def test_unreadable_page_skipped(self):
        reader = _fake_pdf_reader(["first page", RuntimeError("bad font"), "third page"])
        with patch("snapread.ingest.pdf.PdfReader", return_value=reader):
            document = parse_document(b"%PDF-fake", "doc.pdf")
        assert document.words == ["first", "page", "third", "page"]

    def test_metadata_fallback(self):
        reader = _fake_pdf_reader(["text"])
        reader.metadata = None
        with patch("snapread.ingest.pdf.PdfReader", return_value=reader):
            document = parse_document(b"%PDF-fake", "fallback.pdf")
        assert document.title == "fallback"
        assert document.author == ""

    def test_encrypted(self):
        reader = _fake_pdf_reader(["secret"], encrypted=True)
        with patch("snapread.ingest.pdf.PdfReader", return_value=reader):
            with pytest.raises(DocumentParseError, match="Encrypted"):
                parse_document(b"%PDF-fake", "locked.pdf")

    def test_read_error(self):
        with patch("snapread.ingest.pdf.PdfReader", side_effect=PdfReadError("broken xref")):
            with pytest.raises(DocumentParseError, match="broken xref"):
                parse_document(b"%PDF-fake", "broken.pdf")

    def test_real_blank_pdf(self):
        writer = PdfWriter()
        writer.add_blank_page(width=200, height=200)
        buffer = io.BytesIO()
        writer.write(buffer)

        document = parse_document(buffer.getvalue(), "blank.pdf")
        assert document.words == []
        assert document.chapters == []
        assert document.title == "blank"
