"""Text tokenization, Markdown stripping, and chapter detection.

WHY: Every parser reduces its format to text; from there the steps are
the same. Words keep their punctuation (the timing model and sentence
navigation depend on it), Markdown syntax must not reach the screen,
and chapter markers have to be found in text that has no structure.

HOW: ``tokenize`` splits on any whitespace. ``strip_markdown`` removes
syntax with a fixed sequence of regex substitutions. Chapter detection
walks the text line by line, counting words so each marker carries the
index of the first word after it.

RULES:
- tokenize() never returns empty strings and never keeps newlines
- Plain-text chapter lines: "Chapter/Part/Section <number>" (any case),
  or an all-caps line longer than 3 and shorter than 60 characters
- Chapter titles longer than 40 characters are cut to 40 plus "…"
- Markdown chapters are "#", "##" and "###" headings, with level 1–3
- Both detectors fall back to [Chapter("Start", 0)]
"""

from __future__ import annotations

import re
from typing import List

from snapread.ingest.base import Chapter

_CHAPTER_LINE_RE = re.compile(r"^(chapter|part|section)\s+\d+", re.IGNORECASE)
_MD_HEADING_RE = re.compile(r"^(#{1,3})\s+(.+)")

# Order matters: fenced blocks and rules must go before emphasis and lists.
_MARKDOWN_RULES = [
    (re.compile(r"```[\s\S]*?```"), ""),
    (re.compile(r"^#{1,6}\s+", re.MULTILINE), ""),
    (re.compile(r"^[-*_]{3,}\s*$", re.MULTILINE), ""),
    (re.compile(r"(\*{1,3}|_{1,3})(.*?)\1"), r"\2"),
    (re.compile(r"~~(.*?)~~"), r"\1"),
    (re.compile(r"!\[([^\]]*)\]\([^)]*\)"), r"\1"),
    (re.compile(r"\[([^\]]*)\]\([^)]*\)"), r"\1"),
    (re.compile(r"`([^`]+)`"), r"\1"),
    (re.compile(r"^\s*>\s+", re.MULTILINE), ""),
    (re.compile(r"^\s*[-*+]\s+", re.MULTILINE), ""),
    (re.compile(r"^\s*\d+\.\s+", re.MULTILINE), ""),
    (re.compile(r"\n{3,}"), "\n\n"),
]

MAX_TITLE_LENGTH = 40


def tokenize(text: str) -> List[str]:
    """Split text into whitespace-free tokens, punctuation attached."""
    return text.replace("\r\n", "\n").split()


def strip_markdown(md: str) -> str:
    """Remove Markdown syntax, keeping the readable text."""
    text = md
    for pattern, replacement in _MARKDOWN_RULES:
        text = pattern.sub(replacement, text)
    return text.strip()


def _is_chapter_line(line: str) -> bool:
    if _CHAPTER_LINE_RE.match(line):
        return True
    return (
        3 < len(line) < 60
        and line == line.upper()
        and re.search(r"[A-Z]", line) is not None
    )


def _shorten(title: str) -> str:
    if len(title) > MAX_TITLE_LENGTH:
        return title[:MAX_TITLE_LENGTH] + "…"
    return title


def detect_chapters(text: str) -> List[Chapter]:
    """Find chapter-like lines in plain text."""
    chapters: List[Chapter] = []
    word_index = 0
    for line in text.replace("\r\n", "\n").split("\n"):
        trimmed = line.strip()
        if _is_chapter_line(trimmed):
            chapters.append(Chapter(title=_shorten(trimmed), start_word_index=word_index))
        word_index += len(trimmed.split())

    if not chapters:
        chapters.append(Chapter(title="Start", start_word_index=0))
    return chapters


def detect_markdown_headings(md: str) -> List[Chapter]:
    """Find level 1–3 headings, indexed against the stripped text's words."""
    chapters: List[Chapter] = []
    word_index = 0
    in_code_block = False
    for line in md.replace("\r\n", "\n").split("\n"):
        if line.strip().startswith("```"):
            in_code_block = not in_code_block
            continue
        if in_code_block:
            continue
        match = _MD_HEADING_RE.match(line)
        if match:
            chapters.append(Chapter(
                title=match.group(2).strip(),
                start_word_index=word_index,
                level=len(match.group(1)),
            ))
        word_index += len(strip_markdown(line).split())

    if not chapters:
        chapters.append(Chapter(title="Start", start_word_index=0))
    return chapters


def fill_word_counts(chapters: List[Chapter], total_words: int) -> List[Chapter]:
    """Set each chapter's word_count from the next chapter's start."""
    for i, chapter in enumerate(chapters):
        end = chapters[i + 1].start_word_index if i + 1 < len(chapters) else total_words
        chapter.word_count = max(0, end - chapter.start_word_index)
    return chapters
