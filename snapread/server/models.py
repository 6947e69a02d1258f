"""Pydantic request/response models for the HTTP API.

WHY: The FastAPI endpoints need typed schemas for request validation,
response serialization, and automatic OpenAPI documentation. A browser
or mobile front end renders words itself, so the shapes here are the
whole contract between the library/engine and any remote reader.

HOW: One model per resource (document, words page, playback plan,
bookmark, settings). Update models make every field optional so PUT
requests can send only what changed. All fields carry Field
descriptions for the /docs UI.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- FontSize values match config.FONT_SIZES exactly
- Range limits mirror config (wpm 50-1500, chunk_size 1-3)
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from snapread.config import MAX_CHUNK_SIZE, MAX_WPM, MIN_CHUNK_SIZE, MIN_WPM


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class FontSize(str, Enum):
    """Reader font sizes; values match config.FONT_SIZES."""

    small = "small"
    medium = "medium"
    large = "large"
    xl = "xl"


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class ChapterInfo(BaseModel):
    """A chapter marker inside a document's word sequence."""

    title: str = Field(description="Chapter title.")
    start_word_index: int = Field(description="Index of the chapter's first word.")
    word_count: Optional[int] = Field(default=None, description="Words in the chapter.")
    level: Optional[int] = Field(
        default=None,
        description="Heading level (1-3) for Markdown headings; null otherwise.",
    )


class DocumentResponse(BaseModel):
    """Metadata for one stored document.

    RULES:
    - id is the library's uuid4 hex identifier
    - progress is the bookmark's percentage (0 when never opened)
    """

    id: str = Field(description="Unique document identifier.")
    name: str = Field(description="Original uploaded filename.")
    format: str = Field(description="Format key: epub, pdf, txt or md.")
    title: str = Field(description="Document title from metadata or filename.")
    author: str = Field(default="", description="Author from metadata, if any.")
    added_at: float = Field(description="When the document was added (Unix epoch seconds).")
    word_count: int = Field(description="Number of playable words.")
    file_size: int = Field(description="Stored file size in bytes.")
    progress: int = Field(default=0, description="Reading progress in percent.")

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "id": "550e8400e29b41d4a716446655440000",
                "name": "moby-dick.epub",
                "format": "epub",
                "title": "Moby Dick",
                "author": "Herman Melville",
                "added_at": 1739959200.0,
                "word_count": 215136,
                "file_size": 812345,
                "progress": 12,
            }
        ]
    }}


class WordsResponse(BaseModel):
    """A page of a document's word sequence plus its chapter markers."""

    document_id: str = Field(description="Document these words belong to.")
    offset: int = Field(description="Index of the first word in this page.")
    total_words: int = Field(description="Total words in the document.")
    words: List[str] = Field(description="Words from offset, at most limit of them.")
    chapters: List[ChapterInfo] = Field(description="All chapter markers in the document.")


class PlannedStepModel(BaseModel):
    """One chunk of the display schedule."""

    index: int = Field(description="Word index of the chunk's first word.")
    word: str = Field(description="Chunk text (one or more words joined by spaces).")
    before: str = Field(description="Characters before the ORP letter.")
    orp_char: str = Field(description="The highlighted ORP letter.")
    after: str = Field(description="Characters after the ORP letter.")
    orp_index: int = Field(description="Position of the ORP letter in the cleaned chunk.")
    offset_ms: float = Field(description="When the chunk appears, relative to the first chunk.")
    delay_ms: int = Field(description="How long the chunk stays on screen.")


class PlanResponse(BaseModel):
    """Display schedule for part of a document."""

    document_id: str = Field(description="Document the plan was computed for.")
    wpm: int = Field(description="Words per minute used (after clamping).")
    chunk_size: int = Field(description="Words per chunk used (after clamping).")
    total_words: int = Field(description="Total words in the document.")
    steps: List[PlannedStepModel] = Field(description="Chunks in display order.")


# ---------------------------------------------------------------------------
# Bookmarks
# ---------------------------------------------------------------------------


class BookmarkResponse(BaseModel):
    """Saved reading position for a document."""

    file_id: str = Field(description="Document identifier.")
    word_index: int = Field(description="Index of the next word to show.")
    total_words: int = Field(description="Document length when the bookmark was saved.")
    chapter: int = Field(description="0-based chapter containing word_index.")
    last_read: float = Field(description="When the bookmark was saved (Unix epoch seconds).")
    progress: int = Field(description="Reading progress in percent.")


class BookmarkUpdate(BaseModel):
    """New reading position; word_index is clamped to the document length."""

    word_index: int = Field(ge=0, description="Index of the next word to show.")
    chapter: int = Field(default=0, ge=0, description="0-based chapter number.")


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class SettingsResponse(BaseModel):
    """Reader preferences (saved values merged over defaults)."""

    wpm: int = Field(description="Words per minute.")
    orp_color: str = Field(description="Hex colour of the ORP letter, e.g. '#ff4444'.")
    font_size: FontSize = Field(description="Reader font size.")
    chunk_size: int = Field(description="Words shown per step.")
    theme: str = Field(description="Reader colour theme name.")


class SettingsUpdate(BaseModel):
    """Partial settings update; omitted fields keep their saved values.

    Out-of-range wpm or chunk_size values are rejected with 422 here
    rather than silently clamped, so clients learn about the bounds.
    """

    wpm: Optional[int] = Field(
        default=None, ge=MIN_WPM, le=MAX_WPM, description="Words per minute."
    )
    orp_color: Optional[str] = Field(
        default=None,
        pattern=r"^#[0-9a-fA-F]{6}$",
        description="Hex colour of the ORP letter.",
    )
    font_size: Optional[FontSize] = Field(default=None, description="Reader font size.")
    chunk_size: Optional[int] = Field(
        default=None, ge=MIN_CHUNK_SIZE, le=MAX_CHUNK_SIZE, description="Words per step."
    )
    theme: Optional[str] = Field(default=None, min_length=1, description="Theme name.")


# ---------------------------------------------------------------------------
# Misc
# ---------------------------------------------------------------------------


class FormatInfo(BaseModel):
    """Description of a supported document format."""

    key: str = Field(description="Format identifier.")
    name: str = Field(description="Human-readable format name.")
    extensions: List[str] = Field(description="File extensions handled by this format.")


class ErrorResponse(BaseModel):
    """Standard error response body.

    RULES:
    - detail is always a human-readable error message
    """

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
