"""JSON-file library: stored documents, bookmarks, and reader settings.

WHY: A reader has to reopen a book where it was left, with the same
speed and chunk size. The playback engine deliberately persists nothing,
so documents, reading positions and preferences are kept here.

HOW: Three components work together:
  LibraryFile — dataclass for one stored document's metadata
  Bookmark    — dataclass for the reading position in one document
  Library     — thread-safe store backed by ``library.json`` plus a
                ``files/`` directory holding each document's original bytes

The index is loaded once and validated with jsonschema, then rewritten
atomically (temp file + replace) after every mutation.

RULES:
- All public methods that touch state acquire self._lock
- File ids are uuid4 hex strings generated at add time
- get_file()/get_bookmark() return None for unknown ids (no exceptions)
- delete_file() also removes the bookmark and the stored bytes
- Bookmark progress = round(100 * word_index / total_words), 0 when empty
- Settings are DEFAULT_SETTINGS overlaid with saved values; unknown keys
  and invalid values raise ValueError, wpm/chunk_size are clamped
- A corrupt index raises LibraryCorruptError instead of being overwritten
"""

from __future__ import annotations

import json
import logging
import os
import re
import threading
import time
import uuid
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import jsonschema

from snapread.config import (
    DEFAULT_SETTINGS,
    FONT_SIZES,
    clamp_chunk_size,
    clamp_wpm,
)
from snapread.ingest.base import ParsedDocument

logger = logging.getLogger(__name__)

INDEX_FILENAME = "library.json"
FILES_DIRNAME = "files"

_HEX_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")

LIBRARY_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["version", "files", "bookmarks", "settings"],
    "properties": {
        "version": {"type": "integer", "const": 1},
        "files": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "required": ["id", "name", "format", "title", "added_at", "word_count"],
                "properties": {
                    "id": {"type": "string"},
                    "name": {"type": "string"},
                    "format": {"type": "string"},
                    "title": {"type": "string"},
                    "author": {"type": "string"},
                    "added_at": {"type": "number"},
                    "word_count": {"type": "integer", "minimum": 0},
                    "file_size": {"type": "integer", "minimum": 0},
                },
            },
        },
        "bookmarks": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "required": ["file_id", "word_index", "total_words"],
                "properties": {
                    "file_id": {"type": "string"},
                    "word_index": {"type": "integer", "minimum": 0},
                    "total_words": {"type": "integer", "minimum": 0},
                    "chapter": {"type": "integer", "minimum": 0},
                    "last_read": {"type": "number"},
                    "progress": {"type": "integer", "minimum": 0, "maximum": 100},
                },
            },
        },
        "settings": {"type": "object"},
    },
}


class LibraryCorruptError(ValueError):
    """library.json exists but is not valid JSON or fails schema validation."""


@dataclass
class LibraryFile:
    """Metadata for one stored document.

    RULES:
    - id: uuid4 hex, also the stored file's basename
    - name: original filename (path components stripped)
    - format: parser key ("epub", "pdf", "txt", "md")
    - added_at: epoch seconds
    """

    id: str
    name: str
    format: str
    title: str
    added_at: float
    word_count: int
    author: str = ""
    file_size: int = 0


@dataclass
class Bookmark:
    """Reading position in one document."""

    file_id: str
    word_index: int
    total_words: int
    chapter: int = 0
    last_read: float = 0.0
    progress: int = 0


def _empty_index() -> Dict[str, Any]:
    return {"version": 1, "files": {}, "bookmarks": {}, "settings": {}}


def _validate_setting(key: str, value: Any) -> Any:
    """Return the normalized value for a setting, or raise ValueError."""
    if key not in DEFAULT_SETTINGS:
        raise ValueError(
            "Unknown setting '{}'. Available: {}".format(key, ", ".join(sorted(DEFAULT_SETTINGS)))
        )
    if key in ("wpm", "chunk_size"):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("Setting '{}' must be a number".format(key))
        return clamp_wpm(value) if key == "wpm" else clamp_chunk_size(value)
    if key == "font_size":
        if value not in FONT_SIZES:
            raise ValueError("font_size must be one of: {}".format(", ".join(FONT_SIZES)))
        return value
    if key == "orp_color":
        if not isinstance(value, str) or not _HEX_COLOR_RE.match(value):
            raise ValueError("orp_color must be a hex colour like '#ff4444'")
        return value.lower()
    if not isinstance(value, str) or not value:
        raise ValueError("Setting '{}' must be a non-empty string".format(key))
    return value


class Library:
    """Persistent store for documents, bookmarks and settings.

    Args:
        data_dir: Directory holding library.json and files/. Created if
            missing.
    """

    def __init__(self, data_dir: Union[str, Path]) -> None:
        self.data_dir = Path(data_dir)
        self.files_dir = self.data_dir / FILES_DIRNAME
        self.files_dir.mkdir(parents=True, exist_ok=True)
        self._index_path = self.data_dir / INDEX_FILENAME
        self._lock = threading.Lock()
        self._index = self._load_index()

    # -- files ---------------------------------------------------------------

    def add_file(self, filename: str, data: bytes, document: ParsedDocument) -> LibraryFile:
        """Store a document's bytes and metadata.

        Returns:
            The new LibraryFile.
        """
        name = Path(filename).name
        entry = LibraryFile(
            id=uuid.uuid4().hex,
            name=name,
            format=document.format,
            title=document.title or name,
            author=document.author or "",
            added_at=time.time(),
            word_count=document.word_count,
            file_size=len(data),
        )

        with self._lock:
            self._blob_path(entry).write_bytes(data)
            self._index["files"][entry.id] = asdict(entry)
            self._save_index()

        logger.info("Added %s (%d words) as %s", name, entry.word_count, entry.id)
        return entry

    def get_file(self, file_id: str) -> Optional[LibraryFile]:
        with self._lock:
            raw = self._index["files"].get(file_id)
        return LibraryFile(**raw) if raw is not None else None

    def list_files(self) -> List[LibraryFile]:
        """All stored documents, most recently added first."""
        with self._lock:
            entries = [LibraryFile(**raw) for raw in self._index["files"].values()]
        return sorted(entries, key=lambda f: f.added_at, reverse=True)

    def read_file_bytes(self, file_id: str) -> Optional[bytes]:
        entry = self.get_file(file_id)
        if entry is None:
            return None
        path = self._blob_path(entry)
        if not path.exists():
            return None
        return path.read_bytes()

    def file_path(self, file_id: str) -> Optional[Path]:
        """Path of the stored bytes (its name keeps the original extension)."""
        entry = self.get_file(file_id)
        return self._blob_path(entry) if entry is not None else None

    def delete_file(self, file_id: str) -> bool:
        """Delete a document, its bookmark and its stored bytes.

        Returns:
            True if the document existed.
        """
        with self._lock:
            raw = self._index["files"].pop(file_id, None)
            if raw is None:
                return False
            self._index["bookmarks"].pop(file_id, None)
            self._save_index()

        blob = self._blob_path(LibraryFile(**raw))
        try:
            blob.unlink()
        except FileNotFoundError:
            pass
        except OSError:
            logger.warning("Failed to remove stored file: %s", blob)
        logger.info("Deleted %s", file_id)
        return True

    # -- bookmarks ---------------------------------------------------------------

    def save_bookmark(
        self,
        file_id: str,
        word_index: int,
        total_words: int,
        chapter: int = 0,
    ) -> Bookmark:
        """Create or replace the bookmark for ``file_id``.

        Raises:
            KeyError: ``file_id`` is not in the library.
        """
        total_words = max(0, int(total_words))
        word_index = max(0, min(int(word_index), total_words))
        progress = int(round(word_index / total_words * 100)) if total_words > 0 else 0
        bookmark = Bookmark(
            file_id=file_id,
            word_index=word_index,
            total_words=total_words,
            chapter=max(0, int(chapter)),
            last_read=time.time(),
            progress=progress,
        )

        with self._lock:
            if file_id not in self._index["files"]:
                raise KeyError("Unknown file id: {}".format(file_id))
            self._index["bookmarks"][file_id] = asdict(bookmark)
            self._save_index()

        logger.debug("Bookmark %s at %d/%d", file_id, word_index, total_words)
        return bookmark

    def get_bookmark(self, file_id: str) -> Optional[Bookmark]:
        with self._lock:
            raw = self._index["bookmarks"].get(file_id)
        return Bookmark(**raw) if raw is not None else None

    def delete_bookmark(self, file_id: str) -> bool:
        with self._lock:
            removed = self._index["bookmarks"].pop(file_id, None) is not None
            if removed:
                self._save_index()
        return removed

    def list_bookmarks(self) -> List[Bookmark]:
        with self._lock:
            return [Bookmark(**raw) for raw in self._index["bookmarks"].values()]

    # -- settings ------------------------------------------------------------------

    def get_settings(self) -> Dict[str, Any]:
        with self._lock:
            saved = dict(self._index["settings"])
        merged = dict(DEFAULT_SETTINGS)
        merged.update({k: v for k, v in saved.items() if k in DEFAULT_SETTINGS})
        return merged

    def get_setting(self, key: str) -> Any:
        if key not in DEFAULT_SETTINGS:
            raise ValueError("Unknown setting '{}'".format(key))
        return self.get_settings()[key]

    def set_setting(self, key: str, value: Any) -> Any:
        """Validate and save one setting; returns the stored value."""
        return self.save_settings({key: value})[key]

    def save_settings(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        """Validate and save several settings at once.

        Nothing is saved if any value is invalid.

        Returns:
            The full merged settings after saving.
        """
        normalized = {key: _validate_setting(key, value) for key, value in values.items()}
        with self._lock:
            self._index["settings"].update(normalized)
            self._save_index()
        return self.get_settings()

    # -- internals -----------------------------------------------------------------

    def _blob_path(self, entry: LibraryFile) -> Path:
        return self.files_dir / (entry.id + Path(entry.name).suffix.lower())

    def _load_index(self) -> Dict[str, Any]:
        if not self._index_path.exists():
            return _empty_index()
        try:
            with open(self._index_path, encoding="utf-8") as f:
                index = json.load(f)
            jsonschema.validate(index, LIBRARY_SCHEMA)
        except (json.JSONDecodeError, jsonschema.ValidationError) as exc:
            raise LibraryCorruptError(
                "Library index {} is corrupt: {}".format(self._index_path, exc)
            ) from exc
        return index

    def _save_index(self) -> None:
        """Write the index atomically. Caller holds self._lock."""
        tmp_path = self._index_path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._index, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self._index_path)
