"""Persistent reading library: documents, bookmarks and settings."""

from snapread.library.store import Bookmark, Library, LibraryCorruptError, LibraryFile

__all__ = ["Bookmark", "Library", "LibraryCorruptError", "LibraryFile"]
