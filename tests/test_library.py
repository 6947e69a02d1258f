"""Unit tests for the JSON-file library.

WHY: The library is the only state that survives a restart. A lost
bookmark, a silently overwritten index or an unvalidated setting is
what a returning reader notices.

HOW: Tests are organized by class, one per concern:
  - TestFiles: add/get/list/read/delete of stored documents
  - TestBookmarks: save/get/delete, clamping and progress
  - TestSettings: defaults, validation, partial saves
  - TestPersistence: reload from disk, corrupt index handling
  - TestThreadSafety: concurrent bookmark writes

RULES:
- Every test uses the tmp_path-backed ``library`` fixture
- Time-dependent ordering uses monkeypatch on time.time()
"""

from __future__ import annotations

import json
import threading

import pytest

from snapread.config import DEFAULT_SETTINGS
from snapread.ingest import parse_document
from snapread.library.store import Bookmark, Library, LibraryCorruptError


def _add_text(library, name, text="one two three four"):
    data = text.encode("utf-8")
    return library.add_file(name, data, parse_document(data, name))


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


class TestFiles:

    def test_add_file(self, library, stored_text, sample_text_bytes):
        assert len(stored_text.id) == 32
        assert stored_text.name == "orwell.txt"
        assert stored_text.format == "txt"
        assert stored_text.title == "orwell"
        assert stored_text.word_count == 28
        assert stored_text.file_size == len(sample_text_bytes)
        assert library.read_file_bytes(stored_text.id) == sample_text_bytes

    def test_stored_file_keeps_extension(self, library, stored_text):
        path = library.file_path(stored_text.id)
        assert path.name == stored_text.id + ".txt"
        assert path.parent == library.files_dir

    def test_filename_path_components_stripped(self, library):
        entry = _add_text(library, "../../etc/notes.txt")
        assert entry.name == "notes.txt"
        assert library.file_path(entry.id).parent == library.files_dir

    def test_get_unknown(self, library):
        assert library.get_file("missing") is None
        assert library.read_file_bytes("missing") is None
        assert library.file_path("missing") is None

    def test_list_newest_first(self, library, monkeypatch):
        added = {}
        for name, when in (("a.txt", 100.0), ("b.txt", 300.0), ("c.txt", 200.0)):
            monkeypatch.setattr("snapread.library.store.time.time", lambda when=when: when)
            added[name] = _add_text(library, name)
        a, b, c = added["a.txt"], added["b.txt"], added["c.txt"]
        assert [f.id for f in library.list_files()] == [b.id, c.id, a.id]

    def test_delete_removes_bytes_and_bookmark(self, library, stored_text):
        path = library.file_path(stored_text.id)
        library.save_bookmark(stored_text.id, 5, 28)

        assert library.delete_file(stored_text.id) is True
        assert library.get_file(stored_text.id) is None
        assert library.get_bookmark(stored_text.id) is None
        assert not path.exists()

    def test_delete_unknown(self, library):
        assert library.delete_file("missing") is False

    def test_delete_with_missing_bytes(self, library, stored_text):
        library.file_path(stored_text.id).unlink()
        assert library.delete_file(stored_text.id) is True


# ---------------------------------------------------------------------------
# Bookmarks
# ---------------------------------------------------------------------------


class TestBookmarks:

    def test_save_and_get(self, library, stored_text):
        saved = library.save_bookmark(stored_text.id, 7, 28, chapter=1)
        loaded = library.get_bookmark(stored_text.id)
        assert loaded == saved
        assert loaded.word_index == 7
        assert loaded.chapter == 1
        assert loaded.progress == 25

    def test_progress_rounds(self, library, stored_text):
        assert library.save_bookmark(stored_text.id, 1, 3).progress == 33
        assert library.save_bookmark(stored_text.id, 2, 3).progress == 67

    def test_empty_document_progress(self, library, stored_text):
        bookmark = library.save_bookmark(stored_text.id, 0, 0)
        assert bookmark.progress == 0

    def test_index_clamped(self, library, stored_text):
        assert library.save_bookmark(stored_text.id, 99, 28).word_index == 28
        assert library.save_bookmark(stored_text.id, -4, 28).word_index == 0

    def test_replaces_previous(self, library, stored_text):
        library.save_bookmark(stored_text.id, 1, 28)
        library.save_bookmark(stored_text.id, 14, 28)
        assert library.get_bookmark(stored_text.id).word_index == 14
        assert len(library.list_bookmarks()) == 1

    def test_unknown_file(self, library):
        with pytest.raises(KeyError):
            library.save_bookmark("missing", 1, 10)
        assert library.get_bookmark("missing") is None

    def test_delete(self, library, stored_text):
        library.save_bookmark(stored_text.id, 3, 28)
        assert library.delete_bookmark(stored_text.id) is True
        assert library.delete_bookmark(stored_text.id) is False
        assert library.get_bookmark(stored_text.id) is None


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class TestSettings:

    def test_defaults(self, library):
        assert library.get_settings() == DEFAULT_SETTINGS

    def test_set_and_get(self, library):
        assert library.set_setting("wpm", 450) == 450
        assert library.get_setting("wpm") == 450
        assert library.get_settings()["font_size"] == DEFAULT_SETTINGS["font_size"]

    @pytest.mark.parametrize("key, value, expected", [
        ("wpm", 10, 50),
        ("wpm", 9000, 1500),
        ("wpm", 333.9, 333),
        ("chunk_size", 0, 1),
        ("chunk_size", 5, 3),
    ])
    def test_numeric_values_clamped(self, library, key, value, expected):
        assert library.set_setting(key, value) == expected

    def test_colour_normalized(self, library):
        assert library.set_setting("orp_color", "#AABBCC") == "#aabbcc"

    @pytest.mark.parametrize("key, value", [
        ("wpm", "fast"),
        ("wpm", True),
        ("chunk_size", None),
        ("font_size", "huge"),
        ("orp_color", "red"),
        ("orp_color", "#12345"),
        ("theme", ""),
        ("volume", 11),
    ])
    def test_invalid_values_rejected(self, library, key, value):
        with pytest.raises(ValueError):
            library.set_setting(key, value)

    def test_unknown_key_on_get(self, library):
        with pytest.raises(ValueError, match="Unknown setting"):
            library.get_setting("volume")

    def test_save_settings_is_all_or_nothing(self, library):
        with pytest.raises(ValueError):
            library.save_settings({"wpm": 400, "font_size": "huge"})
        assert library.get_setting("wpm") == DEFAULT_SETTINGS["wpm"]

    def test_save_settings_returns_merged(self, library):
        settings = library.save_settings({"theme": "paper", "chunk_size": 2})
        assert settings["theme"] == "paper"
        assert settings["chunk_size"] == 2
        assert settings["orp_color"] == DEFAULT_SETTINGS["orp_color"]


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class TestPersistence:

    def test_reload(self, tmp_path):
        first = Library(tmp_path)
        entry = _add_text(first, "a.txt")
        first.save_bookmark(entry.id, 2, 4)
        first.set_setting("wpm", 600)

        second = Library(tmp_path)
        assert second.get_file(entry.id) == entry
        assert second.get_bookmark(entry.id).word_index == 2
        assert second.get_setting("wpm") == 600

    def test_index_is_json(self, tmp_path):
        library = Library(tmp_path)
        _add_text(library, "a.txt")
        index = json.loads((tmp_path / "library.json").read_text(encoding="utf-8"))
        assert index["version"] == 1
        assert len(index["files"]) == 1
        assert not (tmp_path / "library.json.tmp").exists()

    def test_invalid_json_is_corrupt(self, tmp_path):
        (tmp_path / "library.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(LibraryCorruptError):
            Library(tmp_path)

    def test_schema_violation_is_corrupt(self, tmp_path):
        (tmp_path / "library.json").write_text(
            json.dumps({"version": 1, "files": {"x": {"id": "x"}}, "bookmarks": {}, "settings": {}}),
            encoding="utf-8",
        )
        with pytest.raises(LibraryCorruptError):
            Library(tmp_path)

    def test_corrupt_index_not_overwritten(self, tmp_path):
        path = tmp_path / "library.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(LibraryCorruptError):
            Library(tmp_path)
        assert path.read_text(encoding="utf-8") == "[]"

    def test_unknown_saved_settings_ignored(self, tmp_path):
        (tmp_path / "library.json").write_text(
            json.dumps({"version": 1, "files": {}, "bookmarks": {}, "settings": {"legacy": 1}}),
            encoding="utf-8",
        )
        assert "legacy" not in Library(tmp_path).get_settings()


# ---------------------------------------------------------------------------
# Thread safety
# ---------------------------------------------------------------------------


class TestThreadSafety:

    def test_concurrent_bookmarks(self, library):
        entries = [_add_text(library, "doc{}.txt".format(i)) for i in range(8)]
        errors = []

        def worker(entry):
            try:
                for index in range(20):
                    library.save_bookmark(entry.id, index, 4)
            except Exception as exc:  # pragma: no cover
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(e,)) for e in entries]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        bookmarks = {b.file_id: b for b in library.list_bookmarks()}
        assert set(bookmarks) == {e.id for e in entries}
        assert all(isinstance(b, Bookmark) and b.word_index == 4 for b in bookmarks.values())
