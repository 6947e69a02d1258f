"""SnapRead — RSVP speed reading for text, Markdown, EPUB and PDF.

WHY: Rapid serial visual presentation shows one word (or a short chunk)
at a time at a fixed point, with the Optimal Recognition Point letter
highlighted, so the eye never has to move across a line.

HOW: Three layers, each independently testable: ingest (file bytes to a
word list with chapter markers), core (the playback engine with its
timing and ORP rules), and library (documents, bookmarks and settings
on disk). The CLI and the HTTP API sit on top.

RULES:
- The engine knows only words and positions; it never touches files
- Persistence lives in the library, driven by engine pause/end events
- Adding a document format = one new parser module, no engine changes
"""

__version__ = "0.1.0"
