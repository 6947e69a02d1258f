"""Command-line interface for SnapRead.

WHY: The quickest way to speed-read a file is from the terminal: point
the reader at a document and watch it play. The same entry point
manages the library (add, list, remove), previews the timing schedule,
and starts the HTTP API.

HOW: argparse subcommands. ``read`` parses a file (or opens a library
document through a ReadingSession), subscribes a TerminalRenderer to the
engine's ``word`` and ``progress`` events, and runs playback on an
asyncio event loop via ``asyncio.run()``. Ctrl-C pauses, which saves the
bookmark for library documents. Status messages go to stderr; rendered
words and listings go to stdout.

RULES:
- ``read`` accepts a path to a supported file or a library document id
- --wpm / --chunk-size override saved settings for this run only
- Unsupported or unreadable files exit with status 1 and a message
- Ctrl-C during playback exits with status 130 after pausing
- The ORP letter is drawn at a fixed column so the eye never moves
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from snapread import __version__
from snapread.config import (
    API_HOST,
    API_PORT,
    DATA_DIR,
    DEFAULT_SETTINGS,
    LOG_LEVEL,
    SUPPORTED_FORMATS,
)
from snapread.core.engine import RSVPEngine
from snapread.core.events import EventKind, WordEvent
from snapread.core.plan import plan_playback
from snapread.core.scheduler import AsyncioScheduler
from snapread.core.timing import Progress
from snapread.ingest import parse_document, parse_path
from snapread.ingest.base import DocumentParseError, UnsupportedFormatError
from snapread.library.store import Library
from snapread.session import ReadingSession

ORP_COLUMN = 20
"""Terminal column (0-based) where the ORP letter is drawn."""


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> None:
    print("Error: {}".format(msg), file=sys.stderr)
    sys.exit(1)


def _hex_to_rgb(color: str) -> tuple:
    color = color.lstrip("#")
    return tuple(int(color[i:i + 2], 16) for i in (0, 2, 4))


class TerminalRenderer:
    """Draws word events on one terminal line with the ORP letter highlighted.

    On a TTY the line is redrawn in place; otherwise each chunk is
    written on its own line so output can be piped.
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        color: bool = True,
        orp_color: str = str(DEFAULT_SETTINGS["orp_color"]),
    ) -> None:
        self.stream = stream or sys.stdout
        self.color = color
        self._inline = bool(getattr(self.stream, "isatty", lambda: False)())
        r, g, b = _hex_to_rgb(orp_color)
        self._orp_start = "\x1b[1;38;2;{};{};{}m".format(r, g, b)
        self._orp_end = "\x1b[0m"
        self._line = ""
        self._suffix = ""

    def format_word(self, event: WordEvent) -> str:
        pad = " " * max(0, ORP_COLUMN - len(event.before))
        orp = event.orp_char
        if self.color and orp:
            orp = self._orp_start + orp + self._orp_end
        return pad + event.before + orp + event.after

    def on_word(self, event: WordEvent) -> None:
        self._line = self.format_word(event)
        if not self._inline:
            self.stream.write(self._line + "\n")
            self.stream.flush()

    def on_progress(self, progress: Progress) -> None:
        self._suffix = "   {:3.0f}%  {} left".format(progress.percent, progress.time_remaining)
        if self._inline:
            self.stream.write("\r\x1b[2K" + self._line + self._suffix)
            self.stream.flush()

    def finish(self) -> None:
        if self._inline:
            self.stream.write("\n")
            self.stream.flush()

    def attach(self, engine: RSVPEngine) -> None:
        engine.on(EventKind.WORD, self.on_word)
        engine.on(EventKind.PROGRESS, self.on_progress)


async def _play(engine: RSVPEngine) -> None:
    """Play until the engine ends or is stopped."""
    finished = asyncio.Event()
    engine.on(EventKind.END, lambda _event: finished.set())
    engine.on(EventKind.STOP, lambda _event: finished.set())
    engine.play()
    if not engine.is_playing:
        return
    await finished.wait()


def _open_library(args: argparse.Namespace) -> Library:
    return Library(Path(args.data_dir).expanduser())


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def cmd_read(args: argparse.Namespace) -> None:
    library = _open_library(args)
    settings = library.get_settings()
    engine = RSVPEngine(scheduler=AsyncioScheduler())
    renderer = TerminalRenderer(color=not args.no_color, orp_color=str(settings["orp_color"]))
    renderer.attach(engine)

    session: Optional[ReadingSession] = None
    source = Path(args.source)
    try:
        if source.is_file():
            document = parse_path(source)
            engine.set_speed(int(settings["wpm"]))
            engine.set_chunk_size(int(settings["chunk_size"]))
            engine.load(document.words, args.start or 0)
        else:
            session = ReadingSession(library, engine)
            document = session.open(args.source)
            if args.start is not None:
                engine.jump_to(args.start)
    except KeyError:
        _fail("No such file or library document: {}".format(args.source))
    except (UnsupportedFormatError, DocumentParseError) as exc:
        _fail(str(exc))

    if args.wpm is not None:
        engine.set_speed(args.wpm)
    if args.chunk_size is not None:
        engine.set_chunk_size(args.chunk_size)

    if engine.total_words == 0:
        _fail("No readable words in {}".format(args.source))

    _status("{}: {} words at {} wpm, starting at word {}".format(
        document.title, engine.total_words, engine.wpm, engine.current_index,
    ))

    try:
        asyncio.run(_play(engine))
    except KeyboardInterrupt:
        engine.pause()
        renderer.finish()
        _status("Paused at word {} of {}.".format(engine.current_index, engine.total_words))
        if session is not None:
            session.close()
        sys.exit(130)

    renderer.finish()
    if session is not None:
        session.close()
    _status("Finished reading!")


def cmd_add(args: argparse.Namespace) -> None:
    path = Path(args.file)
    if not path.is_file():
        _fail("File not found: {}".format(path))
    data = path.read_bytes()
    if not data:
        _fail("File is empty: {}".format(path))
    try:
        document = parse_document(data, path.name)
    except (UnsupportedFormatError, DocumentParseError) as exc:
        _fail(str(exc))
        return
    entry = _open_library(args).add_file(path.name, data, document)
    _status("Added '{}' ({} words, {} chapters)".format(
        entry.title, entry.word_count, len(document.chapters)
    ))
    print(entry.id)


def cmd_list(args: argparse.Namespace) -> None:
    library = _open_library(args)
    files = library.list_files()
    if not files:
        _status("Library is empty.")
        return
    for entry in files:
        bookmark = library.get_bookmark(entry.id)
        progress = bookmark.progress if bookmark is not None else 0
        print("{}  {:>3}%  {:>7} words  {}".format(entry.id, progress, entry.word_count, entry.title))


def cmd_remove(args: argparse.Namespace) -> None:
    if not _open_library(args).delete_file(args.id):
        _fail("No such library document: {}".format(args.id))
    _status("Removed {}".format(args.id))


def cmd_plan(args: argparse.Namespace) -> None:
    try:
        document = parse_path(args.file)
    except (UnsupportedFormatError, DocumentParseError, OSError) as exc:
        _fail(str(exc))
        return
    steps = plan_playback(
        document.words,
        wpm=args.wpm,
        chunk_size=args.chunk_size,
        start_index=args.start,
        limit=args.limit,
    )
    for step in steps:
        print("{:>10.0f}  {:>5}  {:>6}  {}".format(step.offset_ms, step.delay_ms, step.index, step.word))


def cmd_serve(args: argparse.Namespace) -> None:
    from snapread.server.app import run_api
    run_api(host=args.host, port=args.port, data_dir=args.data_dir)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    Separate from main() so tests can inspect it without running anything.
    """
    parser = argparse.ArgumentParser(
        prog="snapread",
        description="Speed-read text, Markdown, EPUB and PDF files one word at a time.",
    )
    parser.add_argument("--version", action="version", version="%(prog)s " + __version__)
    parser.add_argument(
        "--data-dir",
        default=DATA_DIR,
        help="Library directory (default: %(default)s).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    read = subparsers.add_parser("read", help="Play a file or library document in the terminal.")
    read.add_argument("source", help="Path to a {} file, or a library document id.".format(
        "/".join(sorted({ext.lstrip(".") for ext in SUPPORTED_FORMATS}))
    ))
    read.add_argument("--wpm", type=int, default=None, help="Words per minute (50-1500).")
    read.add_argument("--chunk-size", type=int, default=None, help="Words per step (1-3).")
    read.add_argument("--start", type=int, default=None, help="Word index to start from.")
    read.add_argument("--no-color", action="store_true", help="Do not colour the ORP letter.")
    read.set_defaults(func=cmd_read)

    add = subparsers.add_parser("add", help="Add a document to the library.")
    add.add_argument("file", help="Path to the document.")
    add.set_defaults(func=cmd_add)

    list_cmd = subparsers.add_parser("list", help="List library documents.")
    list_cmd.set_defaults(func=cmd_list)

    remove = subparsers.add_parser("remove", help="Remove a library document and its bookmark.")
    remove.add_argument("id", help="Library document id.")
    remove.set_defaults(func=cmd_remove)

    plan = subparsers.add_parser("plan", help="Print the display schedule without playing it.")
    plan.add_argument("file", help="Path to the document.")
    plan.add_argument("--wpm", type=int, default=int(DEFAULT_SETTINGS["wpm"]))
    plan.add_argument("--chunk-size", type=int, default=int(DEFAULT_SETTINGS["chunk_size"]))
    plan.add_argument("--start", type=int, default=0)
    plan.add_argument("--limit", type=int, default=None, help="Maximum number of steps.")
    plan.set_defaults(func=cmd_plan)

    serve = subparsers.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default=API_HOST)
    serve.add_argument("--port", type=int, default=API_PORT)
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m snapread`` and the ``snapread`` script.

    argv=None means use sys.argv; explicit argv is for testing.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args.func(args)


if __name__ == "__main__":
    main()
