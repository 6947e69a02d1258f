"""FastAPI application exposing the reading library and playback planner.

WHY: A browser or mobile front end needs the same library the CLI uses:
upload documents, fetch their words page by page, compute display
schedules, and keep bookmarks and reader settings in sync. FastAPI
provides request validation and OpenAPI docs for free.

HOW: A single FastAPI app groups endpoints by tag (documents, bookmarks,
settings, formats, health). The Library is injected through the
``get_library`` dependency so tests can point it at a temporary
directory via ``app.dependency_overrides``. Parsing runs in the
threadpool because ebooklib and pypdf are synchronous.

RULES:
- All endpoints have OpenAPI descriptions on every parameter and response
- Error responses use a consistent ErrorResponse schema
- 400 unsupported or empty upload, 404 unknown document, 422 unreadable
  document or invalid setting
- Uploaded filenames are reduced to their basename
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict
from pathlib import Path
from typing import Annotated, List, Optional, Union

from fastapi import Depends, FastAPI, File, HTTPException, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from snapread import __version__
from snapread.config import (
    API_HOST,
    API_PORT,
    LOG_LEVEL,
    SUPPORTED_FORMATS,
    clamp_chunk_size,
    clamp_wpm,
    load_data_dir,
)
from snapread.core.plan import plan_playback
from snapread.ingest import PARSERS, format_for_filename, parse_document
from snapread.ingest.base import DocumentParseError, ParsedDocument, UnsupportedFormatError
from snapread.library.store import Library, LibraryFile
from snapread.server.models import (
    BookmarkResponse,
    BookmarkUpdate,
    ChapterInfo,
    DocumentResponse,
    ErrorResponse,
    FormatInfo,
    HealthResponse,
    PlannedStepModel,
    PlanResponse,
    SettingsResponse,
    SettingsUpdate,
    WordsResponse,
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 5000
"""Largest ``limit`` accepted by the words and plan endpoints."""

# ---------------------------------------------------------------------------
# App and library setup
# ---------------------------------------------------------------------------

_library: Optional[Library] = None
_library_lock = threading.Lock()


def configure_library(data_dir: Union[str, Path, None] = None) -> Library:
    """Create the process-wide Library at ``data_dir`` (default DATA_DIR)."""
    global _library
    path = Path(data_dir).expanduser() if data_dir is not None else load_data_dir()
    with _library_lock:
        _library = Library(path)
    logger.info("Library at %s", path)
    return _library


def get_library() -> Library:
    """FastAPI dependency returning the process-wide Library."""
    with _library_lock:
        library = _library
    return library if library is not None else configure_library()


LibraryDep = Annotated[Library, Depends(get_library)]


app = FastAPI(
    title="SnapRead API",
    description=(
        "REST API for an RSVP speed-reading library. Upload EPUB, PDF, "
        "Markdown or plain-text documents, fetch their words and chapter "
        "markers, compute display schedules, and sync bookmarks and "
        "reader settings."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _document_response(library: Library, entry: LibraryFile) -> DocumentResponse:
    bookmark = library.get_bookmark(entry.id)
    return DocumentResponse(
        id=entry.id,
        name=entry.name,
        format=entry.format,
        title=entry.title,
        author=entry.author,
        added_at=entry.added_at,
        word_count=entry.word_count,
        file_size=entry.file_size,
        progress=bookmark.progress if bookmark is not None else 0,
    )


def _require_file(library: Library, document_id: str) -> LibraryFile:
    entry = library.get_file(document_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Document not found: {}".format(document_id))
    return entry


async def _load_document(library: Library, document_id: str) -> ParsedDocument:
    """Parse a stored document, mapping failures to HTTP errors."""
    entry = _require_file(library, document_id)
    data = library.read_file_bytes(document_id)
    if data is None:
        raise HTTPException(
            status_code=404,
            detail="Stored file for document {} is missing".format(document_id),
        )
    try:
        return await run_in_threadpool(parse_document, data, entry.name)
    except DocumentParseError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


def _chapter_infos(document: ParsedDocument) -> List[ChapterInfo]:
    return [
        ChapterInfo(
            title=c.title,
            start_word_index=c.start_word_index,
            word_count=c.word_count,
            level=c.level,
        )
        for c in document.chapters
    ]


# ---------------------------------------------------------------------------
# Endpoints: Documents
# ---------------------------------------------------------------------------


@app.post(
    "/documents",
    response_model=DocumentResponse,
    status_code=201,
    tags=["documents"],
    summary="Add a document to the library",
    description=(
        "Upload an EPUB, PDF, Markdown or plain-text file. The file is "
        "parsed immediately; the stored document's metadata is returned."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Unsupported or empty file"},
        422: {"model": ErrorResponse, "description": "File could not be parsed"},
    },
)
async def create_document(
    library: LibraryDep,
    file: Annotated[
        UploadFile,
        File(description="Document to add (.epub, .pdf, .md, .markdown, .txt, .text)."),
    ],
) -> DocumentResponse:
    # Sanitize filename to prevent path traversal
    filename = Path(file.filename or "upload").name
    try:
        format_for_filename(filename)
    except UnsupportedFormatError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="File is empty: {}".format(filename))

    try:
        document = await run_in_threadpool(parse_document, content, filename)
    except DocumentParseError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    entry = library.add_file(filename, content, document)
    return _document_response(library, entry)


@app.get(
    "/documents",
    response_model=List[DocumentResponse],
    tags=["documents"],
    summary="List library documents",
    description="Returns all stored documents, most recently added first.",
)
async def list_documents(library: LibraryDep) -> List[DocumentResponse]:
    return [_document_response(library, entry) for entry in library.list_files()]


@app.get(
    "/documents/{document_id}",
    response_model=DocumentResponse,
    tags=["documents"],
    summary="Get document metadata",
    responses={404: {"model": ErrorResponse, "description": "Document not found"}},
)
async def get_document(document_id: str, library: LibraryDep) -> DocumentResponse:
    return _document_response(library, _require_file(library, document_id))


@app.delete(
    "/documents/{document_id}",
    status_code=204,
    tags=["documents"],
    summary="Delete a document",
    description="Delete a document, its stored file and its bookmark.",
    responses={404: {"model": ErrorResponse, "description": "Document not found"}},
)
async def delete_document(document_id: str, library: LibraryDep) -> Response:
    if not library.delete_file(document_id):
        raise HTTPException(status_code=404, detail="Document not found: {}".format(document_id))
    return Response(status_code=204)


@app.get(
    "/documents/{document_id}/words",
    response_model=WordsResponse,
    tags=["documents"],
    summary="Get a page of a document's words",
    description=(
        "Returns up to ``limit`` words starting at ``offset`` together with "
        "the document's chapter markers."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Document not found"},
        422: {"model": ErrorResponse, "description": "Stored file could not be parsed"},
    },
)
async def get_document_words(
    document_id: str,
    library: LibraryDep,
    offset: Annotated[int, Query(ge=0, description="Index of the first word.")] = 0,
    limit: Annotated[
        int, Query(ge=1, le=MAX_PAGE_SIZE, description="Maximum number of words.")
    ] = 1000,
) -> WordsResponse:
    document = await _load_document(library, document_id)
    return WordsResponse(
        document_id=document_id,
        offset=offset,
        total_words=document.word_count,
        words=document.words[offset:offset + limit],
        chapters=_chapter_infos(document),
    )


@app.get(
    "/documents/{document_id}/plan",
    response_model=PlanResponse,
    tags=["documents"],
    summary="Compute a display schedule",
    description=(
        "Runs the playback engine on a virtual clock from ``start`` and "
        "returns when each chunk appears and how long it stays. wpm and "
        "chunk_size default to the saved settings and are clamped."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Document not found"},
        422: {"model": ErrorResponse, "description": "Stored file could not be parsed"},
    },
)
async def get_document_plan(
    document_id: str,
    library: LibraryDep,
    start: Annotated[int, Query(ge=0, description="Word index to start from.")] = 0,
    limit: Annotated[
        int, Query(ge=1, le=MAX_PAGE_SIZE, description="Maximum number of chunks.")
    ] = 100,
    wpm: Annotated[Optional[int], Query(description="Words per minute.")] = None,
    chunk_size: Annotated[Optional[int], Query(description="Words per chunk.")] = None,
) -> PlanResponse:
    document = await _load_document(library, document_id)
    settings = library.get_settings()
    wpm = clamp_wpm(wpm if wpm is not None else settings["wpm"])
    chunk_size = clamp_chunk_size(chunk_size if chunk_size is not None else settings["chunk_size"])

    steps = await run_in_threadpool(
        plan_playback, document.words, wpm, chunk_size, start, limit
    )
    return PlanResponse(
        document_id=document_id,
        wpm=wpm,
        chunk_size=chunk_size,
        total_words=document.word_count,
        steps=[PlannedStepModel(**step.to_dict()) for step in steps],
    )


# ---------------------------------------------------------------------------
# Endpoints: Bookmarks
# ---------------------------------------------------------------------------


@app.get(
    "/documents/{document_id}/bookmark",
    response_model=BookmarkResponse,
    tags=["bookmarks"],
    summary="Get the saved reading position",
    responses={404: {"model": ErrorResponse, "description": "Document or bookmark not found"}},
)
async def get_bookmark(document_id: str, library: LibraryDep) -> BookmarkResponse:
    _require_file(library, document_id)
    bookmark = library.get_bookmark(document_id)
    if bookmark is None:
        raise HTTPException(
            status_code=404, detail="No bookmark for document {}".format(document_id)
        )
    return BookmarkResponse(**asdict(bookmark))


@app.put(
    "/documents/{document_id}/bookmark",
    response_model=BookmarkResponse,
    tags=["bookmarks"],
    summary="Save the reading position",
    description="word_index is clamped to the document's word count.",
    responses={404: {"model": ErrorResponse, "description": "Document not found"}},
)
async def put_bookmark(
    document_id: str,
    update: BookmarkUpdate,
    library: LibraryDep,
) -> BookmarkResponse:
    entry = _require_file(library, document_id)
    bookmark = library.save_bookmark(
        document_id,
        word_index=update.word_index,
        total_words=entry.word_count,
        chapter=update.chapter,
    )
    return BookmarkResponse(**asdict(bookmark))


# ---------------------------------------------------------------------------
# Endpoints: Settings
# ---------------------------------------------------------------------------


@app.get(
    "/settings",
    response_model=SettingsResponse,
    tags=["settings"],
    summary="Get reader settings",
)
async def get_settings(library: LibraryDep) -> SettingsResponse:
    return SettingsResponse(**library.get_settings())


@app.put(
    "/settings",
    response_model=SettingsResponse,
    tags=["settings"],
    summary="Update reader settings",
    description="Partial update: only the fields present in the body change.",
    responses={422: {"model": ErrorResponse, "description": "Invalid setting value"}},
)
async def put_settings(update: SettingsUpdate, library: LibraryDep) -> SettingsResponse:
    values = update.model_dump(exclude_none=True, mode="json")
    try:
        settings = library.save_settings(values)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return SettingsResponse(**settings)


# ---------------------------------------------------------------------------
# Endpoints: Formats and health
# ---------------------------------------------------------------------------


@app.get(
    "/formats",
    response_model=List[FormatInfo],
    tags=["formats"],
    summary="List supported document formats",
)
async def list_formats() -> List[FormatInfo]:
    result = []
    for key, parser_cls in sorted(PARSERS.items()):
        extensions = sorted(ext for ext, fmt in SUPPORTED_FORMATS.items() if fmt == key)
        result.append(FormatInfo(key=key, name=parser_cls().name, extensions=extensions))
    return result


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Liveness check for load balancers and orchestrators.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run_api(
    host: str = API_HOST,
    port: int = API_PORT,
    data_dir: Union[str, Path, None] = None,
) -> None:
    """Entry point for the snapread-api console script and ``snapread serve``."""
    import uvicorn

    logging.basicConfig(level=LOG_LEVEL)
    configure_library(data_dir)
    uvicorn.run(app, host=host, port=port)
