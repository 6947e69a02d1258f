"""Configuration constants, reader defaults, and .env loading.

WHY: Speed limits, chunk sizes, supported document formats and reader
defaults are shared by the playback engine, the library, the CLI and
the HTTP API. Keeping them in one module of plain data makes them easy
to find and override.

HOW: python-dotenv loads the .env file on import. Constants are
module-level values with ``os.getenv`` overrides where a deployment
might reasonably change them. ``clamp_wpm()`` and ``clamp_chunk_size()``
are the single place the numeric bounds are enforced.

RULES:
- WPM is always clamped into [MIN_WPM, MAX_WPM] = [50, 1500]
- Chunk size is always clamped into [MIN_CHUNK_SIZE, MAX_CHUNK_SIZE] = [1, 3]
- Out-of-range values are corrected, never rejected
- SUPPORTED_FORMATS keys are lowercase extensions with the leading dot
- All defaults can be overridden via SNAPREAD_* environment variables
"""

from __future__ import annotations

import math
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Playback bounds
# ---------------------------------------------------------------------------

MIN_WPM = 50
MAX_WPM = 1500
MIN_CHUNK_SIZE = 1
MAX_CHUNK_SIZE = 3

SPEED_STEP = 25
"""WPM change applied by the speed up / slow down controls."""


def clamp_wpm(value: float) -> int:
    """Clamp a words-per-minute value into [MIN_WPM, MAX_WPM].

    The value is clamped before it is truncated toward zero, so infinite
    rates land on a bound. NaN becomes MIN_WPM.
    """
    if isinstance(value, float) and math.isnan(value):
        return MIN_WPM
    return int(max(MIN_WPM, min(MAX_WPM, value)))


def clamp_chunk_size(value: float) -> int:
    """Clamp a chunk size into [MIN_CHUNK_SIZE, MAX_CHUNK_SIZE]."""
    if isinstance(value, float) and math.isnan(value):
        return MIN_CHUNK_SIZE
    return int(max(MIN_CHUNK_SIZE, min(MAX_CHUNK_SIZE, value)))


DEFAULT_WPM = clamp_wpm(int(os.getenv("SNAPREAD_DEFAULT_WPM", "300")))
DEFAULT_CHUNK_SIZE = clamp_chunk_size(int(os.getenv("SNAPREAD_DEFAULT_CHUNK_SIZE", "1")))

# ---------------------------------------------------------------------------
# Supported document formats: extension → format key
# ---------------------------------------------------------------------------

SUPPORTED_FORMATS: dict[str, str] = {
    ".epub": "epub",
    ".pdf": "pdf",
    ".txt": "txt",
    ".text": "txt",
    ".md": "md",
    ".markdown": "md",
}

# ---------------------------------------------------------------------------
# Reader settings
# ---------------------------------------------------------------------------

FONT_SIZES = ("small", "medium", "large", "xl")

DEFAULT_SETTINGS: dict[str, object] = {
    "wpm": DEFAULT_WPM,
    "orp_color": "#ff4444",
    "font_size": "medium",
    "chunk_size": DEFAULT_CHUNK_SIZE,
    "theme": "amber-dark",
}
"""Reader preferences applied when nothing has been saved yet."""

# ---------------------------------------------------------------------------
# Storage and service defaults
# ---------------------------------------------------------------------------

DATA_DIR = os.getenv("SNAPREAD_DATA_DIR", os.path.join(os.path.expanduser("~"), ".snapread"))
API_HOST = os.getenv("SNAPREAD_API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("SNAPREAD_API_PORT", "8080"))
LOG_LEVEL = os.getenv("SNAPREAD_LOG_LEVEL", "WARNING").upper()


def load_data_dir() -> Path:
    """Return the library data directory, creating it if needed.

    RULES:
    - Reads DATA_DIR (SNAPREAD_DATA_DIR or ~/.snapread)
    - Creates the directory and any parents on first use
    """
    path = Path(DATA_DIR).expanduser()
    path.mkdir(parents=True, exist_ok=True)
    return path
