"""Per-chunk display timing and reading-progress formatting.

WHY: A flat words-per-minute delay feels mechanical. Short words can go
faster, long words need longer, and the reader needs a beat at clause
and sentence boundaries to keep comprehension. The progress summary
(percent, words left, time left) is derived from the same rate.

HOW: ``calculate_delay`` starts from ``60000 / wpm`` milliseconds and
scales it by a modifier. The modifier is the length factor PLUS any
punctuation bonus PLUS the paragraph bonus. It is not a product of
separate factors: "cat." at 300 WPM is 200 * (0.8 + 1.0) = 360 ms.

RULES:
- Length factor uses the chunk with every non-[A-Za-z0-9] char removed:
  <= 3 → 0.8, >= 8 → 1.2, otherwise 1.0
- Punctuation bonus looks only at the raw last character and exactly one
  case applies: ". ! ?" → +1.0, ", ; :" → +0.6, closing quote or ")" → +0.3
- A "\\n" or "¶" anywhere in the chunk adds +1.5
- The result is rounded half up to whole milliseconds
- Progress percent is capped at 100 and is 0 for an empty sequence
"""

from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict

_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")

_SENTENCE_END = frozenset(".!?")
_CLAUSE_END = frozenset(",;:")
_CLOSING_MARKS = frozenset({'"', "'", "”", "’", ")"})
_PARAGRAPH_MARKS = ("\n", "¶")

SHORT_WORD_FACTOR = 0.8
LONG_WORD_FACTOR = 1.2
SENTENCE_BONUS = 1.0
CLAUSE_BONUS = 0.6
CLOSING_BONUS = 0.3
PARAGRAPH_BONUS = 1.5


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def length_factor(chunk: str) -> float:
    """Return the length factor for a chunk's alphanumeric length."""
    clean_length = len(_NON_ALNUM_RE.sub("", chunk))
    if clean_length <= 3:
        return SHORT_WORD_FACTOR
    if clean_length >= 8:
        return LONG_WORD_FACTOR
    return 1.0


def punctuation_bonus(chunk: str) -> float:
    """Return the additive pause for the chunk's final character."""
    if not chunk:
        return 0.0
    last = chunk[-1]
    if last in _SENTENCE_END:
        return SENTENCE_BONUS
    if last in _CLAUSE_END:
        return CLAUSE_BONUS
    if last in _CLOSING_MARKS:
        return CLOSING_BONUS
    return 0.0


def calculate_delay(chunk: str, wpm: int) -> int:
    """Return how long ``chunk`` stays on screen at ``wpm``, in milliseconds.

    Args:
        chunk: The display chunk (one or more space-joined words).
        wpm: Playback rate. Callers pass an already clamped rate.

    Returns:
        Whole milliseconds, rounded half up.
    """
    base_delay = 60000 / wpm
    modifier = length_factor(chunk) + punctuation_bonus(chunk)
    if any(mark in chunk for mark in _PARAGRAPH_MARKS):
        modifier += PARAGRAPH_BONUS
    return _round_half_up(base_delay * modifier)


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Progress:
    """Reading progress at the current position.

    Attributes:
        current: Playback position (index of the next word to show).
        total: Number of words in the loaded sequence.
        percent: 0–100, not rounded.
        words_remaining: ``max(0, total - current)``.
        time_remaining: Human-readable estimate, e.g. ``"12 min"``.
    """

    current: int
    total: int
    percent: float
    words_remaining: int
    time_remaining: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def format_time_remaining(minutes: float) -> str:
    """Format minutes as ``"< 1 min"``, ``"N min"`` or ``"Hh Mm"``."""
    if minutes < 1:
        return "< 1 min"
    if minutes < 60:
        return "{} min".format(math.ceil(minutes))
    hours = int(math.floor(minutes / 60))
    mins = math.ceil(minutes % 60)
    return "{}h {}m".format(hours, mins)


def build_progress(current: int, total: int, wpm: int) -> Progress:
    """Compute the progress summary for position ``current`` of ``total``."""
    percent = (current / total) * 100 if total > 0 else 0.0
    words_remaining = max(0, total - current)
    return Progress(
        current=current,
        total=total,
        percent=min(100.0, percent),
        words_remaining=words_remaining,
        time_remaining=format_time_remaining(words_remaining / wpm),
    )
