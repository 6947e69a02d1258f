"""Optimal Recognition Point (ORP) calculation.

WHY: RSVP keeps the reader's eye fixed on one screen position. Each
chunk is drawn so that its ORP letter lands on that position, and the
letter is highlighted. Readers fixate roughly 35% into a word, slightly
left of centre, which is where the ORP is placed.

HOW: The ORP index is computed from the word's "clean" length (letters,
digits, Latin-1 accented letters, apostrophes and hyphens). The split
itself is applied to the original string, punctuation included.

RULES:
- clean length <= 2 → index 0
- clean length == 3 → index 1
- clean length >= 4 → floor(length * 0.35)
- orp_char is "" when the index falls outside the original string
- Multi-word chunks are split as one string, not word by word
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

_NON_WORD_RE = re.compile(r"[^A-Za-z0-9À-ÿ'\-]")


@dataclass(frozen=True)
class OrpSplit:
    """A display string split around its ORP letter.

    Attributes:
        before: Characters left of the ORP letter.
        orp_char: The highlighted letter ("" for an empty string).
        after: Characters right of the ORP letter.
        orp_index: Index of the ORP letter in the original string.
        length: Length of the original string.
    """

    before: str
    orp_char: str
    after: str
    orp_index: int
    length: int


def calculate_orp(word: str) -> int:
    """Return the 0-based ORP index for a word or joined chunk."""
    length = len(_NON_WORD_RE.sub("", word))
    if length <= 2:
        return 0
    if length == 3:
        return 1
    return int(math.floor(length * 0.35))


def split_at_orp(word: str) -> OrpSplit:
    """Split ``word`` into the text before, at, and after its ORP letter."""
    orp_index = calculate_orp(word)
    return OrpSplit(
        before=word[:orp_index],
        orp_char=word[orp_index] if orp_index < len(word) else "",
        after=word[orp_index + 1:],
        orp_index=orp_index,
        length=len(word),
    )
