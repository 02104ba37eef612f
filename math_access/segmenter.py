"""
Part Segmenter

Splits an equation into ordered, independently announceable parts. The
default strategy is textual: split spoken text on commas. Segmentation
quality therefore depends on the renderer producing comma-separated clauses.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from .config import PLACEHOLDER_TEXT
from .expression import Granularity
from .speech import Clause


@dataclass(frozen=True)
class Part:
    """One navigable part of an equation. Index is 1-based."""
    index: int
    display_text: str
    spoken_text: str
    granularity: Granularity = Granularity.TERM

    @property
    def text(self) -> str:
        return self.spoken_text


def _fallback(text: Optional[str], placeholder: str) -> List[Part]:
    stripped = (text or '').strip()
    if not stripped or stripped.lower() == placeholder.lower():
        stripped = placeholder
    return [Part(1, stripped, stripped)]


def segment_parts(full_spoken_text: Optional[str],
                  placeholder: str = PLACEHOLDER_TEXT) -> List[Part]:
    """
    Segment spoken text into parts by splitting on commas.

    Args:
        full_spoken_text: Spoken rendering of the whole equation
        placeholder: Text of the single part used when nothing is left

    Returns:
        Non-empty list of parts
    """
    pieces = [piece.strip() for piece in (full_spoken_text or '').split(',')]
    pieces = [piece for piece in pieces if piece]

    if not pieces:
        return _fallback(full_spoken_text, placeholder)
    if len(pieces) == 1 and pieces[0].lower() == placeholder.lower():
        return _fallback(pieces[0], placeholder)

    return [Part(i, piece, piece) for i, piece in enumerate(pieces, start=1)]


def segment_clauses(clauses: Iterable[Clause],
                    placeholder: str = PLACEHOLDER_TEXT) -> List[Part]:
    """One part per structural clause, keeping display text and granularity."""
    parts = [
        Part(i, clause.display or clause.text, clause.text, clause.granularity)
        for i, clause in enumerate((c for c in clauses if c.text.strip()), start=1)
    ]
    return parts or _fallback('', placeholder)
