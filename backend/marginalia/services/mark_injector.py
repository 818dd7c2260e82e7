"""
Source-side highlight injection.

Embeds ``<mark>`` markers into raw Markdown before it is rendered. Offsets
are source offsets, so every insertion must happen at positions that have
not yet been shifted by an earlier insertion: highlights are consumed from
the end of the document towards the start and the output is assembled once
from the resulting slices.
"""

import logging
from typing import Iterable

from ..marker_constants import MARK_CLOSE, MARK_PATTERN, mark_open
from ..models.highlights import HighlightRange

logger = logging.getLogger(__name__)


def inject_highlight_marks(source: str, highlights: Iterable[HighlightRange]) -> str:
    """
    Return ``source`` with every non-stale highlight wrapped in a marker.

    Ranges outside the source, or reaching into a range that was already
    wrapped, are skipped and logged rather than corrupting the output.

    Args:
        source (str): Raw document text
        highlights (Iterable[HighlightRange]): Highlights for this document

    Returns:
        str: Source text with markers embedded
    """
    active = sorted(
        (h for h in highlights if not h.is_stale),
        key=lambda h: h.start_offset,
        reverse=True,
    )

    pieces: list[str] = []
    cursor = len(source)

    for highlight in active:
        start, end = highlight.start_offset, highlight.end_offset
        if start < 0 or start >= end or end > cursor:
            logger.warning(
                f"Skipping highlight {highlight.id}: range [{start}, {end}) "
                f"does not fit in the remaining source (limit {cursor})"
            )
            continue

        pieces.append(source[end:cursor])
        pieces.append(MARK_CLOSE)
        pieces.append(source[start:end])
        pieces.append(mark_open(highlight.id))
        cursor = start

    pieces.append(source[:cursor])
    return "".join(reversed(pieces))


def strip_highlight_marks(text: str) -> str:
    """Remove markers produced by ``inject_highlight_marks``, keeping their text."""
    return MARK_PATTERN.sub(r"\1", text)
