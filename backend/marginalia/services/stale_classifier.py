"""
Stale detection for highlights.

A highlight is stale when its stored range no longer covers its text in the
current source. Staleness is recomputed against the source every time a
document is rendered; the persisted ``is_stale`` flag is updated lazily when
the computed value differs from it. Highlights are never moved.
"""

import logging
from dataclasses import dataclass
from typing import Iterable

from ..models.highlights import HighlightRange
from .text_offsets import find_text_offset, normalize_whitespace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Classification:
    start_offset: int
    end_offset: int
    is_stale: bool


@dataclass(frozen=True)
class StaleTransition:
    """A highlight whose computed staleness differs from its stored flag"""

    highlight_id: str
    is_stale: bool


def is_range_stale(source: str, start_offset: int, end_offset: int, text: str) -> bool:
    """Check whether ``source[start_offset:end_offset]`` no longer matches ``text``."""
    if start_offset < 0 or start_offset >= end_offset or end_offset > len(source):
        return True
    extracted = source[start_offset:end_offset]
    return normalize_whitespace(extracted) != normalize_whitespace(text)


def classify_new_highlight(
    source: str, highlighted_text: str, occurrence_index: int
) -> Classification:
    """
    Resolve a selection against the current source and classify it.

    Raises:
        UnresolvableOccurrenceError: If the occurrence index does not resolve.
    """
    offset = find_text_offset(source, highlighted_text, occurrence_index)
    stale = is_range_stale(
        source, offset.start_offset, offset.end_offset, highlighted_text
    )
    if stale:
        logger.warning(
            f"Resolved range [{offset.start_offset}, {offset.end_offset}) "
            f"does not match the selected text; storing as stale"
        )
    return Classification(offset.start_offset, offset.end_offset, stale)


def revalidate(
    source: str, highlights: Iterable[HighlightRange]
) -> list[StaleTransition]:
    """Return the highlights whose stale flag must flip for ``source``."""
    transitions = []
    for highlight in highlights:
        stale = is_range_stale(
            source,
            highlight.start_offset,
            highlight.end_offset,
            highlight.highlighted_text,
        )
        if stale != highlight.is_stale:
            transitions.append(StaleTransition(highlight.id, stale))
    return transitions
