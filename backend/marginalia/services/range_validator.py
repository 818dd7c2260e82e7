"""
Validation of highlight range batches.

Policy:
- Ranges are half-open ``[start, end)`` with ``start < end`` and ``start >= 0``
- Ranges come back sorted by ``start_offset``
- Overlapping ranges are rejected, never clipped or merged
- Adjacent ranges (``end == next.start``) are allowed

A single bad range fails the whole batch.
"""

from typing import Protocol, Sequence, TypeVar

from ..exceptions import InvalidRangeError, OverlappingHighlightsError


class OffsetRange(Protocol):
    start_offset: int
    end_offset: int


R = TypeVar("R", bound=OffsetRange)


def validate_highlight_ranges(ranges: Sequence[R]) -> list[R]:
    """
    Validate ranges for one document and return a copy sorted by start offset.

    Raises:
        InvalidRangeError: If any range is empty, reversed, or starts below zero.
        OverlappingHighlightsError: If any two ranges overlap.
    """
    for r in ranges:
        if r.start_offset >= r.end_offset:
            raise InvalidRangeError(
                f"Invalid range: startOffset ({r.start_offset}) >= "
                f"endOffset ({r.end_offset})"
            )
        if r.start_offset < 0:
            raise InvalidRangeError(
                f"Invalid range: negative startOffset ({r.start_offset})"
            )

    ordered = sorted(ranges, key=lambda r: r.start_offset)

    for current, following in zip(ordered, ordered[1:]):
        if current.end_offset > following.start_offset:
            raise OverlappingHighlightsError(
                f"Overlapping highlights detected: "
                f"[{current.start_offset}, {current.end_offset}) overlaps with "
                f"[{following.start_offset}, {following.end_offset})"
            )

    return ordered
