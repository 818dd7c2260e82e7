"""
Unit tests for highlight range validation.

Tests cover:
- Overlap rejection and adjacency
- Malformed ranges
- Sorting of the validated batch
"""

import pytest

from marginalia.exceptions import (
    InvalidRangeError,
    OverlappingHighlightsError,
    RangeValidationError,
)
from marginalia.models.highlights import HighlightRange
from marginalia.services.range_validator import validate_highlight_ranges
from marginalia.services.text_offsets import TextOffset


def make_range(highlight_id, start, end):
    return HighlightRange(id=highlight_id, start_offset=start, end_offset=end)


class TestOverlap:
    """Test overlap detection"""

    def test_overlapping_ranges_rejected(self):
        with pytest.raises(OverlappingHighlightsError) as exc_info:
            validate_highlight_ranges([make_range("a", 0, 5), make_range("b", 3, 8)])

        assert "[0, 5) overlaps with [3, 8)" in str(exc_info.value)

    def test_adjacent_ranges_pass(self):
        result = validate_highlight_ranges(
            [make_range("a", 0, 5), make_range("b", 5, 8)]
        )

        assert [r.id for r in result] == ["a", "b"]

    def test_contained_range_rejected(self):
        with pytest.raises(OverlappingHighlightsError):
            validate_highlight_ranges([make_range("a", 0, 10), make_range("b", 2, 4)])

    def test_overlap_detected_regardless_of_input_order(self):
        with pytest.raises(OverlappingHighlightsError):
            validate_highlight_ranges(
                [make_range("b", 3, 8), make_range("c", 20, 25), make_range("a", 0, 5)]
            )

    def test_overlap_is_a_range_validation_error(self):
        with pytest.raises(RangeValidationError):
            validate_highlight_ranges([make_range("a", 0, 5), make_range("b", 4, 8)])


class TestMalformedRanges:
    """Test rejection of single bad ranges"""

    def test_empty_range(self):
        with pytest.raises(InvalidRangeError):
            validate_highlight_ranges([make_range("a", 4, 4)])

    def test_reversed_range(self):
        with pytest.raises(InvalidRangeError):
            validate_highlight_ranges([make_range("a", 8, 2)])

    def test_negative_start(self):
        with pytest.raises(InvalidRangeError):
            validate_highlight_ranges([make_range("a", -3, 2)])


class TestOrdering:
    """Test the returned batch"""

    def test_sorted_by_start(self):
        result = validate_highlight_ranges(
            [make_range("c", 20, 25), make_range("a", 0, 5), make_range("b", 10, 12)]
        )

        assert [r.start_offset for r in result] == [0, 10, 20]

    def test_empty_batch(self):
        assert validate_highlight_ranges([]) == []

    def test_accepts_any_offset_range(self):
        result = validate_highlight_ranges([TextOffset(6, 9), TextOffset(0, 3)])

        assert result == [TextOffset(0, 3), TextOffset(6, 9)]
