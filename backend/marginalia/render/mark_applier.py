"""
Render-side highlight application.

Algorithm:
1. Unwrap existing marks and normalize text nodes, so re-rendering is idempotent
2. Validate the ranges (overlap fails the whole batch)
3. Build the text node map
4. Apply ranges from last to first, rebuilding the map after each one,
   so splitting nodes never shifts a range that is still to be applied
"""

import logging
from typing import Any, Sequence

from ..models.highlights import HighlightRange
from ..services.range_validator import validate_highlight_ranges
from .canonical_text import TextNodeMapping, build_text_node_map, find_intersecting_nodes
from .tree import TextTree

logger = logging.getLogger(__name__)


def apply_highlight_range(
    tree: TextTree, mappings: list[TextNodeMapping], highlight: HighlightRange
) -> list[Any]:
    """Wrap every node slice covered by ``highlight`` and return the new marks."""
    marks = []
    for piece in find_intersecting_nodes(
        mappings, highlight.start_offset, highlight.end_offset
    ):
        marks.append(
            tree.replace_with_mark(
                piece.node,
                piece.local_start,
                piece.local_end,
                highlight.id,
                highlight.is_stale,
            )
        )
    return marks


def render_highlights(
    tree: TextTree, ranges: Sequence[HighlightRange]
) -> dict[str, list[Any]]:
    """
    Render ``ranges`` into ``tree`` as mark elements.

    Returns:
        dict[str, list[Any]]: Created marks per highlight id

    Raises:
        RangeValidationError: If the batch is invalid. Existing marks have
            already been removed at that point.
    """
    removed = tree.unwrap_marks()
    tree.normalize()
    if removed:
        logger.debug(f"Removed {removed} existing highlight marks")

    ordered = validate_highlight_ranges(ranges)
    marks: dict[str, list[Any]] = {}
    if not ordered:
        return marks

    mappings = build_text_node_map(tree)
    for index in range(len(ordered) - 1, -1, -1):
        highlight = ordered[index]
        marks[highlight.id] = apply_highlight_range(tree, mappings, highlight)
        if not marks[highlight.id]:
            logger.warning(
                f"Highlight {highlight.id} [{highlight.start_offset}, "
                f"{highlight.end_offset}) is outside the rendered text"
            )
        if index > 0:
            mappings = build_text_node_map(tree)

    logger.info(f"Rendered {len(ordered)} highlights")
    return marks
