"""
Canonical text and text-node offset mapping for rendered documents.

CANONICAL TEXT MODEL

Render-side offsets refer to a plain-text stream built by:
1. Walking every text node of the tree in document order
2. Skipping text inside existing highlight marks
3. Concatenating the text as-is (no normalization)

The stream is rebuilt from the tree on every call. Node identities change
whenever a node is split, so the map is never cached between mutations.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterator

from .tree import TextTree

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextNodeMapping:
    node: Any
    global_start: int
    global_end: int


@dataclass(frozen=True)
class NodeSlice:
    """Part of a text node covered by a range, in node-local offsets"""

    node: Any
    local_start: int
    local_end: int


def _walk(tree: TextTree, include_marks: bool) -> Iterator[Any]:
    for node in tree.iter_text_nodes():
        if include_marks or not tree.is_inside_mark(node):
            yield node


def extract_canonical_text(tree: TextTree, include_marks: bool = False) -> str:
    """
    Extract the canonical text of ``tree``.

    Args:
        tree: Tree to read
        include_marks: Also include text inside highlight marks. Selection
            handling uses this so counts line up with the full source.
    """
    return "".join(tree.text_of(node) for node in _walk(tree, include_marks))


def build_text_node_map(tree: TextTree) -> list[TextNodeMapping]:
    """Map every unmarked text node to its ``[start, end)`` span in canonical text."""
    mappings = []
    offset = 0
    for node in _walk(tree, include_marks=False):
        length = len(tree.text_of(node))
        mappings.append(TextNodeMapping(node, offset, offset + length))
        offset += length

    logger.debug(f"Built text node map: {len(mappings)} nodes, {offset} characters")
    return mappings


def find_intersecting_nodes(
    mappings: list[TextNodeMapping], start_offset: int, end_offset: int
) -> list[NodeSlice]:
    """Return the nodes overlapping ``[start_offset, end_offset)`` with local bounds."""
    result = []
    for mapping in mappings:
        if mapping.global_start < end_offset and mapping.global_end > start_offset:
            length = mapping.global_end - mapping.global_start
            result.append(
                NodeSlice(
                    mapping.node,
                    max(0, start_offset - mapping.global_start),
                    min(length, end_offset - mapping.global_start),
                )
            )
    return result


def calculate_global_offset(
    tree: TextTree, target_node: Any, target_offset: int, include_marks: bool = False
) -> int:
    """
    Convert a position inside a text node into a canonical text offset.

    If the node is not part of the walk, the total length is returned.
    """
    offset = 0
    for node in _walk(tree, include_marks):
        if node is target_node:
            return offset + target_offset
        offset += len(tree.text_of(node))
    return offset
