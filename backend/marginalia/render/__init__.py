"""
Render-side highlight algorithms over a parsed document tree.
"""

from .canonical_text import (
    build_text_node_map,
    calculate_global_offset,
    extract_canonical_text,
    find_intersecting_nodes,
)
from .mark_applier import render_highlights
from .tree import SoupTextTree, TextTree

__all__ = [
    "SoupTextTree",
    "TextTree",
    "build_text_node_map",
    "calculate_global_offset",
    "extract_canonical_text",
    "find_intersecting_nodes",
    "render_highlights",
]
