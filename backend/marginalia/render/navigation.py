"""
Deep links to highlights.

A highlight is addressed by the URL fragment ``#highlight-<id>``. The first
mark of each highlight carries the matching ``id`` attribute, so the browser
scrolls to it without any script.
"""

from typing import Any
from urllib.parse import quote

from ..marker_constants import HIGHLIGHT_ID_ATTR
from .tree import SoupTextTree, TextTree

FRAGMENT_PREFIX = "highlight-"


def highlight_anchor(highlight_id: str) -> str:
    return f"{FRAGMENT_PREFIX}{highlight_id}"


def highlight_fragment(highlight_id: str) -> str:
    return f"#{highlight_anchor(highlight_id)}"


def parse_highlight_fragment(fragment: str) -> str | None:
    """Return the highlight id in ``fragment``, or None if it is not a highlight link."""
    anchor = fragment[1:] if fragment.startswith("#") else fragment
    if not anchor.startswith(FRAGMENT_PREFIX):
        return None
    return anchor[len(FRAGMENT_PREFIX):] or None


def highlight_url(resource_path: str, highlight_id: str) -> str:
    return f"/view/{quote(resource_path)}{highlight_fragment(highlight_id)}"


def find_highlight_marks(tree: TextTree, highlight_id: str) -> list[Any]:
    return tree.find_marks(highlight_id)


def resolve_deep_link(tree: TextTree, fragment: str) -> list[Any]:
    """Marks targeted by ``fragment``; empty when it names no rendered highlight."""
    highlight_id = parse_highlight_fragment(fragment)
    if highlight_id is None:
        return []
    return find_highlight_marks(tree, highlight_id)


def highlight_span_text(tree: SoupTextTree, highlight_id: str) -> str:
    """Text covered by a highlight, joined across all of its marks."""
    return "".join(mark.get_text() for mark in tree.find_marks(highlight_id))


def anchor_highlights(tree: SoupTextTree) -> int:
    """Give the first mark of every highlight its fragment id. Returns the count."""
    seen: set[str] = set()
    for mark in tree.find_marks():
        highlight_id = mark.get(HIGHLIGHT_ID_ATTR)
        if not highlight_id or highlight_id in seen:
            continue
        mark["id"] = highlight_anchor(highlight_id)
        seen.add(highlight_id)
    return len(seen)
