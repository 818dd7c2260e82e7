"""Highlight marker format constants.

Markers are inline ``<mark>`` elements. On the source side they are spliced
into Markdown as raw inline HTML, which the renderer passes through
unescaped; on the render side they are created as elements in the parsed
tree. Both sides use the same tag, class and id attribute so handlers and
deep links find them the same way.

Shared between:
- services/mark_injector.py (source-side injection)
- render/tree.py (render-side wrapping and unwrapping)
"""

import re
from html import escape

MARK_TAG = "mark"
MARK_CLASS = "marginalia-highlight"
STALE_MARK_CLASS = "marginalia-highlight-stale"
HIGHLIGHT_ID_ATTR = "data-highlight-id"
STALE_TITLE = "This highlight may be outdated"

# Block-level elements a selection must not cross
BLOCK_TAGS = frozenset(
    {"p", "h1", "h2", "h3", "h4", "h5", "h6", "li", "blockquote", "pre"}
)

MARK_CLOSE = f"</{MARK_TAG}>"
MARK_PATTERN = re.compile(
    rf'<{MARK_TAG} class="{MARK_CLASS}" {HIGHLIGHT_ID_ATTR}="[^"]*">(.*?){MARK_CLOSE}',
    re.DOTALL,
)


def mark_open(highlight_id: str) -> str:
    """Opening marker tag carrying the highlight id."""
    return (
        f'<{MARK_TAG} class="{MARK_CLASS}" '
        f'{HIGHLIGHT_ID_ATTR}="{escape(highlight_id, quote=True)}">'
    )
