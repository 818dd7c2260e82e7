"""
Turning a user selection into a highlight creation request.

The selection is held in an explicit ``SelectionContext`` that is passed to
each handler, instead of living in module-level state. The occurrence index
is counted with the same scanner the server uses to resolve it.
"""

from dataclasses import dataclass
from typing import Any

from ..exceptions import CrossBlockSelectionError, SelectionError
from ..models.highlights import HighlightCreate
from ..services.text_offsets import count_occurrences_before
from .canonical_text import calculate_global_offset, extract_canonical_text
from .tree import TextTree


@dataclass
class SelectionContext:
    """A selection in a rendered tree, bounded by two text-node positions"""

    tree: TextTree
    start_node: Any
    start_offset: int
    end_node: Any
    end_offset: int
    selected_text: str
    notes: str | None = None

    @property
    def text(self) -> str:
        return self.selected_text.strip()


def is_single_block_selection(context: SelectionContext) -> bool:
    tree = context.tree
    return tree.block_ancestor(context.start_node) is tree.block_ancestor(
        context.end_node
    )


def calculate_occurrence_index(context: SelectionContext) -> int:
    """
    Count how often the selected text appears before the selection start.

    Text inside existing marks is counted: the server resolves the index
    against the full source, where highlighted text is still present.
    """
    text = extract_canonical_text(context.tree, include_marks=True)
    position = calculate_global_offset(
        context.tree, context.start_node, context.start_offset, include_marks=True
    )
    return count_occurrences_before(text, context.text, position)


def build_create_request(
    context: SelectionContext, resource_path: str
) -> HighlightCreate:
    """
    Raises:
        SelectionError: If the selection is empty.
        CrossBlockSelectionError: If it spans more than one block element.
    """
    if not context.text:
        raise SelectionError("Selection is empty")
    if not is_single_block_selection(context):
        raise CrossBlockSelectionError("Selection spans multiple block elements")

    notes = context.notes.strip() if context.notes else None
    return HighlightCreate(
        resource_path=resource_path,
        highlighted_text=context.text,
        occurrence_index=calculate_occurrence_index(context),
        notes=notes or None,
    )
