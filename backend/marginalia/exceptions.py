"""
Exception types raised by the highlight engine and its collaborators.

Routers translate these into HTTP status codes; services raise them when an
operation cannot be completed for a reason the caller should know about.
Stale highlights are a persisted state, not an error, and have no exception.
"""


class MarginaliaError(Exception):
    """Base class for all application errors."""


class DocumentNotFoundError(MarginaliaError):
    """The requested document does not exist under the served directory."""

    def __init__(self, resource_path: str):
        super().__init__(f"File not found: {resource_path}")
        self.resource_path = resource_path


class HighlightNotFoundError(MarginaliaError):
    """No highlight is stored under the given id."""

    def __init__(self, highlight_id: str):
        super().__init__(f"Highlight not found: {highlight_id}")
        self.highlight_id = highlight_id


class UnresolvableOccurrenceError(MarginaliaError, ValueError):
    """The (text, occurrence index) pair does not resolve against the source."""

    def __init__(self, search_text: str, occurrence_index: int, found: int):
        preview = search_text if len(search_text) <= 50 else search_text[:50] + "..."
        super().__init__(
            f"Could not find occurrence {occurrence_index} of {preview!r} "
            f"({found} occurrence{'' if found == 1 else 's'} found)"
        )
        self.search_text = search_text
        self.occurrence_index = occurrence_index
        self.found = found


class RangeValidationError(MarginaliaError, ValueError):
    """A batch of highlight ranges failed validation."""


class InvalidRangeError(RangeValidationError):
    """A single range is empty, reversed or starts before zero."""


class OverlappingHighlightsError(RangeValidationError):
    """Two ranges in the same batch overlap."""


class SelectionError(MarginaliaError, ValueError):
    """A user selection cannot be turned into a highlight request."""


class CrossBlockSelectionError(SelectionError):
    """The selection starts and ends in different block elements."""


class BackupNotFoundError(MarginaliaError):
    """No archived copy of the document exists."""

    def __init__(self, resource_path: str):
        super().__init__(f"No backup found for: {resource_path}")
        self.resource_path = resource_path


class HighlightStoreError(MarginaliaError):
    """The record store did not accept a write."""
