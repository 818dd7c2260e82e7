"""
Services Package

This package contains the services behind the highlight workflow: the SQLite
record store, the document source and backup archive, and the text
algorithms that resolve, validate and inject highlights. The
``HighlightEngine`` in ``highlight_engine`` ties them together.
"""

from .archive_service import ArchiveService
from .base_database_service import BaseDatabaseService
from .document_source import DocumentSource
from .highlights_service import HighlightsService
from .markdown_renderer import MarkdownRenderer

__all__ = [
    "ArchiveService",
    "BaseDatabaseService",
    "DocumentSource",
    "HighlightsService",
    "MarkdownRenderer",
]
