from .documents import (
    ApplyHighlightsRequest,
    ApplyHighlightsResponse,
    ArchiveClearResult,
    ArchiveFile,
    ArchiveFileDetails,
    DocumentListResponse,
    MarkdownFile,
    RenderedDocument,
)
from .highlights import (
    BulkDeleteResponse,
    Highlight,
    HighlightCreate,
    HighlightCreateResponse,
    HighlightListResponse,
    HighlightRange,
    RestoreRequest,
    RestoreResponse,
    UpdateNotesRequest,
)

__all__ = [
    "ApplyHighlightsRequest",
    "ApplyHighlightsResponse",
    "ArchiveClearResult",
    "ArchiveFile",
    "ArchiveFileDetails",
    "BulkDeleteResponse",
    "DocumentListResponse",
    "Highlight",
    "HighlightCreate",
    "HighlightCreateResponse",
    "HighlightListResponse",
    "HighlightRange",
    "MarkdownFile",
    "RenderedDocument",
    "RestoreRequest",
    "RestoreResponse",
    "UpdateNotesRequest",
]
