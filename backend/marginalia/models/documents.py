"""
Document Type Models

Pydantic models describing served Markdown files, rendered pages and the
backup archive.
"""

from pydantic import BaseModel

from .highlights import CamelModel, Highlight, HighlightRange


class MarkdownFile(BaseModel):
    """A Markdown file found under the served directory"""

    path: str  # POSIX path relative to the served directory
    name: str
    depth: int


class DocumentListResponse(CamelModel):
    files: list[MarkdownFile]


class RenderedDocument(CamelModel):
    """A document rendered to HTML with its non-stale highlights marked"""

    resource_path: str
    html: str
    highlights: list[Highlight]
    error: str | None = None  # Set when the highlight batch was rejected


class ApplyHighlightsRequest(CamelModel):
    """Rendered HTML plus ranges expressed in its canonical text"""

    html: str
    ranges: list[HighlightRange]


class ApplyHighlightsResponse(CamelModel):
    html: str
    applied: dict[str, int]  # highlight id -> number of mark elements created
    error: str | None = None


class ArchiveFile(CamelModel):
    """An archived copy of a document's content before it was edited"""

    resource_id: str
    resource_path: str
    original_name: str
    path: str
    size: int
    mtime: float
    timestamp: str


class ArchiveFileDetails(ArchiveFile):
    content: str


class ArchiveClearResult(CamelModel):
    deleted_count: int
    freed_bytes: int
