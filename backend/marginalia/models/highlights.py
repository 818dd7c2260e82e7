"""
Highlight Type Models

Pydantic models for highlights and the request/response bodies of the
highlights API. Fields are snake_case in Python and camelCase on the wire.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that serializes field names as camelCase"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HighlightRange(CamelModel):
    """An offset range into a document with the text it covers"""

    id: str
    start_offset: int
    end_offset: int
    highlighted_text: str = ""
    is_stale: bool = False
    notes: str | None = None


class Highlight(HighlightRange):
    """A persisted highlight as stored in the highlights table"""

    resource_path: str
    created_at: str  # ISO 8601, e.g. "2025-12-11T11:08:40Z"
    updated_at: str


class HighlightCreate(CamelModel):
    """Request model for creating a highlight from a user selection"""

    resource_path: str
    highlighted_text: str
    occurrence_index: int = 0
    notes: str | None = None


class HighlightCreateResponse(CamelModel):
    id: str
    is_stale: bool


class HighlightListResponse(CamelModel):
    highlights: list[Highlight]


class UpdateNotesRequest(CamelModel):
    notes: str | None = None


class RestoreRequest(CamelModel):
    use_timestamp: bool = True


class RestoreResponse(CamelModel):
    restored_path: str


class BulkDeleteResponse(CamelModel):
    deleted_count: int
