from fastapi import APIRouter, Depends, HTTPException, Query, Response

from ..dependencies import get_highlight_engine
from ..exceptions import (
    BackupNotFoundError,
    DocumentNotFoundError,
    HighlightNotFoundError,
    RangeValidationError,
    UnresolvableOccurrenceError,
)
from ..models.highlights import (
    BulkDeleteResponse,
    Highlight,
    HighlightCreate,
    HighlightCreateResponse,
    HighlightListResponse,
    RestoreRequest,
    RestoreResponse,
    UpdateNotesRequest,
)
from ..services.highlight_engine import HighlightEngine

router = APIRouter(prefix="/api/highlights", tags=["highlights"])


@router.post("", response_model=HighlightCreateResponse, status_code=201)
async def create_highlight(
    payload: HighlightCreate,
    engine: HighlightEngine = Depends(get_highlight_engine),
) -> HighlightCreateResponse:
    """
    Create a highlight from selected text and its occurrence index.

    The server computes the offsets from the Markdown source; the client only
    says which repetition of the text was selected.

    Raises:
        HTTPException: 400 if the occurrence does not resolve or overlaps an
            existing highlight, 404 if the document is missing, 503 if the
            highlight store cannot be opened
    """
    if not engine.store_available:
        raise HTTPException(status_code=503, detail="Highlight store is unavailable")
    if not engine.highlights_enabled:
        raise HTTPException(status_code=403, detail="Highlights are disabled")

    try:
        highlight = engine.create_highlight(payload)
        return HighlightCreateResponse(id=highlight.id, is_stale=highlight.is_stale)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (UnresolvableOccurrenceError, RangeValidationError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=500, detail=f"Error creating highlight: {str(e)}"
        )


@router.get("/resource", response_model=HighlightListResponse)
async def get_highlights_for_resource(
    path: str = Query(..., description="Document path relative to the served directory"),
    engine: HighlightEngine = Depends(get_highlight_engine),
) -> HighlightListResponse:
    """Get all highlights of one document, stale ones included."""
    return HighlightListResponse(highlights=engine.list_for_resource(path))


@router.get("/directory", response_model=HighlightListResponse)
async def get_highlights_for_directory(
    path: str = Query(".", description="Directory path; '.' for everything"),
    engine: HighlightEngine = Depends(get_highlight_engine),
) -> HighlightListResponse:
    """Get highlights for every document at or below a directory."""
    return HighlightListResponse(highlights=engine.list_for_directory(path))


@router.delete("/resource", response_model=BulkDeleteResponse)
async def delete_highlights_for_resource(
    path: str = Query(..., description="Document path relative to the served directory"),
    engine: HighlightEngine = Depends(get_highlight_engine),
) -> BulkDeleteResponse:
    """Delete every highlight of one document, stale ones included."""
    if not engine.store_available:
        raise HTTPException(status_code=503, detail="Highlight store is unavailable")
    return BulkDeleteResponse(deleted_count=engine.delete_for_resource(path))


@router.delete("/{highlight_id}", status_code=204)
async def delete_highlight(
    highlight_id: str,
    engine: HighlightEngine = Depends(get_highlight_engine),
) -> Response:
    try:
        engine.delete_highlight(highlight_id)
    except HighlightNotFoundError:
        raise HTTPException(status_code=404, detail="Highlight not found")
    return Response(status_code=204)


@router.put("/{highlight_id}/notes", response_model=Highlight)
async def update_highlight_notes(
    highlight_id: str,
    payload: UpdateNotesRequest,
    engine: HighlightEngine = Depends(get_highlight_engine),
) -> Highlight:
    try:
        return engine.update_notes(highlight_id, payload.notes)
    except HighlightNotFoundError:
        raise HTTPException(status_code=404, detail="Highlight not found")
    except Exception as e:
        raise HTTPException(
            status_code=500, detail=f"Error updating notes: {str(e)}"
        )


@router.post("/{highlight_id}/restore", response_model=RestoreResponse)
async def restore_original_file(
    highlight_id: str,
    payload: RestoreRequest,
    engine: HighlightEngine = Depends(get_highlight_engine),
) -> RestoreResponse:
    """
    Restore the archived (pre-edit) content of a highlight's document.

    With ``useTimestamp`` the content goes to a new timestamped copy next to
    the document; otherwise the document is overwritten.
    """
    try:
        restored = engine.restore_original(highlight_id, payload.use_timestamp)
        return RestoreResponse(restored_path=restored)
    except HighlightNotFoundError:
        raise HTTPException(status_code=404, detail="Highlight not found")
    except BackupNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=500, detail=f"Error restoring file: {str(e)}"
        )
