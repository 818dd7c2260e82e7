from fastapi import APIRouter, Depends, HTTPException, Query

from ..config import get_settings
from ..dependencies import get_highlight_engine
from ..exceptions import DocumentNotFoundError
from ..models.documents import (
    ApplyHighlightsRequest,
    ApplyHighlightsResponse,
    DocumentListResponse,
    RenderedDocument,
)
from ..services.highlight_engine import HighlightEngine

router = APIRouter(prefix="/api/documents", tags=["documents"])


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    engine: HighlightEngine = Depends(get_highlight_engine),
) -> DocumentListResponse:
    """List the Markdown files under the served directory."""
    files = engine.documents.scan_markdown_files(get_settings().tree_depth)
    return DocumentListResponse(files=files)


@router.get("/render", response_model=RenderedDocument)
async def render_document(
    path: str = Query(..., description="Document path relative to the served directory"),
    engine: HighlightEngine = Depends(get_highlight_engine),
) -> RenderedDocument:
    """
    Render a document to HTML with its non-stale highlights marked.

    If the stored highlights overlap, the document is returned without marks
    and ``error`` explains why.
    """
    try:
        return engine.render_document(path)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=500, detail=f"Error rendering document: {str(e)}"
        )


@router.post("/apply-highlights", response_model=ApplyHighlightsResponse)
async def apply_highlights(
    payload: ApplyHighlightsRequest,
    engine: HighlightEngine = Depends(get_highlight_engine),
) -> ApplyHighlightsResponse:
    """Apply ranges, given in the HTML's canonical text, to rendered HTML."""
    return engine.apply_highlights_to_html(payload.html, payload.ranges)
