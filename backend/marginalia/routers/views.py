from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse

from ..config import get_settings
from ..dependencies import get_highlight_engine
from ..exceptions import DocumentNotFoundError
from ..services.highlight_engine import HighlightEngine
from ..templates import (
    generate_document_page,
    generate_error_page,
    generate_highlights_page,
    generate_index_page,
)

router = APIRouter(tags=["views"])

_NO_CACHE = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@router.get("/", response_class=HTMLResponse)
async def index(engine: HighlightEngine = Depends(get_highlight_engine)) -> HTMLResponse:
    files = engine.documents.scan_markdown_files(get_settings().tree_depth)
    return HTMLResponse(
        generate_index_page(files, engine.highlight_counts()), headers=_NO_CACHE
    )


@router.get("/view/{resource_path:path}", response_class=HTMLResponse)
async def view_document(
    resource_path: str,
    engine: HighlightEngine = Depends(get_highlight_engine),
) -> HTMLResponse:
    """
    Render a Markdown document with its highlights.

    Deep links to a highlight use the ``#highlight-<id>`` fragment.
    """
    try:
        document = engine.render_document(resource_path)
    except DocumentNotFoundError as e:
        return HTMLResponse(
            generate_error_page(404, str(e)), status_code=404, headers=_NO_CACHE
        )

    files = engine.documents.scan_markdown_files(get_settings().tree_depth)
    return HTMLResponse(
        generate_document_page(document, files, engine.highlight_counts()),
        headers=_NO_CACHE,
    )


@router.get("/highlights", response_class=HTMLResponse)
async def highlights_page(
    path: str = Query("."),
    engine: HighlightEngine = Depends(get_highlight_engine),
) -> HTMLResponse:
    """Management view listing highlights, stale ones with a restore option."""
    highlights = engine.list_for_directory(path)
    return HTMLResponse(generate_highlights_page(highlights, path), headers=_NO_CACHE)
