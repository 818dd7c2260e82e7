"""
HTML page generation for the viewer.

Pages are deliberately plain; styling belongs to the UI layer. The document
body sits in ``<article class="content">``, which is the root the render-side
highlight algorithms address. The management page carries a small script that
calls the highlights API for its Delete and Restore buttons.
"""

from html import escape
from typing import Any
from urllib.parse import quote

from .models.documents import MarkdownFile, RenderedDocument
from .models.highlights import Highlight
from .render.navigation import highlight_url

_BANNER = '<div class="highlight-error-banner" role="alert">{}</div>'

_HIGHLIGHT_ACTIONS_SCRIPT = """<script>
document.addEventListener("click", async (event) => {
  const button = event.target.closest("button[data-highlight-id]");
  if (!button) return;
  const id = encodeURIComponent(button.dataset.highlightId);
  if (button.classList.contains("delete-highlight-btn")) {
    if (!confirm("Delete this highlight?")) return;
    const response = await fetch(`/api/highlights/${id}`, { method: "DELETE" });
    if (response.ok) {
      document.getElementById(`card-${button.dataset.highlightId}`)?.remove();
    } else {
      alert("Could not delete the highlight");
    }
  } else if (button.classList.contains("restore-btn")) {
    const response = await fetch(`/api/highlights/${id}/restore`, {
      method: "POST",
      headers: { "Content-Type": "application/json" },
      body: JSON.stringify({ useTimestamp: true }),
    });
    const body = await response.json();
    alert(response.ok ? `Original restored to ${body.restoredPath}` : body.detail);
  }
});
</script>"""


def _layout(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en"><head><meta charset="utf-8">'
        f"<title>{escape(title)}</title></head>"
        f"<body>{body}</body></html>"
    )


def _count_badge(stats: dict[str, Any] | None) -> str:
    if not stats:
        return ""
    count = stats["highlights_count"]
    title = f"{count} highlight{'' if count == 1 else 's'}"
    if stats["stale_count"]:
        title += f", {stats['stale_count']} stale"
    return f' <span class="highlight-count" title="{title}">{count}</span>'


def _file_list(
    files: list[MarkdownFile], counts: dict[str, dict[str, Any]] | None = None
) -> str:
    """Sidebar of documents; ``counts`` adds a highlight count per document."""
    counts = counts or {}
    items = []
    for f in files:
        stats = counts.get(f.path)
        css = ' class="has-highlights"' if stats else ""
        items.append(
            f'<li{css}><a href="/view/{quote(f.path)}" data-file-path="{escape(f.path)}">'
            f"{escape(f.path)}</a>{_count_badge(stats)}</li>"
        )
    return f'<nav class="sidebar"><ul>{"".join(items)}</ul></nav>'


def generate_index_page(
    files: list[MarkdownFile], counts: dict[str, dict[str, Any]] | None = None
) -> str:
    count = len(files)
    body = (
        f"<h1>Documents</h1><p>{count} markdown file{'' if count == 1 else 's'}</p>"
        + _file_list(files, counts)
    )
    return _layout("Documents", body)


def generate_document_page(
    document: RenderedDocument,
    files: list[MarkdownFile],
    counts: dict[str, dict[str, Any]] | None = None,
) -> str:
    banner = (
        _BANNER.format(escape(f"Highlights could not be shown: {document.error}"))
        if document.error
        else ""
    )
    stale = [h for h in document.highlights if h.is_stale]
    stale_notice = (
        f'<p class="stale-notice">{len(stale)} stale highlight'
        f"{'' if len(stale) == 1 else 's'} not shown. "
        f'<a href="/highlights?path={quote(document.resource_path)}">Review</a></p>'
        if stale
        else ""
    )
    body = (
        _file_list(files, counts)
        + banner
        + stale_notice
        + f'<article class="content">{document.html}</article>'
    )
    return _layout(document.resource_path, body)


def _highlight_card(highlight: Highlight) -> str:
    stale_badge = '<span class="badge-stale">Stale</span>' if highlight.is_stale else ""
    stale_warning = (
        '<div class="stale-warning">This highlight is stale: the file has been '
        "modified since it was created. "
        f'<button class="restore-btn" data-highlight-id="{escape(highlight.id)}">'
        "Restore Original File</button></div>"
        if highlight.is_stale
        else ""
    )
    notes = (
        f'<div class="highlight-note">{escape(highlight.notes)}</div>'
        if highlight.notes
        else ""
    )
    return (
        f'<div class="highlight-card" id="card-{escape(highlight.id)}">'
        f'<a href="{highlight_url(highlight.resource_path, highlight.id)}">'
        f"{escape(highlight.resource_path)}</a>{stale_badge}"
        f"<blockquote>{escape(highlight.highlighted_text)}</blockquote>"
        f"{notes}{stale_warning}"
        f'<button class="delete-highlight-btn" data-highlight-id="{escape(highlight.id)}">'
        "Delete</button></div>"
    )


def generate_highlights_page(highlights: list[Highlight], directory: str) -> str:
    count = len(highlights)
    if not highlights:
        cards = "<p>No highlights found in this directory</p>"
    else:
        cards = "".join(_highlight_card(h) for h in highlights)
    body = (
        f"<h1>Highlights</h1><p>{count} highlight{'' if count == 1 else 's'} "
        f"in {escape(directory)}</p>{cards}"
    )
    if highlights:
        body += _HIGHLIGHT_ACTIONS_SCRIPT
    return _layout("Highlights", body)


def generate_error_page(status_code: int, message: str) -> str:
    return _layout(
        f"Error {status_code}", f"<h1>{status_code}</h1><p>{escape(message)}</p>"
    )
