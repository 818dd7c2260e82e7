"""
Markdown export of highlights.

Produces a single Markdown file listing every highlight under a directory,
grouped by document, with notes and stale warnings.
"""

import logging
from datetime import date, datetime
from itertools import groupby
from pathlib import Path, PurePosixPath

from ..models.highlights import Highlight
from ..render.navigation import highlight_url

logger = logging.getLogger(__name__)


def export_filename(directory: str | Path, on: date | None = None) -> str:
    """``<directory name>-<YYYY-MM-DD>.md``"""
    on = on or date.today()
    name = Path(directory).resolve().name or "highlights"
    return f"{name}-{on.isoformat()}.md"


def _quote(text: str) -> str:
    return "\n".join(f"> {line}" if line else ">" for line in text.splitlines())


def generate_markdown_export(
    highlights: list[Highlight],
    directory: str,
    generated_at: datetime | None = None,
) -> str:
    generated_at = generated_at or datetime.now()
    count = len(highlights)
    lines = [
        f"# Highlights: {PurePosixPath(directory).name or directory}",
        "",
        f"_Exported {generated_at:%Y-%m-%d %H:%M} - "
        f"{count} highlight{'' if count == 1 else 's'}_",
        "",
    ]

    ordered = sorted(highlights, key=lambda h: (h.resource_path, h.start_offset))
    for resource_path, group in groupby(ordered, key=lambda h: h.resource_path):
        lines.extend([f"## {resource_path}", ""])
        for highlight in group:
            lines.append(_quote(highlight.highlighted_text))
            lines.append("")
            if highlight.notes:
                lines.extend([f"**Note:** {highlight.notes}", ""])
            if highlight.is_stale:
                lines.extend(
                    ["_Stale: the file has changed since this was highlighted._", ""]
                )
            lines.extend(
                [
                    f"[Open]({highlight_url(resource_path, highlight.id)}) - "
                    f"created {highlight.created_at}",
                    "",
                ]
            )

    return "\n".join(lines).rstrip() + "\n"


def write_markdown_export(content: str, filename: str, export_dir: str | Path) -> Path:
    export_path = Path(export_dir)
    export_path.mkdir(parents=True, exist_ok=True)
    target = export_path / filename
    target.write_text(content, encoding="utf-8")
    logger.info(f"Wrote highlights export to {target}")
    return target
