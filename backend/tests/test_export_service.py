"""
Unit tests for the Markdown highlights export.

Tests cover:
- Export file naming
- Export content grouping, notes and stale warnings
- Writing the export file
"""

import tempfile
from datetime import date, datetime
from pathlib import Path

from marginalia.models.highlights import Highlight
from marginalia.services.export_service import (
    export_filename,
    generate_markdown_export,
    write_markdown_export,
)


def make_highlight(highlight_id, resource_path, start, text, notes=None, is_stale=False):
    return Highlight(
        id=highlight_id,
        resource_path=resource_path,
        start_offset=start,
        end_offset=start + len(text),
        highlighted_text=text,
        is_stale=is_stale,
        notes=notes,
        created_at="2025-01-02T03:04:05Z",
        updated_at="2025-01-02T03:04:05Z",
    )


class TestExportFilename:
    def test_uses_directory_name_and_date(self):
        assert export_filename("/tmp/project/notes", date(2025, 1, 2)) == (
            "notes-2025-01-02.md"
        )


class TestGenerateMarkdownExport:
    """Test export content"""

    def test_groups_by_document(self):
        highlights = [
            make_highlight("h2", "docs/b.md", 0, "second doc"),
            make_highlight("h1", "docs/a.md", 10, "later in a"),
            make_highlight("h0", "docs/a.md", 0, "early in a", notes="check this"),
        ]

        content = generate_markdown_export(
            highlights, "docs", generated_at=datetime(2025, 1, 2, 3, 4)
        )

        assert content.startswith("# Highlights: docs\n")
        assert "_Exported 2025-01-02 03:04 - 3 highlights_" in content
        assert content.index("## docs/a.md") < content.index("## docs/b.md")
        assert content.index("> early in a") < content.index("> later in a")
        assert "**Note:** check this" in content
        assert "[Open](/view/docs/a.md#highlight-h0)" in content

    def test_stale_highlights_are_flagged(self):
        content = generate_markdown_export(
            [make_highlight("s", "a.md", 0, "old text", is_stale=True)], "."
        )

        assert "_Stale: the file has changed since this was highlighted._" in content
        assert "1 highlight_" in content

    def test_multiline_quotes(self):
        content = generate_markdown_export(
            [make_highlight("m", "a.md", 0, "line one\n\nline two")], "."
        )

        assert "> line one\n>\n> line two" in content

    def test_empty_export(self):
        content = generate_markdown_export([], "docs")

        assert "0 highlights" in content
        assert "##" not in content


class TestWriteMarkdownExport:
    def test_writes_file(self):
        with tempfile.TemporaryDirectory() as data_dir:
            export_dir = Path(data_dir) / "exports"

            target = write_markdown_export("# Highlights\n", "docs-2025-01-02.md", export_dir)

            assert target == export_dir / "docs-2025-01-02.md"
            assert target.read_text(encoding="utf-8") == "# Highlights\n"
