"""
Integration tests for HighlightEngine.

Tests cover:
- Creating highlights from (text, occurrence index) pairs
- Overlap rejection at creation
- Rendering documents with marks and deep-link anchors
- Highlights inside inline code and code blocks
- Stale transitions when the document is edited
- Rendering with an invalid stored batch
- Notes, deletion and restoring archived originals
- Applying ranges to already-rendered HTML
- Exporting highlights
- Falling back when the highlight store cannot be opened
"""

import tempfile
from pathlib import Path

import pytest
from bs4 import BeautifulSoup

from marginalia.config import Settings
from marginalia.exceptions import (
    BackupNotFoundError,
    DocumentNotFoundError,
    HighlightNotFoundError,
    OverlappingHighlightsError,
    UnresolvableOccurrenceError,
)
from marginalia.models.highlights import HighlightCreate, HighlightRange
from marginalia.services import (
    ArchiveService,
    DocumentSource,
    HighlightsService,
)
from marginalia.services.highlight_engine import HighlightEngine

NOTES = "# Notes\n\nThe quick brown fox jumps over the lazy fox.\n"


@pytest.fixture
def temp_dirs():
    """Create temporary directories for documents and application data"""
    with tempfile.TemporaryDirectory() as docs_dir, \
         tempfile.TemporaryDirectory() as data_dir:
        yield {"docs_dir": Path(docs_dir), "data_dir": Path(data_dir)}


def build_engine(temp_dirs, highlights_enabled=True):
    return HighlightEngine(
        documents=DocumentSource(temp_dirs["docs_dir"]),
        highlights=HighlightsService(str(temp_dirs["data_dir"] / "test.db")),
        archive=ArchiveService(temp_dirs["data_dir"] / "archive"),
        highlights_enabled=highlights_enabled,
    )


@pytest.fixture
def engine(temp_dirs):
    (temp_dirs["docs_dir"] / "notes.md").write_text(NOTES, encoding="utf-8")
    return build_engine(temp_dirs)


def create(engine, text, occurrence_index=0, resource_path="notes.md", notes=None):
    return engine.create_highlight(
        HighlightCreate(
            resource_path=resource_path,
            highlighted_text=text,
            occurrence_index=occurrence_index,
            notes=notes,
        )
    )


def write_doc(temp_dirs, content, name="notes.md"):
    (temp_dirs["docs_dir"] / name).write_text(content, encoding="utf-8")


class TestCreateHighlight:
    """Test highlight creation"""

    def test_resolves_requested_occurrence(self, engine):
        highlight = create(engine, "fox", occurrence_index=1)

        second_fox = NOTES.index("fox", NOTES.index("fox") + 1)
        assert highlight.start_offset == second_fox
        assert highlight.end_offset == second_fox + 3
        assert highlight.is_stale is False
        assert highlight.resource_path == "notes.md"

    def test_concrete_occurrence_scenario(self, temp_dirs):
        write_doc(temp_dirs, "test test test", name="t.md")
        engine = build_engine(temp_dirs)

        highlight = create(engine, "test", occurrence_index=1, resource_path="t.md")

        assert (highlight.start_offset, highlight.end_offset) == (5, 9)
        with pytest.raises(UnresolvableOccurrenceError):
            create(engine, "test", occurrence_index=5, resource_path="t.md")

    def test_whitespace_normalized_selection(self, temp_dirs):
        write_doc(temp_dirs, "Hello    World\n", name="ws.md")
        engine = build_engine(temp_dirs)

        highlight = create(engine, "Hello World", resource_path="ws.md")

        assert (highlight.start_offset, highlight.end_offset) == (0, 14)
        assert highlight.is_stale is False

    def test_missing_document(self, engine):
        with pytest.raises(DocumentNotFoundError):
            create(engine, "fox", resource_path="missing.md")

    def test_unresolvable_highlight_is_not_stored(self, engine):
        with pytest.raises(UnresolvableOccurrenceError):
            create(engine, "wolf")

        assert engine.list_for_resource("notes.md") == []

    def test_overlapping_highlight_rejected(self, engine):
        create(engine, "quick brown")

        with pytest.raises(OverlappingHighlightsError):
            create(engine, "brown fox")

        assert len(engine.list_for_resource("notes.md")) == 1

    def test_adjacent_highlight_allowed(self, engine):
        create(engine, "quick")
        create(engine, " brown")

        assert len(engine.list_for_resource("notes.md")) == 2

    def test_first_highlight_archives_original(self, engine, temp_dirs):
        create(engine, "quick")
        write_doc(temp_dirs, NOTES + "\nMore text.\n")
        create(engine, "More")

        assert engine.archive.get_backup("notes.md") == NOTES

    def test_notes_are_stored(self, engine):
        highlight = create(engine, "lazy", notes="adjective")

        assert highlight.notes == "adjective"


class TestRenderDocument:
    """Test rendering documents with highlights"""

    def test_marks_and_anchor_in_output(self, engine):
        highlight = create(engine, "fox", occurrence_index=1)

        document = engine.render_document("notes.md")

        assert document.error is None
        assert document.html.count("<mark") == 1
        assert f'data-highlight-id="{highlight.id}"' in document.html
        assert f'id="highlight-{highlight.id}"' in document.html
        assert "<h1>Notes</h1>" in document.html
        assert [h.id for h in document.highlights] == [highlight.id]

    def test_document_without_highlights(self, engine):
        document = engine.render_document("notes.md")

        assert "<mark" not in document.html
        assert document.highlights == []

    def test_missing_document(self, engine):
        with pytest.raises(DocumentNotFoundError):
            engine.render_document("missing.md")

    def test_highlights_disabled(self, temp_dirs):
        write_doc(temp_dirs, NOTES)
        create(build_engine(temp_dirs), "quick")
        disabled = build_engine(temp_dirs, highlights_enabled=False)

        document = disabled.render_document("notes.md")

        assert "<mark" not in document.html
        assert document.highlights == []

    def test_overlapping_stored_highlights_render_without_marks(self, temp_dirs):
        write_doc(temp_dirs, "Hello World\n", name="o.md")
        engine = build_engine(temp_dirs)
        engine.highlights.save_highlight("o.md", 0, 5, "Hello")
        engine.highlights.save_highlight("o.md", 3, 8, "lo Wo")

        document = engine.render_document("o.md")

        assert document.error is not None
        assert "Overlapping" in document.error
        assert "<mark" not in document.html
        assert len(document.highlights) == 2


class TestCodeHighlights:
    """Test highlights inside inline code and code blocks"""

    def render_soup(self, temp_dirs, content, *selections):
        write_doc(temp_dirs, content)
        engine = build_engine(temp_dirs)
        created = [create(engine, text, index) for text, index in selections]
        document = engine.render_document("notes.md")
        assert "&lt;mark" not in document.html
        assert "data-code-region" not in document.html
        return created, BeautifulSoup(document.html, "html.parser")

    def test_inline_code(self, temp_dirs):
        (highlight,), soup = self.render_soup(
            temp_dirs, "Run `make build` now.\n", ("make build", 0)
        )

        mark = soup.select_one("code mark")
        assert mark.get_text() == "make build"
        assert mark["data-highlight-id"] == highlight.id
        assert mark["id"] == f"highlight-{highlight.id}"
        assert soup.select_one("p").get_text() == "Run make build now."

    def test_selection_including_backticks(self, temp_dirs):
        _, soup = self.render_soup(
            temp_dirs, "Run `make build` now.\n", ("`make build`", 0)
        )

        assert soup.select_one("code mark").get_text() == "make build"
        assert "`" not in soup.get_text()

    def test_fenced_code_block(self, temp_dirs):
        _, soup = self.render_soup(
            temp_dirs, "Intro\n\n```python\nprint('hi')\n```\n", ("print", 0)
        )

        mark = soup.select_one("pre code mark")
        assert mark.get_text() == "print"
        assert soup.select_one("pre code").get_text() == "print('hi')\n"

    def test_indented_code_block(self, temp_dirs):
        _, soup = self.render_soup(
            temp_dirs, "Example:\n\n    x = compute()\n", ("compute", 0)
        )

        assert soup.select_one("pre code mark").get_text() == "compute"

    def test_prose_and_code_occurrences(self, temp_dirs):
        content = "Call print here.\n\n```\nprint('hi')\nprint('bye')\n```\n"
        (call, in_code), soup = self.render_soup(
            temp_dirs, content, ("Call", 0), ("print", 2)
        )

        marks = soup.select("mark")
        assert [m.get_text() for m in marks] == ["Call", "print"]
        assert marks[0].parent.name == "p"
        assert marks[1]["data-highlight-id"] == in_code.id
        assert marks[1].next_sibling.startswith("('bye')")

    def test_two_highlights_in_one_block(self, temp_dirs):
        _, soup = self.render_soup(
            temp_dirs, "```\na = 1\nb = 2\n```\n", ("a", 0), ("b", 0)
        )

        assert [m.get_text() for m in soup.select("pre mark")] == ["a", "b"]


class TestStaleTransitions:
    """Test revalidation against an edited document"""

    def test_edited_text_becomes_stale(self, temp_dirs):
        write_doc(temp_dirs, "Intro.\n\nHello World and more.\n", name="s.md")
        engine = build_engine(temp_dirs)
        highlight = create(engine, "Hello World", resource_path="s.md")

        write_doc(temp_dirs, "Intro.\n\nSomething else entirely now.\n", name="s.md")
        document = engine.render_document("s.md")

        assert document.highlights[0].is_stale is True
        assert "<mark" not in document.html
        listed = engine.list_for_resource("s.md")
        assert [h.id for h in listed] == [highlight.id]
        assert listed[0].is_stale is True

    def test_restored_text_becomes_fresh(self, temp_dirs):
        original = "Intro.\n\nHello World and more.\n"
        write_doc(temp_dirs, original, name="s.md")
        engine = build_engine(temp_dirs)
        create(engine, "Hello World", resource_path="s.md")

        write_doc(temp_dirs, "Changed.\n", name="s.md")
        engine.render_document("s.md")
        write_doc(temp_dirs, original, name="s.md")
        document = engine.render_document("s.md")

        assert document.highlights[0].is_stale is False
        assert "<mark" in document.html

    def test_stale_highlight_does_not_block_new_one(self, temp_dirs):
        write_doc(temp_dirs, "alpha beta gamma\n", name="s.md")
        engine = build_engine(temp_dirs)
        create(engine, "alpha beta", resource_path="s.md")
        write_doc(temp_dirs, "gamma delta\n", name="s.md")

        highlight = create(engine, "gamma", resource_path="s.md")

        assert highlight.start_offset == 0


class TestHighlightManagement:
    """Test notes, deletion and directory listing"""

    def test_update_notes_strips_whitespace(self, engine):
        highlight = create(engine, "quick")

        assert engine.update_notes(highlight.id, "  remember  ").notes == "remember"
        assert engine.update_notes(highlight.id, "   ").notes is None

    def test_update_notes_missing(self, engine):
        with pytest.raises(HighlightNotFoundError):
            engine.update_notes("nope", "x")

    def test_delete_highlight(self, engine):
        highlight = create(engine, "quick")

        engine.delete_highlight(highlight.id)

        assert engine.list_for_resource("notes.md") == []
        with pytest.raises(HighlightNotFoundError):
            engine.delete_highlight(highlight.id)

    def test_delete_for_resource(self, engine):
        create(engine, "quick")
        create(engine, "lazy")

        assert engine.delete_for_resource("notes.md") == 2
        assert engine.list_for_resource("notes.md") == []
        assert engine.delete_for_resource("notes.md") == 0

    def test_highlight_counts(self, temp_dirs):
        write_doc(temp_dirs, NOTES)
        engine = build_engine(temp_dirs)
        create(engine, "quick")
        create(engine, "lazy")

        counts = engine.highlight_counts()

        assert counts["notes.md"]["highlights_count"] == 2
        assert counts["notes.md"]["stale_count"] == 0
        assert build_engine(temp_dirs, highlights_enabled=False).highlight_counts() == {}

    def test_list_for_directory(self, temp_dirs):
        (temp_dirs["docs_dir"] / "guide").mkdir()
        write_doc(temp_dirs, "guide text\n", name="guide/a.md")
        write_doc(temp_dirs, "top text\n", name="top.md")
        engine = build_engine(temp_dirs)
        create(engine, "guide", resource_path="guide/a.md")
        create(engine, "top", resource_path="top.md")

        assert [h.resource_path for h in engine.list_for_directory("guide")] == [
            "guide/a.md"
        ]
        assert len(engine.list_for_directory(".")) == 2


class TestRestoreOriginal:
    """Test restoring archived document content"""

    def test_restore_in_place(self, engine, temp_dirs):
        highlight = create(engine, "lazy")
        write_doc(temp_dirs, "Rewritten.\n")

        restored = engine.restore_original(highlight.id, use_timestamp=False)

        assert restored == "notes.md"
        assert (temp_dirs["docs_dir"] / "notes.md").read_text(encoding="utf-8") == NOTES

    def test_restore_to_timestamped_copy(self, engine, temp_dirs):
        highlight = create(engine, "lazy")
        write_doc(temp_dirs, "Rewritten.\n")

        restored = engine.restore_original(highlight.id, use_timestamp=True)

        assert restored.startswith("notes-restored-")
        assert restored.endswith(".md")
        assert (temp_dirs["docs_dir"] / restored).read_text(encoding="utf-8") == NOTES
        assert (temp_dirs["docs_dir"] / "notes.md").read_text(
            encoding="utf-8"
        ) == "Rewritten.\n"

    def test_restore_without_backup(self, engine):
        highlight_id = engine.highlights.save_highlight("notes.md", 0, 7, "# Notes")

        with pytest.raises(BackupNotFoundError):
            engine.restore_original(highlight_id, use_timestamp=True)

    def test_restore_missing_highlight(self, engine):
        with pytest.raises(HighlightNotFoundError):
            engine.restore_original("nope", use_timestamp=True)


class TestApplyHighlightsToHtml:
    """Test render-side application through the engine"""

    def test_applies_ranges(self, engine):
        html = '<div class="content"><p>AB CD EF</p></div>'
        ranges = [
            HighlightRange(id="a", start_offset=0, end_offset=2),
            HighlightRange(id="b", start_offset=6, end_offset=8),
        ]

        result = engine.apply_highlights_to_html(html, ranges)

        assert result.error is None
        assert result.applied == {"a": 1, "b": 1}
        assert 'id="highlight-a"' in result.html

    def test_overlapping_ranges_reported(self, engine):
        html = '<div class="content"><p>AB CD EF</p></div>'
        ranges = [
            HighlightRange(id="a", start_offset=0, end_offset=5),
            HighlightRange(id="b", start_offset=3, end_offset=8),
        ]

        result = engine.apply_highlights_to_html(html, ranges)

        assert result.applied == {}
        assert "Overlapping" in result.error
        assert "<mark" not in result.html


class TestExport:
    def test_export_directory(self, engine, temp_dirs):
        create(engine, "lazy", notes="adjective")
        export_dir = temp_dirs["data_dir"] / "exports"

        target = engine.export_directory(".", export_dir)

        content = target.read_text(encoding="utf-8")
        assert target.parent == export_dir
        assert "## notes.md" in content
        assert "> lazy" in content
        assert "**Note:** adjective" in content


class TestFromSettings:
    """Test building the engine from settings"""

    def test_working_store(self, temp_dirs):
        engine = HighlightEngine.from_settings(
            Settings(docs_dir=temp_dirs["docs_dir"], data_dir=temp_dirs["data_dir"])
        )

        assert engine.store_available is True
        assert engine.highlights_enabled is True

    def test_unusable_store_disables_highlights(self, temp_dirs):
        write_doc(temp_dirs, NOTES)
        blocker = temp_dirs["data_dir"] / "blocker"
        blocker.write_text("a regular file", encoding="utf-8")

        engine = HighlightEngine.from_settings(
            Settings(docs_dir=temp_dirs["docs_dir"], data_dir=blocker / "data")
        )

        assert engine.store_available is False
        assert engine.highlights_enabled is False
        document = engine.render_document("notes.md")
        assert "The quick brown fox" in document.html
        assert document.highlights == []
