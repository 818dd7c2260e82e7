"""
Highlight Engine Module

Coordinates the document source, the highlight store, the backup archive and
the Markdown renderer:

- Creation resolves a (text, occurrence index) pair against the current
  source, classifies it and stores the resulting range.
- Rendering revalidates every stored highlight against the current source,
  persists flag flips, and injects markers for the non-stale ones before the
  Markdown is rendered. Highlights inside code are marked after rendering.
- Already-rendered HTML can have ranges applied directly to its tree.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from ..config import Settings
from ..exceptions import (
    BackupNotFoundError,
    DocumentNotFoundError,
    HighlightNotFoundError,
    HighlightStoreError,
    RangeValidationError,
)
from ..models.documents import ApplyHighlightsResponse, RenderedDocument
from ..models.highlights import Highlight, HighlightCreate, HighlightRange
from ..render.canonical_text import extract_canonical_text
from ..render.mark_applier import render_highlights
from ..render.navigation import anchor_highlights
from ..render.tree import SoupTextTree
from .archive_service import ArchiveService
from .document_source import DocumentSource
from .export_service import (
    export_filename,
    generate_markdown_export,
    write_markdown_export,
)
from .highlights_service import HighlightsService
from .mark_injector import inject_highlight_marks
from .markdown_renderer import CODE_REGION_ATTR, CodeRegion, MarkdownRenderer
from .range_validator import validate_highlight_ranges
from .stale_classifier import classify_new_highlight, revalidate
from .text_offsets import count_occurrences_before, find_all_occurrence_ranges

# Configure logger for this module
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _CodeHighlight:
    highlight_id: str
    text: str
    occurrence_index: int


def _clip_to_region(
    source: str, region: CodeRegion, highlight: HighlightRange
) -> _CodeHighlight:
    """The part of ``highlight`` inside ``region``, located by occurrence."""
    start = max(highlight.start_offset, region.start_offset)
    end = min(highlight.end_offset, region.end_offset)
    text = source[start:end]
    region_text = source[region.start_offset : region.end_offset]
    return _CodeHighlight(
        highlight_id=highlight.id,
        text=text,
        occurrence_index=count_occurrences_before(
            region_text, text, start - region.start_offset
        ),
    )


class HighlightEngine:
    """
    Facade over the services that make up the highlight workflow.
    """

    def __init__(
        self,
        documents: DocumentSource,
        highlights: HighlightsService,
        archive: ArchiveService,
        renderer: MarkdownRenderer | None = None,
        highlights_enabled: bool = True,
    ):
        self.documents = documents
        self.highlights = highlights
        self.archive = archive
        self.renderer = renderer or MarkdownRenderer()
        self.highlights_enabled = highlights_enabled

    @classmethod
    def from_settings(cls, settings: Settings) -> "HighlightEngine":
        highlights = HighlightsService(str(settings.db_path))
        enabled = settings.highlights_enabled
        if enabled and not highlights.available:
            logger.warning(
                f"Highlight store at {settings.db_path} cannot be opened; "
                "serving documents without highlights"
            )
            enabled = False
        return cls(
            documents=DocumentSource(settings.docs_dir),
            highlights=highlights,
            archive=ArchiveService(settings.archive_dir),
            highlights_enabled=enabled,
        )

    @property
    def store_available(self) -> bool:
        return self.highlights.available

    def _read_source(self, resource_path: str) -> str:
        source = self.documents.read_text(resource_path)
        if source is None:
            raise DocumentNotFoundError(resource_path)
        return source

    def _get_highlight(self, highlight_id: str) -> Highlight:
        highlight = self.highlights.get_highlight_by_id(highlight_id)
        if highlight is None:
            raise HighlightNotFoundError(highlight_id)
        return highlight

    def create_highlight(self, request: HighlightCreate) -> Highlight:
        """
        Resolve a selection against the current source and store it.

        Raises:
            DocumentNotFoundError: If the document does not exist.
            UnresolvableOccurrenceError: If the occurrence does not resolve.
            OverlappingHighlightsError: If the range overlaps a non-stale highlight.
            HighlightStoreError: If the record could not be written.
        """
        source = self._read_source(request.resource_path)
        classification = classify_new_highlight(
            source, request.highlighted_text, request.occurrence_index
        )

        if not classification.is_stale:
            existing = self.revalidate_resource(request.resource_path, source)
            candidate = HighlightRange(
                id="",
                start_offset=classification.start_offset,
                end_offset=classification.end_offset,
            )
            for highlight in existing:
                if not highlight.is_stale:
                    validate_highlight_ranges([highlight, candidate])

        self.archive.ensure_backup(request.resource_path, source)

        highlight_id = self.highlights.save_highlight(
            resource_path=request.resource_path,
            start_offset=classification.start_offset,
            end_offset=classification.end_offset,
            highlighted_text=request.highlighted_text,
            is_stale=classification.is_stale,
            notes=request.notes,
        )
        if highlight_id is None:
            raise HighlightStoreError("Failed to create highlight")

        highlight = self.highlights.get_highlight_by_id(highlight_id)
        if highlight is None:
            raise HighlightStoreError("Failed to retrieve created highlight")
        return highlight

    def revalidate_resource(self, resource_path: str, source: str) -> list[Highlight]:
        """
        Recompute staleness for a document and persist any flag that flipped.

        Returns:
            list[Highlight]: The document's highlights with current flags
        """
        stored = self.highlights.get_highlights_for_resource(resource_path)
        transitions = revalidate(source, stored)
        if not transitions:
            return stored

        for transition in transitions:
            self.highlights.update_stale_flag(
                transition.highlight_id, transition.is_stale
            )
        logger.info(
            f"Revalidated {resource_path}: {len(transitions)} stale flag changes"
        )
        return self.highlights.get_highlights_for_resource(resource_path)

    def render_document(self, resource_path: str) -> RenderedDocument:
        """
        Render a document with its non-stale highlights marked.

        Highlights in prose are injected into the source before rendering.
        Markdown escapes everything inside code, so highlights that fall in a
        code span or code block are applied to the rendered code element
        instead.

        An invalid highlight batch does not fail the render: the document is
        rendered without marks and the error is returned for display.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        source = self._read_source(resource_path)
        highlights: list[Highlight] = []
        error = None
        marked = source
        code_ranges: dict[int, list[_CodeHighlight]] = {}

        if self.highlights_enabled:
            highlights = self.revalidate_resource(resource_path, source)
            active = [h for h in highlights if not h.is_stale]
            try:
                validate_highlight_ranges(active)
                regions = self.renderer.find_code_regions(source)
                prose = []
                for highlight in active:
                    in_code = [
                        r
                        for r in regions
                        if r.intersects(highlight.start_offset, highlight.end_offset)
                    ]
                    if not in_code:
                        prose.append(highlight)
                    for region in in_code:
                        code_ranges.setdefault(region.ordinal, []).append(
                            _clip_to_region(source, region, highlight)
                        )
                marked = inject_highlight_marks(source, prose)
            except RangeValidationError as e:
                logger.warning(f"Not rendering highlights for {resource_path}: {e}")
                error = str(e)

        tree = SoupTextTree.from_html(
            self.renderer.render(marked, tag_code_regions=True)
        )
        self._mark_code_elements(tree, code_ranges, resource_path)
        anchor_highlights(tree)

        return RenderedDocument(
            resource_path=resource_path,
            html=tree.to_html(),
            highlights=highlights,
            error=error,
        )

    def _mark_code_elements(
        self,
        tree: SoupTextTree,
        code_ranges: dict[int, list[_CodeHighlight]],
        resource_path: str,
    ) -> None:
        """
        Wrap highlighted code text in marks and drop the region labels.

        ``code_ranges`` holds the highlighted text per code element ordinal,
        located by occurrence since rendering drops the source offsets.
        """
        for element in tree.root.select(f"[{CODE_REGION_ATTR}]"):
            ordinal = int(element[CODE_REGION_ATTR])
            del element[CODE_REGION_ATTR]
            pending = code_ranges.get(ordinal)
            if not pending:
                continue

            code_tree = SoupTextTree(tree.soup, element)
            code_text = extract_canonical_text(code_tree)
            ranges = []
            for item in pending:
                found = find_all_occurrence_ranges(code_text, item.text)
                if item.occurrence_index >= len(found):
                    logger.warning(
                        f"Highlight {item.highlight_id} not found in code element "
                        f"{ordinal} of {resource_path}"
                    )
                    continue
                match = found[item.occurrence_index]
                ranges.append(
                    HighlightRange(
                        id=item.highlight_id,
                        start_offset=match.start_offset,
                        end_offset=match.end_offset,
                    )
                )

            try:
                render_highlights(code_tree, ranges)
            except RangeValidationError as e:
                logger.warning(
                    f"Not marking code element {ordinal} of {resource_path}: {e}"
                )

    def apply_highlights_to_html(
        self, html: str, ranges: Sequence[HighlightRange]
    ) -> ApplyHighlightsResponse:
        """
        Apply canonical-text ranges to already-rendered HTML.
        """
        tree = SoupTextTree.from_html(html)
        try:
            marks = render_highlights(tree, ranges)
        except RangeValidationError as e:
            logger.warning(f"Rejected highlight batch: {e}")
            return ApplyHighlightsResponse(html=tree.to_html(), applied={}, error=str(e))

        anchor_highlights(tree)
        return ApplyHighlightsResponse(
            html=tree.to_html(),
            applied={highlight_id: len(m) for highlight_id, m in marks.items()},
        )

    def list_for_resource(self, resource_path: str) -> list[Highlight]:
        return self.highlights.get_highlights_for_resource(resource_path)

    def list_for_directory(self, directory: str) -> list[Highlight]:
        return self.highlights.get_highlights_by_directory(directory)

    def export_directory(self, directory: str, export_dir: str | Path) -> Path:
        """
        Write every highlight under ``directory`` to a Markdown file.

        Returns:
            Path: The written export file
        """
        highlights = self.list_for_directory(directory)
        content = generate_markdown_export(highlights, directory)
        root = self.documents.resolve(directory) or self.documents.root_dir
        return write_markdown_export(content, export_filename(root), export_dir)

    def delete_highlight(self, highlight_id: str) -> None:
        if not self.highlights.delete_highlight(highlight_id):
            raise HighlightNotFoundError(highlight_id)

    def delete_for_resource(self, resource_path: str) -> int:
        """Delete every highlight of a document and return how many were removed."""
        return self.highlights.delete_highlights_for_resource(resource_path)

    def highlight_counts(self) -> dict[str, dict[str, Any]]:
        """
        Per-document highlight statistics, keyed by document path.

        Empty when highlights are disabled.
        """
        if not self.highlights_enabled:
            return {}
        return self.highlights.get_highlights_count_by_resource()

    def update_notes(self, highlight_id: str, notes: str | None) -> Highlight:
        self._get_highlight(highlight_id)
        cleaned = notes.strip() if notes else None
        if not self.highlights.update_notes(highlight_id, cleaned or None):
            raise HighlightStoreError("Failed to update notes")
        return self._get_highlight(highlight_id)

    def restore_original(self, highlight_id: str, use_timestamp: bool) -> str:
        """
        Restore the archived content of the highlight's document.

        Args:
            highlight_id: Highlight whose document should be restored
            use_timestamp: Write a timestamped copy instead of overwriting

        Returns:
            str: Path of the restored file relative to the served directory

        Raises:
            HighlightNotFoundError: If the highlight does not exist.
            BackupNotFoundError: If the document was never archived.
        """
        highlight = self._get_highlight(highlight_id)
        resource_path = highlight.resource_path
        content = self.archive.get_backup(resource_path)
        if content is None:
            raise BackupNotFoundError(resource_path)

        target = (
            self.documents.timestamped_sibling(resource_path)
            if use_timestamp
            else resource_path
        )
        written: Path = self.documents.write_text(target, content)
        logger.info(f"Restored {resource_path} to {target}")
        return self.documents.relative_path(written)
