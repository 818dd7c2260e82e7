"""
Highlights Service Module

This module provides the record store for highlights. Each highlight is an
offset range into the source text of one Markdown document, identified by
its path relative to the served directory.

The store is fail-soft: database errors are logged and reported as empty
results, so a broken store degrades the viewer to showing no highlights.
"""

import logging
import sqlite3
import uuid
from typing import Any

from ..models.highlights import Highlight
from .base_database_service import BaseDatabaseService

# Configure logger for this module
logger = logging.getLogger(__name__)

_COLUMNS = """
    id, resource_path, start_offset, end_offset, highlighted_text,
    is_stale, notes, created_at, updated_at
"""


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class HighlightsService(BaseDatabaseService):
    """
    Service class for managing highlights using SQLite.

    This class provides database operations for storing and retrieving:
    - Highlights keyed by document path
    - Stale flags and notes, which are the only mutable fields
    """

    def __init__(self, db_path: str = "data/marginalia.db"):
        """
        Initialize the highlights service.

        Args:
            db_path (str): Path to the SQLite database file
        """
        super().__init__(db_path)
        if self.available:
            self._init_table()

    def _init_table(self):
        """
        Initialize the highlights table and indexes.

        A store that cannot be opened is marked unavailable rather than
        failing, so documents can still be served without highlights.
        """
        try:
            self._create_schema()
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Highlight store at {self.db_path} is unavailable: {e}")
            self.available = False

    def _create_schema(self):
        self.execute_script("""
            CREATE TABLE IF NOT EXISTS highlights (
                id TEXT PRIMARY KEY,                  -- Opaque identifier (uuid4 hex)
                resource_path TEXT NOT NULL,          -- Document path relative to the served directory
                start_offset INTEGER NOT NULL,        -- Source text offset where the highlight starts
                end_offset INTEGER NOT NULL,          -- Source text offset where it ends (exclusive)
                highlighted_text TEXT NOT NULL,       -- The text the user selected
                is_stale INTEGER NOT NULL DEFAULT 0,  -- 1 when the range no longer matches the text
                notes TEXT,                           -- Optional annotation
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                CHECK (start_offset >= 0 AND start_offset < end_offset)
            );

            CREATE INDEX IF NOT EXISTS idx_highlights_resource
            ON highlights(resource_path, start_offset);
        """)

    def _row_to_highlight(self, row: Any) -> Highlight:
        return Highlight(
            id=row["id"],
            resource_path=row["resource_path"],
            start_offset=row["start_offset"],
            end_offset=row["end_offset"],
            highlighted_text=row["highlighted_text"],
            is_stale=bool(row["is_stale"]),
            notes=row["notes"],
            created_at=self.format_timestamp_iso(row["created_at"]),
            updated_at=self.format_timestamp_iso(row["updated_at"]),
        )

    def save_highlight(
        self,
        resource_path: str,
        start_offset: int,
        end_offset: int,
        highlighted_text: str,
        is_stale: bool = False,
        notes: str | None = None,
    ) -> str | None:
        """
        Save a new highlight.

        Args:
            resource_path (str): Document the highlight belongs to
            start_offset (int): Source offset where the highlight starts
            end_offset (int): Source offset where the highlight ends (exclusive)
            highlighted_text (str): The selected text
            is_stale (bool): Whether the range already fails validation
            notes (str | None): Optional annotation

        Returns:
            str | None: The id of the new highlight, or None if creation failed
        """
        highlight_id = uuid.uuid4().hex
        timestamp = self.get_current_timestamp()
        query = f"""
            INSERT INTO highlights ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """
        params = (
            highlight_id,
            resource_path,
            start_offset,
            end_offset,
            highlighted_text,
            int(is_stale),
            notes,
            timestamp,
            timestamp,
        )

        if self.execute(query, params) == 0:
            return None

        logger.info(
            f"Saved highlight {highlight_id} for {resource_path} "
            f"[{start_offset}, {end_offset}) stale={is_stale}"
        )
        return highlight_id

    def get_highlights_for_resource(self, resource_path: str) -> list[Highlight]:
        """
        Retrieve all highlights for a document, ordered by position.
        """
        query = f"""
            SELECT {_COLUMNS}
            FROM highlights
            WHERE resource_path = ?
            ORDER BY start_offset, created_at
        """
        rows = self.fetch_all(query, (resource_path,))
        return [self._row_to_highlight(row) for row in rows]

    def get_highlight_by_id(self, highlight_id: str) -> Highlight | None:
        """
        Retrieve a specific highlight by its unique ID.

        Returns:
            Highlight | None: The highlight, or None if not found
        """
        query = f"SELECT {_COLUMNS} FROM highlights WHERE id = ?"
        row = self.fetch_one(query, (highlight_id,))
        return self._row_to_highlight(row) if row else None

    def get_highlights_by_directory(self, directory: str) -> list[Highlight]:
        """
        Retrieve highlights for every document at or below ``directory``.

        Args:
            directory (str): Directory path relative to the served root;
                "" or "." selects everything

        Returns:
            list[Highlight]: Highlights ordered by document, then position
        """
        prefix = directory.strip().strip("/")
        if prefix in ("", "."):
            query = f"""
                SELECT {_COLUMNS} FROM highlights
                ORDER BY resource_path, start_offset
            """
            params: tuple = ()
        else:
            query = f"""
                SELECT {_COLUMNS} FROM highlights
                WHERE resource_path = ? OR resource_path LIKE ? ESCAPE '\\'
                ORDER BY resource_path, start_offset
            """
            params = (prefix, _escape_like(prefix) + "/%")

        rows = self.fetch_all(query, params)
        return [self._row_to_highlight(row) for row in rows]

    def update_stale_flag(self, highlight_id: str, is_stale: bool) -> bool:
        """
        Persist a stale flag transition.

        Returns:
            bool: True if the highlight was updated
        """
        query = """
            UPDATE highlights
            SET is_stale = ?, updated_at = ?
            WHERE id = ?
        """
        params = (int(is_stale), self.get_current_timestamp(), highlight_id)
        updated = self.execute(query, params) > 0
        if updated:
            logger.info(f"Marked highlight {highlight_id} stale={is_stale}")
        return updated

    def update_notes(self, highlight_id: str, notes: str | None) -> bool:
        """
        Replace the notes of a highlight.

        Returns:
            bool: True if the highlight was updated
        """
        query = """
            UPDATE highlights
            SET notes = ?, updated_at = ?
            WHERE id = ?
        """
        params = (notes, self.get_current_timestamp(), highlight_id)
        return self.execute(query, params) > 0

    def delete_highlight(self, highlight_id: str) -> bool:
        """
        Delete a specific highlight by its ID.

        Returns:
            bool: True if a highlight was deleted, False if none was found or deletion failed
        """
        deleted = (
            self.execute(
                "DELETE FROM highlights WHERE id = ?", (highlight_id,)
            )
            > 0
        )
        if deleted:
            logger.info(f"Deleted highlight {highlight_id}")
        return deleted

    def delete_highlights_for_resource(self, resource_path: str) -> int:
        """
        Delete every highlight attached to a document.

        Returns:
            int: Number of deleted highlights
        """
        deleted = self.execute(
            "DELETE FROM highlights WHERE resource_path = ?", (resource_path,)
        )
        if deleted:
            logger.info(f"Deleted {deleted} highlights for {resource_path}")
        return deleted

    def get_highlights_count_by_resource(self) -> dict[str, dict[str, Any]]:
        """
        Get summary statistics about highlights for every document.

        Returns:
            dict[str, dict[str, Any]]: Document path -> count, stale count and latest date
        """
        query = """
            SELECT
                resource_path,
                COUNT(*) as highlights_count,
                SUM(is_stale) as stale_count,
                MAX(created_at) as latest_highlight_date
            FROM highlights
            GROUP BY resource_path
        """
        rows = self.fetch_all(query)
        return {
            row["resource_path"]: {
                "highlights_count": row["highlights_count"],
                "stale_count": row["stale_count"] or 0,
                "latest_highlight_date": self.format_timestamp_iso(
                    row["latest_highlight_date"]
                ),
            }
            for row in rows
        }
