"""
Base Database Service Module

Shared SQLite plumbing for the record store. Every call opens its own
connection and closes it again, so services hold no connection state and
can be used from any request thread.
"""

import logging
import sqlite3
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

# Configure logger for this module
logger = logging.getLogger(__name__)


class BaseDatabaseService:
    """
    Base class for SQLite-backed services.

    Query helpers are fail-soft: errors are logged and reported through the
    return value (None, an empty list or zero rows) instead of raised.
    ``available`` is False when the database location cannot be used at all.
    """

    def __init__(self, db_path: str = "data/marginalia.db"):
        """
        Args:
            db_path (str): Path to the SQLite database file. Missing parent
                directories are created.
        """
        self.db_path = str(db_path)
        self.available = True
        try:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create database directory for {self.db_path}: {e}")
            self.available = False

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """
        Open a connection that commits on success and is always closed.
        """
        with closing(sqlite3.connect(self.db_path)) as conn:
            conn.row_factory = sqlite3.Row
            with conn:
                yield conn

    def execute_script(self, script: str) -> None:
        """Run DDL; errors propagate since the schema must exist."""
        with self.connection() as conn:
            conn.executescript(script)

    def fetch_one(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        try:
            with self.connection() as conn:
                return conn.execute(query, params).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Database query error: {e}")
            return None

    def fetch_all(self, query: str, params: tuple = ()) -> list[sqlite3.Row]:
        try:
            with self.connection() as conn:
                return conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Database query error: {e}")
            return []

    def execute(self, query: str, params: tuple = ()) -> int:
        """
        Execute an INSERT, UPDATE or DELETE statement.

        Returns:
            int: Number of affected rows, 0 on failure
        """
        try:
            with self.connection() as conn:
                return conn.execute(query, params).rowcount
        except sqlite3.Error as e:
            logger.error(f"Database write error: {e}")
            return 0

    def get_current_timestamp(self) -> str:
        """Current UTC time in SQLite's ``YYYY-MM-DD HH:MM:SS`` format."""
        return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

    def format_timestamp_iso(self, timestamp_str: str) -> str:
        """
        Convert a stored UTC timestamp to ISO 8601.

        "2025-12-11 11:08:40" becomes "2025-12-11T11:08:40Z".
        """
        if not timestamp_str:
            return timestamp_str
        return timestamp_str.replace(" ", "T") + "Z"
