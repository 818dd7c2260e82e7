"""
Backup archive for highlighted documents.

The first time a document is highlighted, its current content is copied into
the archive. When later edits leave highlights stale, the archived content
can be restored, either in place or as a timestamped copy.

Layout: ``<archive_dir>/<resource_id>.md`` holds the content and
``<resource_id>.json`` holds the document path and backup time, where
``resource_id`` is the SHA-256 of the document path.
"""

import hashlib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath

from ..models.documents import ArchiveClearResult, ArchiveFile, ArchiveFileDetails

logger = logging.getLogger(__name__)


def resource_id_for(resource_path: str) -> str:
    return hashlib.sha256(resource_path.encode("utf-8")).hexdigest()


class ArchiveService:
    def __init__(self, archive_dir: str | Path):
        self.archive_dir = Path(archive_dir)

    def _content_path(self, resource_id: str) -> Path:
        return self.archive_dir / f"{resource_id}.md"

    def _meta_path(self, resource_id: str) -> Path:
        return self.archive_dir / f"{resource_id}.json"

    def ensure_backup(self, resource_path: str, content: str) -> bool:
        """
        Archive ``content`` unless a backup of the document already exists.

        Returns:
            bool: True if a new backup was written
        """
        resource_id = resource_id_for(resource_path)
        content_path = self._content_path(resource_id)
        if content_path.exists():
            return False

        self.archive_dir.mkdir(parents=True, exist_ok=True)
        content_path.write_text(content, encoding="utf-8")
        meta = {
            "resource_path": resource_path,
            "original_name": PurePosixPath(resource_path).name,
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        }
        self._meta_path(resource_id).write_text(json.dumps(meta), encoding="utf-8")
        logger.info(f"Archived original content of {resource_path}")
        return True

    def get_backup(self, resource_path: str) -> str | None:
        content_path = self._content_path(resource_id_for(resource_path))
        try:
            return content_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _load_entry(self, meta_path: Path) -> ArchiveFile | None:
        resource_id = meta_path.stem
        content_path = self._content_path(resource_id)
        try:
            meta = json.loads(meta_path.read_text(encoding="utf-8"))
            stat = content_path.stat()
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Skipping unreadable archive entry {resource_id}: {e}")
            return None

        return ArchiveFile(
            resource_id=resource_id,
            resource_path=meta.get("resource_path", ""),
            original_name=meta.get("original_name", ""),
            path=str(content_path),
            size=stat.st_size,
            mtime=stat.st_mtime,
            timestamp=meta.get("timestamp", ""),
        )

    def list_archive_files(self) -> list[ArchiveFile]:
        """All archived documents, most recently modified first."""
        if not self.archive_dir.exists():
            return []
        entries = [self._load_entry(p) for p in self.archive_dir.glob("*.json")]
        return sorted(
            (entry for entry in entries if entry is not None),
            key=lambda entry: entry.mtime,
            reverse=True,
        )

    def get_archive_file_details(self, search: str) -> ArchiveFileDetails | None:
        """
        Find an archived document by path, file name, or resource id prefix.
        """
        if not search:
            return None
        for entry in self.list_archive_files():
            if (
                search == entry.resource_path
                or search == entry.original_name
                or entry.resource_id.startswith(search)
            ):
                content = Path(entry.path).read_text(encoding="utf-8")
                return ArchiveFileDetails(**entry.model_dump(), content=content)
        return None

    def clear_archive(self) -> ArchiveClearResult:
        deleted = 0
        freed = 0
        for entry in self.list_archive_files():
            freed += entry.size
            Path(entry.path).unlink(missing_ok=True)
            self._meta_path(entry.resource_id).unlink(missing_ok=True)
            deleted += 1
        logger.info(f"Cleared archive: {deleted} files, {freed} bytes")
        return ArchiveClearResult(deleted_count=deleted, freed_bytes=freed)
