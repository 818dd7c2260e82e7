"""
Document source provider.

Reads and writes Markdown files below the served directory. Documents are
addressed by POSIX paths relative to that directory; anything that resolves
outside of it is treated as missing.
"""

import logging
from datetime import datetime
from pathlib import Path, PurePosixPath

from ..models.documents import MarkdownFile

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIXES = (".md", ".markdown")
SKIPPED_DIRECTORIES = {"node_modules", "__pycache__", "venv"}


class DocumentSource:
    def __init__(self, root_dir: str | Path):
        self.root_dir = Path(root_dir).resolve()

    def resolve(self, resource_path: str) -> Path | None:
        """Absolute path of a document, or None if it lies outside the root."""
        relative = PurePosixPath(resource_path.lstrip("/"))
        candidate = (self.root_dir / relative).resolve()
        if candidate != self.root_dir and self.root_dir not in candidate.parents:
            logger.warning(f"Rejected path outside served directory: {resource_path}")
            return None
        return candidate

    def relative_path(self, path: Path) -> str:
        return path.resolve().relative_to(self.root_dir).as_posix()

    def read_text(self, resource_path: str) -> str | None:
        """Source text of a Markdown document, or None if it cannot be read."""
        path = self.resolve(resource_path)
        if path is None or path.suffix.lower() not in MARKDOWN_SUFFIXES:
            return None
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(f"Error reading {resource_path}: {e}")
            return None

    def write_text(self, resource_path: str, content: str) -> Path:
        path = self.resolve(resource_path)
        if path is None:
            raise ValueError(f"Path is outside the served directory: {resource_path}")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        logger.info(f"Wrote {len(content)} characters to {resource_path}")
        return path

    def timestamped_sibling(self, resource_path: str, when: datetime | None = None) -> str:
        """Path for a restored copy next to the document, e.g. ``notes-restored-20250101-120000.md``."""
        when = when or datetime.now()
        path = PurePosixPath(resource_path)
        name = f"{path.stem}-restored-{when:%Y%m%d-%H%M%S}{path.suffix}"
        return str(path.with_name(name))

    def scan_markdown_files(self, max_depth: int = 10) -> list[MarkdownFile]:
        """List Markdown files below the root, skipping hidden and vendored directories."""
        files = []
        for path in sorted(self.root_dir.rglob("*")):
            relative = path.relative_to(self.root_dir)
            depth = len(relative.parts) - 1
            if depth > max_depth or not path.is_file():
                continue
            if path.suffix.lower() not in MARKDOWN_SUFFIXES:
                continue
            if any(
                part.startswith(".") or part in SKIPPED_DIRECTORIES
                for part in relative.parts[:-1]
            ):
                continue
            files.append(
                MarkdownFile(path=relative.as_posix(), name=path.name, depth=depth)
            )
        return files
