"""Application configuration using pydantic-settings.

All environment variables are read through the Settings class, prefixed
with ``MARGINALIA_`` (e.g. ``MARGINALIA_DOCS_DIR``). Consumers call
``get_settings()`` to obtain a cached instance; tests construct services
directly with temporary paths instead.
"""

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_data_dir() -> Path:
    # XDG_DATA_HOME, falling back to ~/.local/share
    base = os.environ.get("XDG_DATA_HOME") or Path.home() / ".local" / "share"
    return Path(base) / "marginalia"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MARGINALIA_", env_file=".env", extra="ignore"
    )

    docs_dir: Path = Path(".")
    data_dir: Path = Field(default_factory=_default_data_dir)
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=0, le=65535)
    log_level: str = "INFO"
    tree_depth: int = 10
    highlights_enabled: bool = True

    @property
    def db_path(self) -> Path:
        return self.data_dir / "marginalia.db"

    @property
    def archive_dir(self) -> Path:
        return self.data_dir / "archive"

    @property
    def export_dir(self) -> Path:
        return self.data_dir / "exports"


@lru_cache
def get_settings() -> Settings:
    return Settings()
