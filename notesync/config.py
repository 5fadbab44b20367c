"""
Configuration module for notesync.

Uses pydantic-settings for configuration management with environment variable support.
Environment variables use NOTESYNC_ prefix (e.g., NOTESYNC_DIRECTORIES).
List settings are read from the environment as JSON.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import PathSpec


def _get_default_index_path() -> Path:
    """Get default location of the SQLite search index."""
    return Path.home() / ".notesync" / "index.sqlite3"


class Settings(BaseSettings):
    """Application settings with environment variable support.

    Environment variables:
    - NOTESYNC_DIRECTORIES: JSON list of root specs (strings or expressions)
    - NOTESYNC_EXTENSION: Primary note extension
    - NOTESYNC_SECONDARY_EXTENSIONS: JSON list of additional extensions
    - NOTESYNC_EXCLUDE_PREFIXES: Name prefix characters skipped when scanning
    - NOTESYNC_ARCHIVE_DIRECTORY: Archive subdirectory name
    - NOTESYNC_USE_SEARCH_INDEX: Whether to use the SQLite full-text index
    - NOTESYNC_INDEX_PATH: Path to the SQLite index file
    - NOTESYNC_MAX_RESULTS: Maximum query results (0 = unlimited)
    - NOTESYNC_ORDER: Result order, "recency" or "relevance"
    - NOTESYNC_FILTER_CASE_SENSITIVE: Case-sensitive filter matching
    - NOTESYNC_MAX_FILE_SIZE: Files larger than this are not parsed
    - NOTESYNC_LOG_LEVEL: Logging level name
    """

    directories: list[str | PathSpec] = Field(default_factory=lambda: ["~/notes"])
    extension: str = "org"
    secondary_extensions: list[str] = Field(default_factory=lambda: ["md", "txt"])
    exclude_prefixes: str = "._#"
    archive_directory: str = "_archive"
    use_search_index: bool = True
    index_path: Path = Field(default_factory=_get_default_index_path)
    max_results: int = Field(default=100, ge=0)
    order: Literal["recency", "relevance"] = "recency"
    filter_case_sensitive: bool = False
    max_file_size: int = 1 * 1024 * 1024  # 1MB in bytes
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="NOTESYNC_")

    @property
    def extensions(self) -> tuple[str, ...]:
        """Primary extension followed by the secondary ones, without dots."""
        exts = [self.extension.lstrip(".")]
        for ext in self.secondary_extensions:
            ext = ext.lstrip(".")
            if ext and ext not in exts:
                exts.append(ext)
        return tuple(exts)


# Global settings instance
settings = Settings()
