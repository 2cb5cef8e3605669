"""Configuration models describing Photostore settings."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from photostore.ingestion.extractors import DEFAULT_DATE_FIELDS


class PhotostoreBaseModel(BaseModel):
    """Shared configuration for Photostore Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class StoreSettings(PhotostoreBaseModel):
    """Location of the content-addressed store.

    Attributes:
        base_dir: Directory holding ``by_sha``, ``by_date`` and ``by_tag``.
    """

    base_dir: str = "~/Pictures/photostore"

    def resolved_base_dir(self) -> Path:
        return Path(self.base_dir).expanduser()


class IngestionOptions(PhotostoreBaseModel):
    """Options governing a sync cycle.

    Attributes:
        progress_interval: Number of inputs between progress log lines.
        default_tags: Tags added to every ingested file.
        date_fields: Embedded timestamp fields consulted, in order.
    """

    progress_interval: int = Field(default=100, ge=1)
    default_tags: List[str] = Field(default_factory=list)
    date_fields: List[str] = Field(default_factory=lambda: list(DEFAULT_DATE_FIELDS))


class LoggingSettings(PhotostoreBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional log file receiving a copy of diagnostics.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "INFO"
    file: Optional[str] = None
    max_size_mb: int = 10
    backup_count: int = 3


class CLIOptions(PhotostoreBaseModel):
    """CLI behavior defaults.

    Attributes:
        quiet_default: Whether commands only report warnings and errors by default.
    """

    quiet_default: bool = False


class PhotostoreConfig(PhotostoreBaseModel):
    """Top-level configuration struct for Photostore."""

    store: StoreSettings = Field(default_factory=StoreSettings)
    ingestion: IngestionOptions = Field(default_factory=IngestionOptions)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "CLIOptions",
    "IngestionOptions",
    "LoggingSettings",
    "PhotostoreBaseModel",
    "PhotostoreConfig",
    "StoreSettings",
]
