"""Ingestion pipeline for the content-addressed store."""

from .detectors import HashComputer
from .extractors import DEFAULT_DATE_FIELDS, DateExtractor
from .models import IngestionReport, ItemResult
from .pipeline import IngestionPipeline

__all__ = [
    "DEFAULT_DATE_FIELDS",
    "DateExtractor",
    "HashComputer",
    "IngestionPipeline",
    "IngestionReport",
    "ItemResult",
]
