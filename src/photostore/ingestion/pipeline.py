"""Two-phase ingestion: collect records, then persist and index them."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from photostore.index.base import IndexBackend
from photostore.store import Store, sidecar
from photostore.store.errors import (
    HashError,
    InputError,
    LinkError,
    MetadataFormatError,
    PhotostoreError,
)
from photostore.store.models import CaptureDate, MetadataRecord, validate_tag

from .detectors import HashComputer
from .extractors import DateExtractor
from .models import IngestionReport, ItemResult

LOGGER = logging.getLogger(__name__)

DEFAULT_PROGRESS_INTERVAL = 100

PendingRecord = Tuple[ItemResult, MetadataRecord]


class IngestionPipeline:
    """Coordinate hashing, canonical linking, metadata merging and indexing.

    Every input is handled in order. A failing item is recorded on its
    :class:`ItemResult` and logged once; it never stops the batch. Records are
    only written and indexed in :meth:`finalize`, after collection completes.

    Raises:
        ValueError: If a tag cannot name a ``by_tag`` directory.
    """

    def __init__(
        self,
        store: Store,
        hasher: HashComputer,
        extractor: DateExtractor,
        indexer: IndexBackend,
        *,
        tags: Sequence[str] = (),
        progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.extractor = extractor
        self.indexer = indexer
        self.tags = [validate_tag(tag) for tag in tags]
        self.progress_interval = max(1, progress_interval)

    def run(self, paths: Iterable[str]) -> IngestionReport:
        """Ingest ``paths``, or resync every known object when there are none."""
        report = IngestionReport()
        pending = self.collect(paths, report)
        if not report.items:
            LOGGER.info("No input paths given; resyncing every stored object.")
            report.mode = "resync"
            pending = self.collect_known(report)
        self.finalize(pending)
        return report

    def resync(self) -> IngestionReport:
        """Reload, persist and reindex every object in the store."""
        report = IngestionReport(mode="resync")
        self.finalize(self.collect_known(report))
        return report

    def collect(self, paths: Iterable[str], report: IngestionReport) -> List[PendingRecord]:
        """Hash, link and merge each input path into a pending batch."""
        pending: List[PendingRecord] = []
        for count, source in enumerate(paths, start=1):
            item = ItemResult(source=source)
            report.items.append(item)
            record = self._collect_one(source, item)
            if record is not None:
                pending.append((item, record))
            self._progress(count)
        return pending

    def collect_known(self, report: IngestionReport) -> List[PendingRecord]:
        """Load every stored record into a pending batch."""
        pending: List[PendingRecord] = []
        for count, content_hash in enumerate(self.store.list_all(), start=1):
            item = ItemResult(hash=content_hash)
            report.items.append(item)
            try:
                record = self.store.load(content_hash)
            except (MetadataFormatError, InputError) as exc:
                self._fail(item, exc)
                continue
            try:
                sidecar.merge(record, {}, date_source=lambda: self._dates(record.path, item))
            except InputError as exc:
                self._warn(item, f"{content_hash}: capture date not derived: {exc}")
            pending.append((item, record))
            self._progress(count)
        return pending

    def finalize(self, pending: Iterable[PendingRecord]) -> None:
        """Persist each pending record, then refresh its index entries."""
        for item, record in pending:
            try:
                sidecar.save(record)
            except PhotostoreError as exc:
                self._fail(item, exc)
                continue

            result = self.indexer.relink(record)
            item.links = [str(link) for link in [*result.created, *result.present]]
            for error in result.errors:
                self._link_problem(item, error)
            for note in result.notes:
                self._warn(item, note)
            item.status = "synced"
            LOGGER.info("Synced %s (%s)", record.hash, record.filename or "no filename")

    def _collect_one(self, source: str, item: ItemResult) -> MetadataRecord | None:
        try:
            item.hash = self.hasher.compute(source)
        except HashError as exc:
            return self._fail(item, exc)

        try:
            self.store.ingest(item.hash, source)
        except LinkError as exc:
            self._link_problem(item, exc)

        try:
            record = self.store.load(item.hash)
            record.set_field("filename", os.path.basename(source))
            sidecar.merge(
                record,
                {"tag": self.tags},
                date_source=lambda: self._dates(source, item),
            )
        except (MetadataFormatError, InputError) as exc:
            return self._fail(item, exc)
        return record

    def _dates(self, path: Path | str, item: ItemResult) -> List[CaptureDate]:
        candidates, warnings = self.extractor.extract_with_warnings(path)
        for warning in warnings:
            self._warn(item, str(warning))
        return candidates

    def _progress(self, count: int) -> None:
        if count % self.progress_interval == 0:
            LOGGER.info("Collected %d item(s)", count)

    def _fail(self, item: ItemResult, exc: Exception) -> None:
        item.status = "failed"
        item.errors.append(str(exc))
        LOGGER.error("%s", exc)
        return None

    def _link_problem(self, item: ItemResult, exc: LinkError) -> None:
        item.link_errors.append(str(exc))
        LOGGER.warning("%s", exc)

    def _warn(self, item: ItemResult, message: str) -> None:
        item.warnings.append(message)
        LOGGER.warning("%s", message)
