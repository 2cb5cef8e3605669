"""Symbolic-link index rooted at ``by_date`` and ``by_tag``."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from photostore.store.errors import LinkError
from photostore.store.models import MetadataRecord, StoreContext, is_path_component

from .base import IndexBackend, RelinkResult

LOGGER = logging.getLogger(__name__)


class SymlinkIndexer(IndexBackend):
    """Link records into ``by_tag/<tag>/`` and ``by_date/<YYYY>/<MM>/<DD>/``.

    Each entry is a relative symbolic link named after the record's original
    file name. Names are not deduplicated: two objects sharing a file name in
    the same directory collide and the second one is reported as an error.
    """

    def __init__(self, context: StoreContext) -> None:
        self._context = context

    def directories_for(self, record: MetadataRecord) -> list[Path]:
        """Return the index directories ``record`` belongs in, tags first."""
        directories = [
            self._context.by_tag / tag for tag in record.tags if is_path_component(tag)
        ]
        if record.date is not None:
            directories.append(
                self._context.by_date
                / f"{record.date.year:04d}"
                / f"{record.date.month:02d}"
                / f"{record.date.day:02d}"
            )
        return directories

    def relink(self, record: MetadataRecord) -> RelinkResult:
        result = RelinkResult()
        filename = record.filename
        if not filename:
            result.errors.append(LinkError(f"{record.hash}: no filename recorded; cannot index"))
            return result
        if not is_path_component(filename):
            result.errors.append(
                LinkError(f"{record.hash}: filename {filename!r} is not a single path component")
            )
            return result
        for tag in record.tags:
            if not is_path_component(tag):
                result.errors.append(
                    LinkError(f"{record.hash}: tag {tag!r} cannot name a directory")
                )
        if record.date is None:
            result.notes.append(f"{record.hash}: no capture date; by_date entry skipped")

        for directory in self.directories_for(record):
            link = directory / filename
            try:
                directory.mkdir(parents=True, exist_ok=True)
                target = os.path.relpath(record.path, directory)
                if link.is_symlink() and os.readlink(link) == target:
                    result.present.append(link)
                    continue
                os.symlink(target, link)
            except FileExistsError:
                result.errors.append(
                    LinkError(f"{record.hash}: {link} already exists with another target")
                )
                continue
            except OSError as exc:
                result.errors.append(LinkError(f"{record.hash}: cannot create {link}: {exc}"))
                continue
            LOGGER.debug("Linked %s -> %s", link, target)
            result.created.append(link)
        return result


__all__ = ["SymlinkIndexer"]
