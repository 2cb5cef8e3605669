"""Content-addressed object store."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from . import sidecar
from .errors import (
    DateExtractionWarning,
    HashError,
    InputError,
    LinkError,
    MetadataFormatError,
    PhotostoreError,
    SidecarWriteError,
)
from .models import (
    HASH_PATTERN,
    SHARD_WIDTH,
    SIDECAR_SUFFIX,
    CaptureDate,
    ListValue,
    MetadataRecord,
    Scalar,
    StoragePaths,
    StoreContext,
    promote,
)

LOGGER = logging.getLogger(__name__)

_NAME_LENGTH = 40 - SHARD_WIDTH


class Store:
    """Resolve content hashes to canonical objects and create them."""

    def __init__(self, context: StoreContext) -> None:
        """Initialize the store for a base directory.

        Args:
            context: Store location shared with the sidecar and index helpers.
        """
        self._context = context

    @property
    def context(self) -> StoreContext:
        return self._context

    def path_for(self, content_hash: str, create_parent: bool = False) -> StoragePaths:
        """Return the canonical and sidecar paths for ``content_hash``.

        Args:
            content_hash: 40-character lowercase hex digest.
            create_parent: Whether to create the shard directory.

        Returns:
            StoragePaths: Canonical object path and sidecar path.
        """
        paths = self._context.paths_for(content_hash)
        if create_parent:
            paths.canonical.parent.mkdir(parents=True, exist_ok=True)
        return paths

    def list_all(self) -> list[str]:
        """Return every content hash with a canonical object on disk.

        Sidecars are skipped; dangling canonical links are still listed.

        Returns:
            list[str]: Sorted content hashes.
        """
        root = self._context.by_sha
        if not root.is_dir():
            return []

        hashes: list[str] = []
        for shard in sorted(root.iterdir()):
            if len(shard.name) != SHARD_WIDTH or not shard.is_dir():
                continue
            for entry in sorted(shard.iterdir()):
                if entry.name.endswith(SIDECAR_SUFFIX) or len(entry.name) != _NAME_LENGTH:
                    continue
                candidate = shard.name + entry.name
                if HASH_PATTERN.match(candidate):
                    hashes.append(candidate)
        return hashes

    def ingest(self, content_hash: str, source: Path | str) -> Path:
        """Create the canonical object for ``content_hash`` pointing at ``source``.

        An existing canonical object is never overwritten or inspected.

        Args:
            content_hash: Content hash of ``source``.
            source: File the canonical link points at.

        Returns:
            Path: Canonical object path.

        Raises:
            LinkError: If the link exists already or cannot be created.
        """
        paths = self._context.paths_for(content_hash)
        target = os.path.abspath(os.fspath(source))
        try:
            paths.canonical.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise LinkError(
                f"Cannot create shard directory {paths.canonical.parent}: {exc}"
            ) from exc
        try:
            os.symlink(target, paths.canonical)
        except FileExistsError as exc:
            raise LinkError(f"Canonical object for {content_hash} already exists") from exc
        except OSError as exc:
            raise LinkError(f"Cannot link {paths.canonical} -> {target}: {exc}") from exc
        LOGGER.debug("Created canonical object %s -> %s", paths.canonical, target)
        return paths.canonical

    def exists(self, content_hash: str) -> bool:
        canonical = self._context.paths_for(content_hash).canonical
        return canonical.is_symlink() or canonical.exists()

    def load(self, content_hash: str) -> MetadataRecord:
        """Load the metadata record for ``content_hash``."""
        return sidecar.load(self._context, content_hash)


__all__ = [
    "CaptureDate",
    "DateExtractionWarning",
    "HashError",
    "InputError",
    "LinkError",
    "ListValue",
    "MetadataFormatError",
    "MetadataRecord",
    "PhotostoreError",
    "Scalar",
    "SidecarWriteError",
    "StoragePaths",
    "Store",
    "StoreContext",
    "promote",
    "sidecar",
]
