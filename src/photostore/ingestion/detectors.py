"""Content fingerprinting."""

from __future__ import annotations

import hashlib
from pathlib import Path

from photostore.store.errors import HashError

CHUNK_SIZE = 1024 * 1024


class HashComputer:
    """Compute SHA-1 content fingerprints."""

    def __init__(self, chunk_size: int = CHUNK_SIZE) -> None:
        self.chunk_size = chunk_size

    def compute(self, path: Path | str) -> str:
        """Return the lowercase hex SHA-1 digest of the file contents.

        Args:
            path: File to fingerprint.

        Returns:
            str: 40-character hex digest.

        Raises:
            HashError: If the file cannot be opened or read.
        """
        digest = hashlib.sha1()
        try:
            with open(path, "rb") as fh:
                for chunk in iter(lambda: fh.read(self.chunk_size), b""):
                    digest.update(chunk)
        except OSError as exc:
            raise HashError(f"{path or '<empty path>'}: cannot read file: {exc}") from exc
        return digest.hexdigest()
