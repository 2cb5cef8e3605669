"""Secondary indexes over the canonical store."""

from .base import IndexBackend, RelinkResult
from .symlinks import SymlinkIndexer

__all__ = ["IndexBackend", "RelinkResult", "SymlinkIndexer"]
