"""Secondary index interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from photostore.store.errors import LinkError
from photostore.store.models import MetadataRecord


class RelinkResult(BaseModel):
    """Outcome of refreshing the secondary index entries of one record.

    Attributes:
        created: Index entries created during this call.
        present: Index entries that already pointed at the record.
        errors: Failures for individual index entries.
        notes: Informational messages, such as a skipped date entry.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    created: List[Path] = Field(default_factory=list)
    present: List[Path] = Field(default_factory=list)
    errors: List[LinkError] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class IndexBackend(ABC):
    """Maintain alternate lookup paths to canonical objects."""

    @abstractmethod
    def relink(self, record: MetadataRecord) -> RelinkResult:
        """Create or refresh the index entries for ``record``.

        Entries created for earlier tag or date values are left in place.
        """


__all__ = ["IndexBackend", "RelinkResult"]
