"""Data models describing ingestion outcomes."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

ItemStatus = Literal["pending", "synced", "failed"]


class ItemResult(BaseModel):
    """Outcome of one input item or resynced object.

    Attributes:
        source: Input path as given, or None in resync mode.
        hash: Content hash once computed.
        status: ``pending`` after collection, then ``synced`` or ``failed``.
        errors: Failures that stopped the item.
        link_errors: Link failures that did not stop the item.
        warnings: Non-fatal notices such as unparseable timestamps.
        links: Index entries created or confirmed during finalization.
    """

    source: Optional[str] = None
    hash: Optional[str] = None
    status: ItemStatus = "pending"
    errors: List[str] = Field(default_factory=list)
    link_errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    links: List[str] = Field(default_factory=list)


class IngestionReport(BaseModel):
    """Aggregated results for one sync cycle."""

    mode: Literal["ingest", "resync"] = "ingest"
    items: List[ItemResult] = Field(default_factory=list)

    @property
    def synced(self) -> List[ItemResult]:
        return [item for item in self.items if item.status == "synced"]

    @property
    def failed(self) -> List[ItemResult]:
        return [item for item in self.items if item.status == "failed"]

    @property
    def pending(self) -> List[ItemResult]:
        return [item for item in self.items if item.status == "pending"]

    def counts(self) -> dict[str, int]:
        return {
            "items": len(self.items),
            "synced": len(self.synced),
            "failed": len(self.failed),
            "warnings": sum(len(item.warnings) for item in self.items),
            "link_errors": sum(len(item.link_errors) for item in self.items),
        }


__all__ = ["IngestionReport", "ItemResult", "ItemStatus"]
