"""Data models for the content-addressed store."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Annotated, ClassVar, Dict, List, Literal, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import MetadataFormatError

HASH_PATTERN = re.compile(r"^[0-9a-f]{40}$")
SHARD_WIDTH = 2
SIDECAR_SUFFIX = ".meta"

BY_SHA_DIRNAME = "by_sha"
BY_DATE_DIRNAME = "by_date"
BY_TAG_DIRNAME = "by_tag"


def validate_hash(value: str) -> str:
    """Return ``value`` if it is a 40-character lowercase hex digest.

    Raises:
        ValueError: If ``value`` is not a content hash.
    """
    if not isinstance(value, str) or not HASH_PATTERN.match(value):
        raise ValueError(f"Not a content hash: {value!r}")
    return value


def is_path_component(name: str) -> bool:
    """Return whether ``name`` is usable as a single directory entry name."""
    return bool(name) and name not in (".", "..") and "/" not in name and "\0" not in name


def validate_tag(tag: str) -> str:
    """Return ``tag`` if it can name one ``by_tag`` directory and one sidecar line.

    Raises:
        ValueError: If ``tag`` is empty, ``.``/``..``, or holds a slash or line break.
    """
    if not is_path_component(tag) or _has_line_break(tag):
        raise ValueError(f"Invalid tag {tag!r}: must be a single path component on one line")
    return tag


def _has_line_break(text: str) -> bool:
    # A trailing carriage return is dropped when a sidecar line is read back.
    return "\n" in text or text.endswith("\r")


class StoragePaths(NamedTuple):
    """Canonical object and sidecar locations for one content hash."""

    canonical: Path
    sidecar: Path


class StoreContext(BaseModel):
    """Location of a store on disk.

    Attributes:
        base_dir: Directory holding the ``by_sha``, ``by_date`` and ``by_tag`` trees.
    """

    model_config = ConfigDict(frozen=True)

    base_dir: Path

    @property
    def by_sha(self) -> Path:
        return self.base_dir / BY_SHA_DIRNAME

    @property
    def by_date(self) -> Path:
        return self.base_dir / BY_DATE_DIRNAME

    @property
    def by_tag(self) -> Path:
        return self.base_dir / BY_TAG_DIRNAME

    def paths_for(self, content_hash: str) -> StoragePaths:
        """Return the sharded canonical and sidecar paths for ``content_hash``.

        The first two hex characters name the shard directory and the
        remaining 38 name the object, e.g. ``by_sha/ab/c123...``.
        """
        validate_hash(content_hash)
        shard = self.by_sha / content_hash[:SHARD_WIDTH]
        name = content_hash[SHARD_WIDTH:]
        return StoragePaths(shard / name, shard / f"{name}{SIDECAR_SUFFIX}")


class Scalar(BaseModel):
    """A single-valued metadata attribute."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["scalar"] = "scalar"
    value: str

    def as_list(self) -> List[str]:
        return [self.value]


class ListValue(BaseModel):
    """A multi-valued metadata attribute in insertion order."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["list"] = "list"
    values: List[str] = Field(default_factory=list)

    def as_list(self) -> List[str]:
        return list(self.values)


FieldValue = Annotated[Union[Scalar, ListValue], Field(discriminator="kind")]


def promote(existing: Scalar | ListValue | None, value: str) -> Scalar | ListValue:
    """Return the attribute obtained by adding ``value`` to ``existing``.

    The first occurrence of a key is a scalar, the second promotes it to a
    two-element list and later occurrences append. Duplicates are kept.

    Args:
        existing: Current attribute value, or None when the key is new.
        value: Value being added.

    Returns:
        Scalar | ListValue: New attribute value; ``existing`` is not modified.
    """
    if existing is None:
        return Scalar(value=value)
    if isinstance(existing, Scalar):
        return ListValue(values=[existing.value, value])
    return ListValue(values=[*existing.values, value])


class CaptureDate(BaseModel):
    """Capture date of a stored object.

    Calendar validity is not enforced; only the component ranges are.
    """

    model_config = ConfigDict(frozen=True)

    year: int = Field(ge=0, le=9999)
    month: int = Field(ge=1, le=12)
    day: int = Field(ge=1, le=31)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.year, self.month, self.day)


class MetadataRecord(BaseModel):
    """Attributes stored in the sidecar of one canonical object.

    Attributes:
        hash: Content hash of the object (derived).
        path: Canonical object path (derived).
        meta_path: Sidecar path (derived).
        attributes: Persisted ``key -> value`` attributes other than ``date``.
        date: Capture date, if known.
    """

    DERIVED_FIELDS: ClassVar[tuple[str, ...]] = ("hash", "path", "meta_path")
    DATE_FIELD: ClassVar[str] = "date"

    hash: str
    path: Path
    meta_path: Path
    attributes: Dict[str, FieldValue] = Field(default_factory=dict)
    date: Optional[CaptureDate] = None

    @property
    def filename(self) -> Optional[str]:
        values = self.get_values("filename")
        return values[-1] if values else None

    @property
    def tags(self) -> List[str]:
        return self.get_values("tag")

    def get_values(self, key: str) -> List[str]:
        """Return the values held for ``key`` as a list (empty when absent)."""
        value = self.attributes.get(key)
        return value.as_list() if value is not None else []

    def add_value(self, key: str, value: str) -> None:
        """Add ``value`` under ``key`` following the promotion rule."""
        self._check_key(key)
        self._check_text(key, value)
        self.attributes[key] = promote(self.attributes.get(key), value)

    def set_field(self, key: str, value: str) -> None:
        """Replace any value held for ``key`` with a single scalar."""
        self._check_key(key)
        self._check_text(key, value)
        self.attributes[key] = Scalar(value=value)

    def _check_key(self, key: str) -> None:
        if key in self.DERIVED_FIELDS or key == self.DATE_FIELD:
            raise ValueError(f"{key!r} cannot be stored as a generic attribute")

    def _check_text(self, key: str, value: str) -> None:
        # Sidecars hold one entry per line and escape only colons in keys.
        if _has_line_break(key) or _has_line_break(value):
            raise MetadataFormatError(f"{self.hash}: line break in {key!r} entry")
        if key.endswith("\\"):
            raise MetadataFormatError(f"{self.hash}: key {key!r} ends with a backslash")


__all__ = [
    "BY_DATE_DIRNAME",
    "BY_SHA_DIRNAME",
    "BY_TAG_DIRNAME",
    "CaptureDate",
    "FieldValue",
    "ListValue",
    "MetadataRecord",
    "Scalar",
    "SIDECAR_SUFFIX",
    "StoragePaths",
    "StoreContext",
    "is_path_component",
    "promote",
    "validate_hash",
    "validate_tag",
]
