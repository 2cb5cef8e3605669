"""Sidecar persistence for metadata records.

A sidecar is a UTF-8 text file next to its canonical object holding one
``key: value`` pair per line. Literal colons inside a key are escaped as
``\\:``. Multi-valued keys are written as repeated lines in list order, and the
capture date is written as ``date: YYYY-MM-DD``.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable, Iterable, Mapping, Sequence

from pydantic import ValidationError

from .errors import InputError, MetadataFormatError, SidecarWriteError
from .models import CaptureDate, MetadataRecord, StoreContext

LOGGER = logging.getLogger(__name__)

_SEPARATOR = re.compile(r"(?<!\\):")
_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

DateSource = Callable[[], Iterable[CaptureDate]]


def escape_key(key: str) -> str:
    return key.replace(":", "\\:")


def unescape_key(key: str) -> str:
    return key.replace("\\:", ":")


def parse_line(line: str) -> tuple[str, str]:
    """Split a sidecar line into its key and value.

    Args:
        line: Line without its terminator.

    Returns:
        tuple[str, str]: Unescaped, trimmed key and the raw value.

    Raises:
        MetadataFormatError: If the line has no unescaped separator.
    """
    match = _SEPARATOR.search(line)
    if match is None:
        raise MetadataFormatError(f"Missing key separator in line {line!r}")
    key = unescape_key(line[: match.start()]).strip()
    value = line[match.end() :]
    if value.startswith(" "):
        value = value[1:]
    return key, value


def format_line(key: str, value: str) -> str:
    return f"{escape_key(key)}: {value}"


def parse_date(value: str) -> CaptureDate:
    """Parse a strict ``YYYY-MM-DD`` value.

    Raises:
        MetadataFormatError: If the value is not a zero-padded in-range date.
    """
    match = _DATE_PATTERN.match(value)
    if match is None:
        raise MetadataFormatError(f"Invalid date {value!r}; expected YYYY-MM-DD")
    year, month, day = (int(part) for part in match.groups())
    try:
        return CaptureDate(year=year, month=month, day=day)
    except ValidationError as exc:
        raise MetadataFormatError(f"Invalid date {value!r}: out of range") from exc


def reduce_dates(candidates: Iterable[CaptureDate]) -> CaptureDate | None:
    """Reduce candidate capture dates to the one stored in a record.

    Year, month and day are each minimized independently, so (2020, 5, 10) and
    (2019, 11, 25) reduce to (2019, 5, 10), which is neither candidate.
    Existing stores were built with this rule; confirm the intended behaviour
    before switching to a whole-date minimum.

    Args:
        candidates: Dates reported for one file.

    Returns:
        CaptureDate | None: Reduced date, or None when there are no candidates.
    """
    items = list(candidates)
    if not items:
        return None
    return CaptureDate(
        year=min(item.year for item in items),
        month=min(item.month for item in items),
        day=min(item.day for item in items),
    )


def load(context: StoreContext, content_hash: str) -> MetadataRecord:
    """Load the metadata record for ``content_hash``.

    Args:
        context: Store location.
        content_hash: Content hash of the canonical object.

    Returns:
        MetadataRecord: Record with derived fields and any stored attributes.

    Raises:
        MetadataFormatError: If the sidecar is malformed.
        InputError: If the sidecar exists but cannot be read.
    """
    paths = context.paths_for(content_hash)
    record = MetadataRecord(hash=content_hash, path=paths.canonical, meta_path=paths.sidecar)
    try:
        text = paths.sidecar.read_text(encoding="utf-8")
    except FileNotFoundError:
        return record
    except UnicodeDecodeError as exc:
        raise MetadataFormatError(f"{paths.sidecar}: not valid UTF-8: {exc}") from exc
    except OSError as exc:
        raise InputError(f"Cannot read sidecar {paths.sidecar}: {exc}") from exc

    for number, line in enumerate(text.split("\n"), start=1):
        line = line.removesuffix("\r")
        if not line.strip():
            continue
        try:
            key, value = parse_line(line)
            if key == MetadataRecord.DATE_FIELD:
                record.date = parse_date(value)
            elif key in MetadataRecord.DERIVED_FIELDS:
                LOGGER.debug("Ignoring derived key %r in %s", key, paths.sidecar)
            else:
                record.add_value(key, value)
        except MetadataFormatError as exc:
            raise MetadataFormatError(f"{paths.sidecar}:{number}: {exc}") from exc
    return record


def merge(
    record: MetadataRecord,
    updates: Mapping[str, str | Sequence[str]],
    *,
    date_source: DateSource | None = None,
) -> MetadataRecord:
    """Add new attribute values to ``record`` without discarding existing ones.

    Values already held by a key are skipped. A date is only computed when
    the record has none: first from a ``date`` entry in ``updates``, then from
    ``date_source`` reduced with :func:`reduce_dates`.

    Args:
        record: Record to update in place.
        updates: Mapping of keys to a value or a sequence of values.
        date_source: Callable returning date candidates; only called when needed.

    Returns:
        MetadataRecord: The updated record.
    """
    for key, raw in updates.items():
        values = [raw] if isinstance(raw, str) else list(raw)
        if key == MetadataRecord.DATE_FIELD:
            if record.date is None and values:
                record.date = parse_date(values[-1])
            continue
        held = record.get_values(key)
        for value in values:
            if value in held:
                continue
            record.add_value(key, value)
            held.append(value)

    if record.date is None and date_source is not None:
        record.date = reduce_dates(date_source())
    return record


def dumps(record: MetadataRecord) -> str:
    """Serialize the persisted fields of ``record`` in sorted key order."""
    entries = {key: value.as_list() for key, value in record.attributes.items()}
    if record.date is not None:
        entries[MetadataRecord.DATE_FIELD] = [str(record.date)]
    return "".join(
        f"{format_line(key, value)}\n" for key in sorted(entries) for value in entries[key]
    )


def save(record: MetadataRecord) -> Path:
    """Write the sidecar for ``record``.

    Returns:
        Path: Sidecar path.

    Raises:
        SidecarWriteError: If the sidecar cannot be written.
    """
    try:
        record.meta_path.parent.mkdir(parents=True, exist_ok=True)
        record.meta_path.write_text(dumps(record), encoding="utf-8")
    except OSError as exc:
        raise SidecarWriteError(f"Cannot write sidecar {record.meta_path}: {exc}") from exc
    return record.meta_path


__all__ = [
    "dumps",
    "escape_key",
    "format_line",
    "load",
    "merge",
    "parse_date",
    "parse_line",
    "reduce_dates",
    "save",
    "unescape_key",
]
