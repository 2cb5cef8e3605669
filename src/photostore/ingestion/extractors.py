"""Capture date extraction from embedded image metadata."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

from PIL import ExifTags, Image, UnidentifiedImageError
from pydantic import ValidationError

from photostore.store.errors import DateExtractionWarning, InputError
from photostore.store.models import CaptureDate

LOGGER = logging.getLogger(__name__)

DEFAULT_DATE_FIELDS: Tuple[str, ...] = ("DateTimeOriginal", "DateTimeDigitized", "DateTime")

_LOOSE_DATE = re.compile(r"^\s*(\d{4})\D(\d{1,2})\D(\d{1,2})")
_EXIF_IFD = 0x8769


class DateExtractor:
    """Report candidate capture dates found in a file's own metadata."""

    def __init__(self, fields: Sequence[str] = DEFAULT_DATE_FIELDS) -> None:
        self.fields = tuple(fields)

    def extract(self, path: Path | str) -> List[CaptureDate]:
        """Return candidate dates for ``path``, logging unparseable values.

        Raises:
            InputError: If the file does not exist.
        """
        candidates, warnings = self.extract_with_warnings(path)
        for warning in warnings:
            LOGGER.warning("%s", warning)
        return candidates

    def extract_with_warnings(
        self, path: Path | str
    ) -> Tuple[List[CaptureDate], List[DateExtractionWarning]]:
        """Return candidate dates and the warnings raised while parsing them.

        Args:
            path: File to inspect.

        Returns:
            Tuple[List[CaptureDate], List[DateExtractionWarning]]: Candidates in
                field order and one warning per unparseable value.

        Raises:
            InputError: If the file does not exist.
        """
        file_path = Path(path)
        if not file_path.exists():
            raise InputError(f"{path}: no such file")
        tags = self.read_tags(file_path)
        return self.parse(tags, source=str(path))

    def read_tags(self, path: Path) -> Dict[str, str]:
        """Return embedded timestamp-like tags by name; empty for non-images."""
        try:
            with Image.open(path) as img:
                exif = img.getexif()
                raw = dict(exif.items())
                raw.update(exif.get_ifd(_EXIF_IFD))
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
            LOGGER.debug("No embedded metadata read from %s: %s", path, exc)
            return {}

        tags: Dict[str, str] = {}
        for tag_id, value in raw.items():
            name = ExifTags.TAGS.get(tag_id)
            if name in self.fields:
                tags[name] = _as_text(value)
        return tags

    def parse(
        self, tags: Dict[str, str], source: str | None = None
    ) -> Tuple[List[CaptureDate], List[DateExtractionWarning]]:
        """Parse tag values in configured field order."""
        candidates: List[CaptureDate] = []
        warnings: List[DateExtractionWarning] = []
        for field in self.fields:
            if field not in tags:
                continue
            raw_value = tags[field]
            candidate = parse_loose_date(raw_value)
            if candidate is None:
                warnings.append(DateExtractionWarning(field, raw_value, source))
            else:
                candidates.append(candidate)
        return candidates, warnings


def parse_loose_date(value: str) -> CaptureDate | None:
    """Parse a ``YYYY<sep>M<sep>D`` prefix such as EXIF ``2021:06:01 10:00:00``."""
    match = _LOOSE_DATE.match(value)
    if match is None:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        return CaptureDate(year=year, month=month, day=day)
    except ValidationError:
        return None


def _as_text(value: object) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace").rstrip("\x00")
    return str(value)

