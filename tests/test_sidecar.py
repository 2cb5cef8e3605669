"""Metadata record load, merge and save tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from photostore.store import (
    CaptureDate,
    ListValue,
    MetadataFormatError,
    Scalar,
    SidecarWriteError,
    StoreContext,
    promote,
    sidecar,
)
from photostore.store.models import MetadataRecord

HASH = "0123456789abcdef0123456789abcdef01234567"


def _context(tmp_path: Path) -> StoreContext:
    return StoreContext(base_dir=tmp_path)


def _write_sidecar(tmp_path: Path, text: str) -> Path:
    """Write raw sidecar text for ``HASH``.

    Args:
        tmp_path: Temporary directory provided by pytest.
        text: Sidecar contents.

    Returns:
        Path: Sidecar path.
    """
    path = _context(tmp_path).paths_for(HASH).sidecar
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_promote_scalar_then_list_in_order() -> None:
    first = promote(None, "x")
    second = promote(first, "y")
    third = promote(second, "x")

    assert first == Scalar(value="x")
    assert second == ListValue(values=["x", "y"])
    assert third == ListValue(values=["x", "y", "x"])
    assert first == Scalar(value="x")


def test_load_without_sidecar_has_only_derived_fields(tmp_path: Path) -> None:
    record = sidecar.load(_context(tmp_path), HASH)

    assert record.hash == HASH
    assert record.path == tmp_path / "by_sha" / "01" / HASH[2:]
    assert record.meta_path == tmp_path / "by_sha" / "01" / f"{HASH[2:]}.meta"
    assert record.attributes == {}
    assert record.date is None


def test_load_promotes_repeated_keys(tmp_path: Path) -> None:
    _write_sidecar(tmp_path, "tag: beach\nfilename: a.jpg\ntag: family\ntag: beach\n")

    record = sidecar.load(_context(tmp_path), HASH)

    assert record.attributes["filename"] == Scalar(value="a.jpg")
    assert record.attributes["tag"] == ListValue(values=["beach", "family", "beach"])
    assert record.tags == ["beach", "family", "beach"]


def test_load_unescapes_colons_and_trims_keys(tmp_path: Path) -> None:
    _write_sidecar(tmp_path, "  camera\\:model : Canon: EOS R5\n\nnote:\n")

    record = sidecar.load(_context(tmp_path), HASH)

    assert record.attributes["camera:model"] == Scalar(value="Canon: EOS R5")
    assert record.attributes["note"] == Scalar(value="")


def test_load_parses_date(tmp_path: Path) -> None:
    _write_sidecar(tmp_path, "date: 2021-06-01\n")

    record = sidecar.load(_context(tmp_path), HASH)

    assert record.date == CaptureDate(year=2021, month=6, day=1)
    assert "date" not in record.attributes


@pytest.mark.parametrize(
    "value",
    ["2021/06/01", "2021-6-01", "21-06-01", "2021-13-01", "2021-06-00", " 2021-06-01", ""],
)
def test_load_rejects_malformed_date(tmp_path: Path, value: str) -> None:
    _write_sidecar(tmp_path, f"filename: a.jpg\ndate: {value}\n")

    with pytest.raises(MetadataFormatError):
        sidecar.load(_context(tmp_path), HASH)


def test_load_rejects_line_without_separator(tmp_path: Path) -> None:
    _write_sidecar(tmp_path, "tag: ok\njust some text\n")

    with pytest.raises(MetadataFormatError, match=":2:"):
        sidecar.load(_context(tmp_path), HASH)


def test_save_writes_sorted_keys_and_one_line_per_value(tmp_path: Path) -> None:
    record = sidecar.load(_context(tmp_path), HASH)
    record.add_value("tag", "zoo")
    record.add_value("tag", "beach")
    record.set_field("filename", "IMG_1.jpg")
    record.add_value("lens:mm", "35")
    record.date = CaptureDate(year=2021, month=6, day=1)

    path = sidecar.save(record)

    assert path == record.meta_path
    assert path.read_text(encoding="utf-8") == (
        "date: 2021-06-01\n"
        "filename: IMG_1.jpg\n"
        "lens\\:mm: 35\n"
        "tag: zoo\n"
        "tag: beach\n"
    )


def test_save_load_round_trip_preserves_fields(tmp_path: Path) -> None:
    context = _context(tmp_path)
    record = sidecar.load(context, HASH)
    for tag in ("c", "a", "b", "a"):
        record.add_value("tag", tag)
    record.set_field("filename", "photo.jpg")
    record.add_value("odd:key", " leading space")
    record.date = CaptureDate(year=987, month=1, day=2)

    sidecar.save(record)
    once = sidecar.load(context, HASH)
    sidecar.save(once)
    twice = sidecar.load(context, HASH)

    assert once == twice
    assert twice.tags == ["c", "a", "b", "a"]
    assert twice.attributes["odd:key"] == Scalar(value=" leading space")
    assert str(twice.date) == "0987-01-02"


def test_save_failure_raises_sidecar_write_error(tmp_path: Path) -> None:
    record = sidecar.load(_context(tmp_path), HASH)
    record.meta_path.parent.parent.mkdir(parents=True)
    record.meta_path.parent.write_text("a file where the shard should be", encoding="utf-8")

    with pytest.raises(SidecarWriteError) as excinfo:
        sidecar.save(record)

    assert isinstance(excinfo.value, OSError)


def test_reduce_dates_minimizes_each_component_independently() -> None:
    candidates = [
        CaptureDate(year=2020, month=5, day=10),
        CaptureDate(year=2019, month=11, day=25),
    ]

    assert sidecar.reduce_dates(candidates) == CaptureDate(year=2019, month=5, day=10)
    assert sidecar.reduce_dates([]) is None


def test_merge_adds_values_without_discarding(tmp_path: Path) -> None:
    _write_sidecar(tmp_path, "tag: beach\nfilename: a.jpg\n")
    record = sidecar.load(_context(tmp_path), HASH)

    sidecar.merge(record, {"tag": ["beach", "family"], "album": "2021"})

    assert record.tags == ["beach", "family"]
    assert record.attributes["album"] == Scalar(value="2021")
    assert record.filename == "a.jpg"


def test_merge_only_derives_date_when_absent(tmp_path: Path) -> None:
    calls: list[int] = []

    def source() -> list[CaptureDate]:
        calls.append(1)
        return [CaptureDate(year=2021, month=6, day=3), CaptureDate(year=2021, month=6, day=1)]

    record = sidecar.load(_context(tmp_path), HASH)
    sidecar.merge(record, {}, date_source=source)
    sidecar.merge(record, {"date": "1999-01-01"}, date_source=source)

    assert calls == [1]
    assert str(record.date) == "2021-06-01"


def test_merge_without_candidates_leaves_date_absent(tmp_path: Path) -> None:
    record = sidecar.load(_context(tmp_path), HASH)

    sidecar.merge(record, {"tag": []}, date_source=lambda: [])

    assert record.date is None
    assert record.attributes == {}


def test_record_rejects_reserved_keys(tmp_path: Path) -> None:
    record = MetadataRecord(hash=HASH, path=tmp_path / "p", meta_path=tmp_path / "p.meta")

    with pytest.raises(ValueError):
        record.add_value("date", "2021-01-01")
    with pytest.raises(ValueError):
        record.set_field("hash", HASH)


def test_load_rejects_sidecar_that_is_not_utf8(tmp_path: Path) -> None:
    path = _write_sidecar(tmp_path, "")
    path.write_bytes(b"tag: \xff\xfe\n")

    with pytest.raises(MetadataFormatError, match="UTF-8"):
        sidecar.load(_context(tmp_path), HASH)


@pytest.mark.parametrize("value", ["a\nb", "trailing\r", "\n"])
def test_record_rejects_values_that_would_split_lines(tmp_path: Path, value: str) -> None:
    record = sidecar.load(_context(tmp_path), HASH)

    with pytest.raises(MetadataFormatError):
        record.add_value("tag", value)
    with pytest.raises(MetadataFormatError):
        record.set_field("filename", value)

    assert record.attributes == {}


def test_record_rejects_keys_that_cannot_be_read_back(tmp_path: Path) -> None:
    record = sidecar.load(_context(tmp_path), HASH)

    with pytest.raises(MetadataFormatError):
        record.add_value("dir\\", "x")
    with pytest.raises(MetadataFormatError):
        record.add_value("multi\nline", "x")

    record.add_value("odd\\key:name", "x")
    sidecar.save(record)
    assert sidecar.load(_context(tmp_path), HASH).attributes == {
        "odd\\key:name": Scalar(value="x")
    }
