"""Store path resolution, canonical linking and enumeration tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from photostore.ingestion.detectors import HashComputer
from photostore.store import LinkError, Store, StoreContext

HASH = "abc123" + "0" * 34


def _store(tmp_path: Path) -> Store:
    return Store(StoreContext(base_dir=tmp_path / "library"))


def test_path_for_uses_two_character_shards(tmp_path: Path) -> None:
    store = _store(tmp_path)

    paths = store.path_for(HASH)

    assert paths.canonical == tmp_path / "library" / "by_sha" / "ab" / HASH[2:]
    assert paths.sidecar == tmp_path / "library" / "by_sha" / "ab" / f"{HASH[2:]}.meta"
    assert len(paths.canonical.name) == 38
    assert not paths.canonical.parent.exists()


def test_path_for_can_create_shard_directory(tmp_path: Path) -> None:
    store = _store(tmp_path)

    paths = store.path_for(HASH, create_parent=True)

    assert paths.canonical.parent.is_dir()


@pytest.mark.parametrize("value", ["", "abc", HASH.upper(), HASH + "0", "g" * 40])
def test_path_for_rejects_non_hashes(tmp_path: Path, value: str) -> None:
    with pytest.raises(ValueError):
        _store(tmp_path).path_for(value)


def test_ingest_links_canonical_object_to_absolute_source(tmp_path: Path) -> None:
    source = tmp_path / "photo.jpg"
    source.write_bytes(b"pixels")
    store = _store(tmp_path)

    canonical = store.ingest(HASH, source)

    assert canonical.is_symlink()
    assert os.readlink(canonical) == str(source.absolute())
    assert canonical.read_bytes() == b"pixels"


def test_ingest_existing_object_raises_without_overwriting(tmp_path: Path) -> None:
    first = tmp_path / "first.jpg"
    first.write_bytes(b"a")
    second = tmp_path / "second.jpg"
    second.write_bytes(b"a")
    store = _store(tmp_path)
    canonical = store.ingest(HASH, first)

    with pytest.raises(LinkError):
        store.ingest(HASH, second)

    assert os.readlink(canonical) == str(first.absolute())


def test_ingest_reports_unusable_shard_directory_as_link_error(tmp_path: Path) -> None:
    source = tmp_path / "photo.jpg"
    source.write_bytes(b"a")
    store = _store(tmp_path)
    shard = store.context.by_sha / HASH[:2]
    shard.parent.mkdir(parents=True)
    shard.write_text("not a directory", encoding="utf-8")

    with pytest.raises(LinkError, match="shard directory"):
        store.ingest(HASH, source)

    assert shard.is_file()


def test_identical_content_maps_to_one_canonical_object(tmp_path: Path) -> None:
    one = tmp_path / "one" / "IMG_0001.JPG"
    two = tmp_path / "two" / "copy.jpg"
    for path in (one, two):
        path.parent.mkdir()
        path.write_bytes(b"same bytes")
    hasher = HashComputer()
    store = _store(tmp_path)

    first_hash = hasher.compute(one)
    second_hash = hasher.compute(two)

    assert first_hash == second_hash
    assert store.path_for(first_hash) == store.path_for(second_hash)


def test_list_all_returns_hashes_and_skips_sidecars(tmp_path: Path) -> None:
    source = tmp_path / "photo.jpg"
    source.write_bytes(b"x")
    store = _store(tmp_path)
    other = "ff" + "1" * 38
    store.ingest(HASH, source)
    store.ingest(other, source)
    store.path_for(HASH).sidecar.write_text("filename: photo.jpg\n", encoding="utf-8")
    (store.context.by_sha / "README").write_text("not a shard", encoding="utf-8")

    assert store.list_all() == [HASH, other]


def test_list_all_reflects_disk_state_at_call_time(tmp_path: Path) -> None:
    source = tmp_path / "photo.jpg"
    source.write_bytes(b"x")
    store = _store(tmp_path)

    assert store.list_all() == []

    store.ingest(HASH, source)
    assert store.list_all() == [HASH]

    source.unlink()
    assert store.list_all() == [HASH]
    assert store.exists(HASH)
