# tests/test_snapshot.py
# Snapshot persistence, field comparison and diff classification

import os
from dataclasses import replace
from datetime import datetime
from pathlib import Path

from conftest import make_photo

from gallery_site_sync.models import GalleryItem, GallerySiteIndex, Location
from gallery_site_sync.photos import ingest_photos
from gallery_site_sync.site_index import produce_site_index
from gallery_site_sync.snapshot import (
    are_same,
    diff,
    find_deleted_items,
    is_unchanged,
    load_previous,
    write_snapshot,
)


def _item(path: str, **changes) -> GalleryItem:
    base = GalleryItem(
        path=path,
        title="Title",
        description="",
        date_created=datetime(2020, 1, 5, 10, 30, 15),
        date_updated=datetime(2020, 1, 5, 10, 30, 15),
        type="photo",
        location=Location(51.5, -0.12),
    )
    return replace(base, **changes)


class TestAreSame:
    def test_tolerances(self):
        old = _item("/a/")
        assert are_same(old, _item("/a/", date_created=datetime(2020, 1, 5, 10, 30, 59)))
        assert are_same(old, _item("/a/", location=Location(51.5001, -0.1201)))
        assert are_same(old, _item("/a/", type="Photo"))
        assert are_same(_item("/a/", original_album_path=None), _item("/a/", original_album_path=""))

    def test_first_difference_is_logged(self, capsys):
        assert not are_same(_item("/a/"), _item("/a/", title="Other", description="changed"))
        assert capsys.readouterr().out.strip() == ">> Title Different (/a/)"

    def test_collections_compare_as_multisets(self):
        assert are_same(_item("/a/", keywords=["x", "y"]), _item("/a/", keywords=["y", "x"]))
        assert not are_same(_item("/a/", keywords=["x", "x"]), _item("/a/", keywords=["x"]))


class TestDiff:
    def test_without_baseline_everything_is_new(self):
        current = GallerySiteIndex(version=1, items=[_item("/a/"), _item("/b/")])
        result = diff(None, current)
        assert [item.path for item in result.new] == ["/a/", "/b/"]
        assert result.updated == [] and result.deleted == []

    def test_every_path_is_classified_once(self):
        previous = GallerySiteIndex(version=1, items=[_item("/a/"), _item("/b/"), _item("/c/")])
        current = GallerySiteIndex(version=1, items=[_item("/a/"), _item("/b/", title="New"), _item("/d/")])

        result = diff(previous, current)

        assert [item.path for item in result.new] == ["/d/"]
        assert [item.path for item in result.updated] == ["/b/"]
        assert result.deleted == ["/c/"]
        assert result.unchanged == 1
        assert result.has_changes

    def test_deleted_items_carry_forward(self):
        previous = GallerySiteIndex(version=1, items=[_item("/a/"), _item("/b/")], deleted_items=["/old/", "/a/"])
        current = GallerySiteIndex(version=1, items=[_item("/a/")])
        assert find_deleted_items(previous, current) == ["/b/", "/old/"]
        assert find_deleted_items(None, current) == []

    def test_tombstones_are_deleted_again(self):
        previous = GallerySiteIndex(version=1, items=[_item("/a/"), _item("/b/")], deleted_items=["/old/"])
        current = GallerySiteIndex(version=1, items=[_item("/a/"), _item("/c/")])

        result = diff(previous, current)

        assert result.deleted == ["/b/", "/old/"]
        assert [item.path for item in result.new] == ["/c/"]


class TestPersistence:
    def test_missing_or_corrupt_snapshot_is_no_baseline(self, tmp_path: Path):
        target = tmp_path / "site.json"
        assert load_previous(str(target)) is None
        target.write_text("{ broken", encoding="utf-8")
        assert load_previous(str(target)) is None
        target.write_text("[]", encoding="utf-8")
        assert load_previous(str(target)) is None

    def test_wrong_shape_snapshot_is_no_baseline(self, tmp_path: Path, capsys):
        target = tmp_path / "site.json"
        for payload in ('{"items": ["garbage"]}', '{"items": [{"location": "x"}]}', '{"items": [{"children": [7]}]}'):
            target.write_text(payload, encoding="utf-8")
            assert load_previous(str(target)) is None
        assert "treating as no baseline" in capsys.readouterr().out

    def test_write_rotates_previous_file(self, tmp_path: Path):
        target = tmp_path / "site.json"
        first = GallerySiteIndex(version=1, items=[_item("/a/")])
        second = GallerySiteIndex(version=1, items=[_item("/a/"), _item("/b/")])

        assert write_snapshot(str(target), first) is None
        backup = write_snapshot(str(target), second, now=datetime(2024, 3, 1, 12, 0, 0))

        assert backup == f"{target}.20240301120000"
        assert load_previous(backup).items[0].path == "/a/"
        assert [item.path for item in load_previous(str(target)).items] == ["/a/", "/b/"]
        assert not [name for name in os.listdir(tmp_path) if name.startswith(".tmp-")]

    def test_unchanged_snapshot_is_detected(self, tmp_path: Path, tree):
        ingest_photos(tree, [make_photo("Beach\\IMG_1")])
        target = str(tmp_path / "site.json")
        snapshot = produce_site_index(tree)
        write_snapshot(target, snapshot)

        assert is_unchanged(target, produce_site_index(tree))
        snapshot.deleted_items = ["/gone/"]
        assert not is_unchanged(target, snapshot)
