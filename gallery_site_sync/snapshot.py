"""Persisted site snapshots and the comparison that drives incremental uploads."""

from __future__ import annotations

import os
import tempfile
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from gallery_site_sync.models import GalleryChildItem, GalleryItem, GallerySiteIndex
from gallery_site_sync.naming import as_empty

BACKUP_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


@dataclass
class SnapshotDiff:
    new: List[GalleryItem] = field(default_factory=list)
    updated: List[GalleryItem] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    unchanged: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(self.new or self.updated or self.deleted)


# ----------------------------------------------------------------------
# Persistence
# ----------------------------------------------------------------------
def read_snapshot_text(path: str) -> Optional[str]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            return handle.read()
    except FileNotFoundError:
        return None


def load_previous(path: str) -> Optional[GallerySiteIndex]:
    """Return the last persisted snapshot, or None when there is no usable baseline."""
    text = read_snapshot_text(path)
    if text is None:
        print(f"[INFO] No previous snapshot at '{path}'; publishing everything")
        return None
    try:
        snapshot = GallerySiteIndex.deserialize(text)
    except (ValueError, TypeError, KeyError) as exc:
        print(f"[WARN] Previous snapshot '{path}' is unreadable ({exc}); treating as no baseline")
        return None
    print(f"[INFO] Loaded previous snapshot with {len(snapshot.items)} item(s)")
    return snapshot


def is_unchanged(path: str, snapshot: GallerySiteIndex) -> bool:
    """True when ``snapshot`` serializes exactly as the persisted file."""
    persisted = read_snapshot_text(path)
    return persisted is not None and persisted == snapshot.serialize()


def _backup_name(path: str, now: datetime) -> str:
    candidate = f"{path}.{now.strftime(BACKUP_TIMESTAMP_FORMAT)}"
    suffix = 1
    while os.path.exists(candidate):
        candidate = f"{path}.{now.strftime(BACKUP_TIMESTAMP_FORMAT)}.{suffix}"
        suffix += 1
    return candidate


def write_text_atomically(path: str, text: str) -> None:
    folder = os.path.dirname(os.path.abspath(path))
    os.makedirs(folder, exist_ok=True)
    handle, temp_path = tempfile.mkstemp(prefix=".tmp-", dir=folder)
    try:
        with os.fdopen(handle, "w", encoding="utf-8") as stream:
            stream.write(text)
        os.replace(temp_path, path)
    except OSError:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise


def write_snapshot(path: str, snapshot: GallerySiteIndex, *, now: Optional[datetime] = None) -> Optional[str]:
    """Rotate any existing snapshot to a dated backup, then write the new one.

    Returns the backup path, if a rotation happened.
    """
    backup: Optional[str] = None
    if os.path.exists(path):
        backup = _backup_name(path, now or datetime.now())
        os.replace(path, backup)
        print(f"♻️ Rotated previous snapshot to '{backup}'")
    write_text_atomically(path, snapshot.serialize())
    print(f"✅ Wrote snapshot '{path}' ({len(snapshot.items)} items, {len(snapshot.deleted_items)} deleted)")
    return backup


# ----------------------------------------------------------------------
# Comparison
# ----------------------------------------------------------------------
def find_deleted_items(previous: Optional[GallerySiteIndex], current: GallerySiteIndex) -> List[str]:
    """Paths that were published (or already tombstoned) and are gone now."""
    if previous is None:
        return []
    current_paths = {item.path for item in current.items}
    known = {item.path for item in previous.items}
    known.update(previous.deleted_items)
    return sorted(known - current_paths)


def _to_minute(value: datetime) -> datetime:
    return value.replace(second=0, microsecond=0)


def _link_path(link: Optional[GalleryChildItem]) -> Optional[str]:
    return link.path if link is not None else None


def _paths(items: Iterable[GalleryChildItem]) -> List[str]:
    return [item.path for item in items]


def _differences(old: GalleryItem, new: GalleryItem):
    yield "Title", as_empty(old.title) == as_empty(new.title)
    yield "Description", as_empty(old.description) == as_empty(new.description)
    yield "Type", as_empty(old.type).lower() == as_empty(new.type).lower()
    yield "OriginalAlbumPath", as_empty(old.original_album_path) == as_empty(new.original_album_path)
    yield "DateCreated", _to_minute(old.date_created) == _to_minute(new.date_created)
    yield "DateUpdated", _to_minute(old.date_updated) == _to_minute(new.date_updated)
    yield "Location", old.location == new.location
    yield "ImageSizes", Counter(old.image_sizes) == Counter(new.image_sizes)
    yield "Metadata", Counter(old.metadata) == Counter(new.metadata)
    yield "Keywords", Counter(old.keywords) == Counter(new.keywords)
    yield "Breadcrumbs", _paths(old.breadcrumbs) == _paths(new.breadcrumbs)
    yield "Children", _paths(old.children) == _paths(new.children)
    yield "First", _link_path(old.first) == _link_path(new.first)
    yield "Previous", _link_path(old.previous) == _link_path(new.previous)
    yield "Next", _link_path(old.next) == _link_path(new.next)
    yield "Last", _link_path(old.last) == _link_path(new.last)


def are_same(old: GalleryItem, new: GalleryItem) -> bool:
    for name, same in _differences(old, new):
        if not same:
            print(f" >> {name} Different ({new.path})")
            return False
    return True


def diff(previous: Optional[GallerySiteIndex], current: GallerySiteIndex) -> SnapshotDiff:
    """Classify every current item as new, updated or unchanged against ``previous``.

    Deletes cover every path published or tombstoned before that is gone now.
    """
    result = SnapshotDiff()
    baseline: Dict[str, GalleryItem] = {}
    if previous is not None:
        baseline = {item.path: item for item in previous.items}

    for item in current.items:
        old = baseline.get(item.path)
        if old is None:
            result.new.append(item)
        elif are_same(old, item):
            result.unchanged += 1
        else:
            result.updated.append(item)
    result.deleted = find_deleted_items(previous, current)
    print(
        f"[INFO] Snapshot diff: {len(result.new)} new, {len(result.updated)} updated, "
        f"{len(result.deleted)} deleted, {result.unchanged} unchanged"
    )
    return result


__all__ = [
    "SnapshotDiff",
    "are_same",
    "diff",
    "find_deleted_items",
    "is_unchanged",
    "load_previous",
    "read_snapshot_text",
    "write_snapshot",
    "write_text_atomically",
]
