"""Photo repository loading and album ingestion into the gallery tree."""

from __future__ import annotations

import json
import os
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import List, Optional, Tuple

from gallery_site_sync.models import (
    METADATA_COMMENT,
    METADATA_DATE_TAKEN,
    METADATA_KEYWORDS,
    METADATA_LATITUDE,
    METADATA_LONGITUDE,
    METADATA_RATING,
    METADATA_TITLE,
    GalleryEntry,
    Location,
    Photo,
    PhotoMetadata,
)
from gallery_site_sync.naming import (
    ensure_terminated_breadcrumbs,
    ensure_terminated_path,
    join_path,
    split_breadcrumbs,
    split_path,
)
from gallery_site_sync.tree import GalleryTree, StructuralAnomaly

ALBUMS_ROOT = "albums"
ALBUMS_TITLE = "Albums"
RECORD_EXTENSION = ".info"

_NOT_PUBLISHABLE = {
    name.lower()
    for name in (
        METADATA_TITLE,
        METADATA_DATE_TAKEN,
        METADATA_KEYWORDS,
        METADATA_RATING,
        METADATA_LATITUDE,
        METADATA_LONGITUDE,
        METADATA_COMMENT,
    )
}

_DATE_TAKEN_FORMATS = (
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y:%m:%d %H:%M:%S",
    "%Y-%m-%d",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y",
)


def load_repository(base_folder: str) -> List[Photo]:
    """Read every photo record below ``base_folder`` ordered by URL-safe path."""
    print(f"[INFO] Loading repository from '{base_folder}'")
    if not os.path.isdir(base_folder):
        print(f"⚠️ Repository folder '{base_folder}' does not exist; no photos loaded")
        return []
    photos: List[Photo] = []
    for current, _dirs, files in os.walk(base_folder):
        for name in files:
            if not name.lower().endswith(RECORD_EXTENSION):
                continue
            record_path = os.path.join(current, name)
            try:
                with open(record_path, "r", encoding="utf-8-sig") as handle:
                    photos.append(Photo.from_json(json.load(handle)))
            except (OSError, ValueError, TypeError) as exc:
                print(f"[WARN] Skipping unreadable photo record '{record_path}': {exc}")
    photos.sort(key=lambda photo: photo.url_safe_path)
    print(f"[INFO] {base_folder}: {len(photos)} photo record(s) found")
    return photos


def album_path_for(photo: Photo) -> str:
    return ensure_terminated_path(f"/{ALBUMS_ROOT}/{photo.url_safe_path}")


def album_breadcrumbs_for(photo: Photo) -> str:
    return ensure_terminated_breadcrumbs(f"\\{ALBUMS_TITLE}\\{photo.base_path}")


def _metadata_value(photo: Photo, name: str) -> Optional[str]:
    item = photo.find_metadata(name)
    return item.value if item is not None else None


def extract_title(photo: Photo) -> str:
    return _metadata_value(photo, METADATA_TITLE) or ""


def extract_description(photo: Photo) -> str:
    return _metadata_value(photo, METADATA_COMMENT) or ""


def extract_rating(photo: Photo) -> int:
    raw = _metadata_value(photo, METADATA_RATING)
    if raw is None:
        return 1
    try:
        rating = int(raw.strip())
    except ValueError:
        return 1
    if rating < 1 or rating > 5:
        return 1
    return rating


def extract_location(photo: Photo) -> Optional[Location]:
    latitude = _metadata_value(photo, METADATA_LATITUDE)
    longitude = _metadata_value(photo, METADATA_LONGITUDE)
    if latitude is None or longitude is None:
        return None
    try:
        return Location(latitude=float(latitude), longitude=float(longitude))
    except ValueError:
        return None


def split_keywords(value: str) -> List[str]:
    return [keyword.strip() for keyword in value.replace(";", ",").split(",") if keyword.strip()]


def extract_keywords(photo: Photo) -> List[str]:
    raw = _metadata_value(photo, METADATA_KEYWORDS)
    if raw is None:
        return []
    return split_keywords(raw)


def _parse_date_taken(value: str) -> Optional[datetime]:
    text = value.strip()
    for fmt in _DATE_TAKEN_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text).replace(tzinfo=None)
    except ValueError:
        return None


def extract_dates(photo: Photo) -> Tuple[datetime, datetime]:
    """Return (created, updated) from file mtimes widened by the date taken."""
    modified = [component.last_modified for component in photo.files]
    date_created = min(modified) if modified else datetime.max
    date_updated = max(modified) if modified else datetime.min
    taken_raw = _metadata_value(photo, METADATA_DATE_TAKEN)
    if taken_raw:
        taken = _parse_date_taken(taken_raw)
        if taken is not None:
            date_created = min(date_created, taken)
            date_updated = max(date_updated, taken)
    return date_created, date_updated


def publishable_metadata(metadata: List[PhotoMetadata]) -> List[PhotoMetadata]:
    kept = [item for item in metadata if item.name.lower() not in _NOT_PUBLISHABLE]
    return sorted(kept, key=lambda item: item.name.lower())


def build_photo_entry(
    photo: Photo,
    path: str,
    title: str,
    *,
    original_album_path: Optional[str] = None,
    hide_keywords: bool = False,
) -> GalleryEntry:
    date_created, date_updated = extract_dates(photo)
    return GalleryEntry(
        path=path,
        title=title,
        description=extract_description(photo),
        date_created=date_created,
        date_updated=date_updated,
        location=extract_location(photo),
        rating=extract_rating(photo),
        image_sizes=list(photo.image_sizes),
        metadata=publishable_metadata(photo.metadata),
        keywords=[] if hide_keywords else extract_keywords(photo),
        original_album_path=original_album_path,
    )


def append_album_photo(tree: GalleryTree, photo: Photo) -> Optional[StructuralAnomaly]:
    path = album_path_for(photo)
    path_fragments = split_path(path)
    breadcrumb_fragments = split_breadcrumbs(album_breadcrumbs_for(photo))
    tree.ensure_parent_folders_exist(path_fragments, breadcrumb_fragments)

    title = extract_title(photo)
    if not title.strip():
        title = breadcrumb_fragments[-1] if breadcrumb_fragments else path_fragments[-1]
    entry = build_photo_entry(photo, path, title, hide_keywords=tree.is_under_hidden(path))
    return tree.insert(join_path(path_fragments[:-1]), path, entry)


def ingest_photos(tree: GalleryTree, photos: List[Photo], *, max_workers: Optional[int] = None) -> int:
    """Insert one album entry per photo, processing records concurrently.

    Returns the number of photos that were inserted.
    """
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        results = list(executor.map(lambda photo: append_album_photo(tree, photo), photos))
    inserted = sum(1 for anomaly in results if anomaly is None)
    print(f"[INFO] Ingested {inserted} of {len(photos)} photo(s); tree holds {len(tree)} entries")
    return inserted


__all__ = [
    "ALBUMS_ROOT",
    "ALBUMS_TITLE",
    "album_breadcrumbs_for",
    "album_path_for",
    "append_album_photo",
    "build_photo_entry",
    "extract_dates",
    "extract_description",
    "extract_keywords",
    "extract_location",
    "extract_rating",
    "extract_title",
    "ingest_photos",
    "load_repository",
    "publishable_metadata",
    "split_keywords",
]
