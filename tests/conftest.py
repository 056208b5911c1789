# tests/conftest.py
# Shared fixtures: photo record factories, configs rooted in tmp_path, fake transports

import json
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from gallery_site_sync.config import (
    AppConfig,
    EventDesc,
    IndexSettings,
    PathSettings,
    RunState,
    SiteSettings,
    UploadSettings,
    DEFAULT_EVENTS,
)
from gallery_site_sync.models import ComponentFile, ImageSize, Photo, PhotoMetadata
from gallery_site_sync.naming import build_url_safe_path
from gallery_site_sync.tree import GalleryTree


def make_photo(
    base_path: str,
    *,
    title: Optional[str] = None,
    keywords: Optional[str] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    rating: Optional[str] = None,
    comment: Optional[str] = None,
    extra: Optional[Dict[str, str]] = None,
    modified: datetime = datetime(2020, 1, 5, 10, 30),
) -> Photo:
    """Build a Photo the way the repository scanner would describe it."""
    metadata: List[PhotoMetadata] = []
    if title is not None:
        metadata.append(PhotoMetadata("Title", title))
    if keywords is not None:
        metadata.append(PhotoMetadata("Keywords", keywords))
    if latitude is not None and longitude is not None:
        metadata.append(PhotoMetadata("Latitude", str(latitude)))
        metadata.append(PhotoMetadata("Longitude", str(longitude)))
    if rating is not None:
        metadata.append(PhotoMetadata("Rating", rating))
    if comment is not None:
        metadata.append(PhotoMetadata("Comment", comment))
    for name, value in (extra or {}).items():
        metadata.append(PhotoMetadata(name, value))
    url_safe = build_url_safe_path(base_path).strip("/")
    return Photo(
        path_hash=url_safe,
        base_path=base_path,
        url_safe_path=url_safe,
        image_extension=".jpg",
        metadata=metadata,
        image_sizes=[ImageSize(400, 300), ImageSize(1600, 1200)],
        files=[ComponentFile(".jpg", "abc", modified, 1024)],
        version=1,
    )


def photo_record(photo: Photo) -> Dict[str, object]:
    return {
        "pathHash": photo.path_hash,
        "basePath": photo.base_path,
        "urlSafePath": photo.url_safe_path,
        "imageExtension": photo.image_extension,
        "metadata": [{"name": item.name, "value": item.value} for item in photo.metadata],
        "imageSizes": [{"width": size.width, "height": size.height} for size in photo.image_sizes],
        "files": [
            {
                "extension": item.extension,
                "hash": item.hash,
                "lastModified": item.last_modified.isoformat(),
                "fileSize": item.file_size,
            }
            for item in photo.files
        ],
        "version": photo.version,
    }


def write_records(folder: Path, photos: List[Photo]) -> None:
    for photo in photos:
        target = folder / (photo.url_safe_path.replace("/", "_") + ".info")
        target.write_text(json.dumps(photo_record(photo)), encoding="utf-8")


@pytest.fixture
def run_state() -> RunState:
    return RunState()


@pytest.fixture
def tree(run_state: RunState) -> GalleryTree:
    gallery = GalleryTree(run_state=run_state)
    gallery.add_root("Photo Gallery", "Test gallery")
    return gallery


@pytest.fixture
def events() -> List[EventDesc]:
    return [EventDesc.from_json(entry) for entry in DEFAULT_EVENTS]


@pytest.fixture
def app_config(tmp_path: Path, events: List[EventDesc]) -> AppConfig:
    database = tmp_path / "database"
    output = tmp_path / "output"
    database.mkdir()
    output.mkdir()
    return AppConfig(
        site=SiteSettings(title="Photo Gallery", description="Test gallery"),
        paths=PathSettings(
            database_input_folder=str(database),
            output_folder=str(output),
            queue_folder=str(output / "queue"),
        ),
        upload=UploadSettings(
            base_url="https://gallery.example.test/",
            max_daily_uploads=8000,
            max_retries=5,
            retry_sleep_seconds=0,
            timeout_seconds=600,
        ),
        index=IndexSettings(max_photos_per_keyword=1000, ingest_workers=4),
        events=events,
    )


class FakeTransport:
    """Records every delivery; paths listed in ``failing`` are refused."""

    def __init__(self, failing=None):
        self.failing = set(failing or [])
        self.delivered = []

    def deliver(self, queue_item) -> bool:
        if queue_item.path in self.failing:
            return False
        self.delivered.append((queue_item.upload_type, queue_item.path))
        return True


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
