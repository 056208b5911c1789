"""Data model for photo records, gallery tree entries and site snapshots."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

TYPE_FOLDER = "folder"
TYPE_PHOTO = "photo"

# Metadata names written by the metadata extractor.
METADATA_TITLE = "Title"
METADATA_DATE_TAKEN = "Date Taken"
METADATA_KEYWORDS = "Keywords"
METADATA_RATING = "Rating"
METADATA_LATITUDE = "Latitude"
METADATA_LONGITUDE = "Longitude"
METADATA_COMMENT = "Comment"

_EXCESS_FRACTION = re.compile(r"(\.\d{6})\d+")


def _field(data: Dict[str, Any], key: str, default: Any = None) -> Any:
    """Read a camelCase key, accepting the PascalCase spelling as well."""
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object holding '{key}', got {type(data).__name__}")
    if key in data:
        return data[key]
    return data.get(key[:1].upper() + key[1:], default)


def parse_datetime(value: object) -> datetime:
    if isinstance(value, datetime):
        return value
    text = str(value or "").strip()
    if not text:
        return datetime.min
    if text.endswith("Z"):
        text = text[:-1]
    text = _EXCESS_FRACTION.sub(r"\1", text)
    parsed = datetime.fromisoformat(text)
    return parsed.replace(tzinfo=None)


def format_datetime(value: datetime) -> str:
    return value.isoformat()


@dataclass(frozen=True)
class ImageSize:
    width: int
    height: int

    def to_json(self) -> Dict[str, Any]:
        return {"width": self.width, "height": self.height}

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "ImageSize":
        return cls(width=int(_field(data, "width", 0)), height=int(_field(data, "height", 0)))


@dataclass(frozen=True)
class PhotoMetadata:
    name: str
    value: str

    def to_json(self) -> Dict[str, Any]:
        return {"name": self.name, "value": self.value}

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "PhotoMetadata":
        return cls(name=str(_field(data, "name", "")), value=str(_field(data, "value", "")))


@dataclass(frozen=True)
class ComponentFile:
    extension: str
    hash: str
    last_modified: datetime
    file_size: int

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "ComponentFile":
        return cls(
            extension=str(_field(data, "extension", "")),
            hash=str(_field(data, "hash", "")),
            last_modified=parse_datetime(_field(data, "lastModified")),
            file_size=int(_field(data, "fileSize", 0) or 0),
        )


@dataclass
class Photo:
    """One photo record as written by the repository scanner."""

    path_hash: str
    base_path: str
    url_safe_path: str
    image_extension: str = ""
    metadata: List[PhotoMetadata] = field(default_factory=list)
    image_sizes: List[ImageSize] = field(default_factory=list)
    files: List[ComponentFile] = field(default_factory=list)
    version: int = 0

    def find_metadata(self, name: str) -> Optional[PhotoMetadata]:
        wanted = name.lower()
        for item in self.metadata:
            if item.name.lower() == wanted:
                return item
        return None

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Photo":
        return cls(
            path_hash=str(_field(data, "pathHash", "")),
            base_path=str(_field(data, "basePath", "")),
            url_safe_path=str(_field(data, "urlSafePath", "")),
            image_extension=str(_field(data, "imageExtension", "") or ""),
            metadata=[PhotoMetadata.from_json(item) for item in _field(data, "metadata", None) or []],
            image_sizes=[ImageSize.from_json(item) for item in _field(data, "imageSizes", None) or []],
            files=[ComponentFile.from_json(item) for item in _field(data, "files", None) or []],
            version=int(_field(data, "version", 0) or 0),
        )


@dataclass(frozen=True, eq=False)
class Location:
    """A coordinate pair compared to a tolerance of 1/1000 of a degree."""

    latitude: float
    longitude: float

    @staticmethod
    def _normalize(value: float) -> int:
        return round(value * 1000)

    def _key(self) -> tuple:
        return self._normalize(self.latitude), self._normalize(self.longitude)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Location):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def to_json(self) -> Dict[str, Any]:
        return {"latitude": self.latitude, "longitude": self.longitude}

    @classmethod
    def from_json(cls, data: Optional[Dict[str, Any]]) -> Optional["Location"]:
        if not data:
            return None
        return cls(latitude=float(_field(data, "latitude", 0.0)), longitude=float(_field(data, "longitude", 0.0)))


@dataclass(eq=False)
class GalleryEntry:
    """A node of the in-memory gallery tree; identity is the path."""

    path: str
    title: str
    description: str = ""
    date_created: datetime = datetime.max
    date_updated: datetime = datetime.min
    location: Optional[Location] = None
    rating: int = 1
    image_sizes: List[ImageSize] = field(default_factory=list)
    metadata: List[PhotoMetadata] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    children: List["GalleryEntry"] = field(default_factory=list)
    original_album_path: Optional[str] = None

    @property
    def item_type(self) -> str:
        return TYPE_FOLDER if self.children else TYPE_PHOTO

    @property
    def is_image(self) -> bool:
        return bool(self.image_sizes)


def _optional(target: Dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        target[key] = value


@dataclass
class GalleryChildItem:
    path: str
    title: str
    description: str
    date_created: datetime
    date_updated: datetime
    type: str
    image_sizes: List[ImageSize] = field(default_factory=list)
    location: Optional[Location] = None
    original_album_path: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"path": self.path}
        _optional(payload, "originalAlbumPath", self.original_album_path)
        payload["title"] = self.title
        payload["description"] = self.description
        payload["dateCreated"] = format_datetime(self.date_created)
        payload["dateUpdated"] = format_datetime(self.date_updated)
        _optional(payload, "location", self.location.to_json() if self.location else None)
        payload["type"] = self.type
        payload["imageSizes"] = [size.to_json() for size in self.image_sizes]
        return payload

    @classmethod
    def from_json(cls, data: Optional[Dict[str, Any]]) -> Optional["GalleryChildItem"]:
        if not data:
            return None
        return cls(
            path=str(_field(data, "path", "")),
            title=str(_field(data, "title", "") or ""),
            description=str(_field(data, "description", "") or ""),
            date_created=parse_datetime(_field(data, "dateCreated")),
            date_updated=parse_datetime(_field(data, "dateUpdated")),
            type=str(_field(data, "type", "") or ""),
            image_sizes=[ImageSize.from_json(item) for item in _field(data, "imageSizes", None) or []],
            location=Location.from_json(_field(data, "location")),
            original_album_path=_field(data, "originalAlbumPath"),
        )


@dataclass
class GalleryItem:
    path: str
    title: str
    description: str
    date_created: datetime
    date_updated: datetime
    type: str
    location: Optional[Location] = None
    original_album_path: Optional[str] = None
    image_sizes: List[ImageSize] = field(default_factory=list)
    metadata: List[PhotoMetadata] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    breadcrumbs: List[GalleryChildItem] = field(default_factory=list)
    children: List[GalleryChildItem] = field(default_factory=list)
    first: Optional[GalleryChildItem] = None
    previous: Optional[GalleryChildItem] = None
    next: Optional[GalleryChildItem] = None
    last: Optional[GalleryChildItem] = None

    @classmethod
    def deleted(cls, path: str) -> "GalleryItem":
        """Placeholder carrying only the path of an item removed from the site."""
        return cls(
            path=path,
            title="",
            description="",
            date_created=datetime.min,
            date_updated=datetime.min,
            type="",
        )

    def to_json(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"path": self.path}
        _optional(payload, "originalAlbumPath", self.original_album_path)
        payload["title"] = self.title
        payload["description"] = self.description
        payload["dateCreated"] = format_datetime(self.date_created)
        payload["dateUpdated"] = format_datetime(self.date_updated)
        _optional(payload, "location", self.location.to_json() if self.location else None)
        payload["type"] = self.type
        payload["imageSizes"] = [size.to_json() for size in self.image_sizes]
        payload["metadata"] = [item.to_json() for item in self.metadata]
        payload["keywords"] = list(self.keywords)
        payload["breadcrumbs"] = [crumb.to_json() for crumb in self.breadcrumbs]
        payload["children"] = [child.to_json() for child in self.children]
        for key, link in (("first", self.first), ("previous", self.previous), ("next", self.next), ("last", self.last)):
            _optional(payload, key, link.to_json() if link else None)
        return payload

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "GalleryItem":
        return cls(
            path=str(_field(data, "path", "")),
            title=str(_field(data, "title", "") or ""),
            description=str(_field(data, "description", "") or ""),
            date_created=parse_datetime(_field(data, "dateCreated")),
            date_updated=parse_datetime(_field(data, "dateUpdated")),
            type=str(_field(data, "type", "") or ""),
            location=Location.from_json(_field(data, "location")),
            original_album_path=_field(data, "originalAlbumPath"),
            image_sizes=[ImageSize.from_json(item) for item in _field(data, "imageSizes", None) or []],
            metadata=[PhotoMetadata.from_json(item) for item in _field(data, "metadata", None) or []],
            keywords=[str(item) for item in _field(data, "keywords", None) or []],
            breadcrumbs=[GalleryChildItem.from_json(item) for item in _field(data, "breadcrumbs", None) or []],
            children=[GalleryChildItem.from_json(item) for item in _field(data, "children", None) or []],
            first=GalleryChildItem.from_json(_field(data, "first")),
            previous=GalleryChildItem.from_json(_field(data, "previous")),
            next=GalleryChildItem.from_json(_field(data, "next")),
            last=GalleryChildItem.from_json(_field(data, "last")),
        )


@dataclass
class GallerySiteIndex:
    """A versioned snapshot of the whole site, also used as the upload envelope."""

    version: int
    items: List[GalleryItem] = field(default_factory=list)
    deleted_items: List[str] = field(default_factory=list)

    def to_json(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "items": [item.to_json() for item in self.items],
            "deletedItems": list(self.deleted_items),
        }

    def serialize(self) -> str:
        return json.dumps(self.to_json(), indent=2, ensure_ascii=False)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "GallerySiteIndex":
        if not isinstance(data, dict):
            raise ValueError("Site index must be a JSON object")
        return cls(
            version=int(_field(data, "version", 0) or 0),
            items=[GalleryItem.from_json(item) for item in _field(data, "items", None) or []],
            deleted_items=[str(path) for path in _field(data, "deletedItems", None) or []],
        )

    @classmethod
    def deserialize(cls, text: str) -> "GallerySiteIndex":
        return cls.from_json(json.loads(text))


class UploadType(str, Enum):
    NEW = "New"
    UPDATE = "Update"
    DELETE = "Delete"


@dataclass
class UploadQueueItem:
    item: GalleryItem
    upload_type: UploadType
    version: int

    @property
    def path(self) -> str:
        return self.item.path

    @property
    def is_delete(self) -> bool:
        return self.upload_type is UploadType.DELETE

    def to_json(self) -> Dict[str, Any]:
        return {"item": self.item.to_json(), "uploadType": self.upload_type.value, "version": self.version}

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "UploadQueueItem":
        return cls(
            item=GalleryItem.from_json(_field(data, "item", None) or {}),
            upload_type=UploadType(str(_field(data, "uploadType", ""))),
            version=int(_field(data, "version", 0) or 0),
        )

    def to_envelope(self) -> GallerySiteIndex:
        """Wrap the change in the snapshot shape the sync endpoint accepts."""
        if self.is_delete:
            return GallerySiteIndex(version=self.version, items=[], deleted_items=[self.item.path])
        return GallerySiteIndex(version=self.version, items=[self.item], deleted_items=[])


@dataclass
class KeywordEntry:
    keyword: str
    photos: List[Photo] = field(default_factory=list)


__all__ = [
    "ComponentFile",
    "GalleryChildItem",
    "GalleryEntry",
    "GalleryItem",
    "GallerySiteIndex",
    "ImageSize",
    "KeywordEntry",
    "Location",
    "Photo",
    "PhotoMetadata",
    "TYPE_FOLDER",
    "TYPE_PHOTO",
    "UploadQueueItem",
    "UploadType",
    "format_datetime",
    "parse_datetime",
]
