"""Projection of the finished gallery tree into a versioned site index."""

from __future__ import annotations

from typing import List, Optional

from gallery_site_sync.config import GALLERY_JSON_VERSION
from gallery_site_sync.models import GalleryEntry, GalleryItem, GallerySiteIndex
from gallery_site_sync.navigation import breadcrumbs, resolve_navigation, to_child_item
from gallery_site_sync.tree import GalleryTree


def _link(entry: Optional[GalleryEntry]):
    return to_child_item(entry) if entry is not None else None


def to_gallery_item(tree: GalleryTree, entry: GalleryEntry) -> GalleryItem:
    links = resolve_navigation(tree, entry)
    visible_children = sorted(
        (child for child in entry.children if not tree.is_hidden(child.path)),
        key=lambda child: child.path,
    )
    return GalleryItem(
        path=entry.path,
        title=entry.title,
        description=entry.description,
        date_created=entry.date_created,
        date_updated=entry.date_updated,
        type=entry.item_type,
        location=entry.location,
        original_album_path=entry.original_album_path,
        image_sizes=list(entry.image_sizes),
        metadata=list(entry.metadata),
        keywords=list(entry.keywords),
        breadcrumbs=breadcrumbs(tree, entry),
        children=[to_child_item(child) for child in visible_children],
        first=_link(links.first),
        previous=_link(links.previous),
        next=_link(links.next),
        last=_link(links.last),
    )


def produce_site_index(tree: GalleryTree, version: int = GALLERY_JSON_VERSION) -> GallerySiteIndex:
    """Build the snapshot of every tree entry, ordered by path.

    ``deleted_items`` starts empty; the snapshot step fills it in.
    """
    items: List[GalleryItem] = [to_gallery_item(tree, entry) for entry in tree.entries()]
    print(f"[INFO] Site index holds {len(items)} item(s)")
    return GallerySiteIndex(version=version, items=items, deleted_items=[])


__all__ = ["produce_site_index", "to_gallery_item"]
