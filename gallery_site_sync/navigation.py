"""Sibling navigation and breadcrumbs for entries of the gallery tree."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from gallery_site_sync.models import GalleryChildItem, GalleryEntry
from gallery_site_sync.naming import join_path, parent_path, split_path
from gallery_site_sync.tree import GalleryTree


@dataclass
class NavigationLinks:
    first: Optional[GalleryEntry] = None
    previous: Optional[GalleryEntry] = None
    next: Optional[GalleryEntry] = None
    last: Optional[GalleryEntry] = None


def to_child_item(entry: GalleryEntry) -> GalleryChildItem:
    return GalleryChildItem(
        path=entry.path,
        title=entry.title,
        description=entry.description,
        date_created=entry.date_created,
        date_updated=entry.date_updated,
        type=entry.item_type,
        image_sizes=list(entry.image_sizes),
        location=entry.location,
        original_album_path=entry.original_album_path,
    )


def get_siblings(tree: GalleryTree, entry: GalleryEntry) -> List[GalleryEntry]:
    """Children of the entry's parent that are visible, ordered by path."""
    parent = parent_path(entry.path)
    if parent is None:
        return []
    folder = tree.get(parent)
    if folder is None:
        return []
    return sorted(
        (child for child in folder.children if not tree.is_hidden(child.path)),
        key=lambda child: child.path,
    )


def _same(left: Optional[GalleryEntry], right: Optional[GalleryEntry]) -> bool:
    return left is not None and right is not None and left.path == right.path


def resolve_navigation(tree: GalleryTree, entry: GalleryEntry) -> NavigationLinks:
    siblings = get_siblings(tree, entry)
    if not siblings:
        return NavigationLinks()

    first = siblings[0]
    last = siblings[-1]
    before = [sibling for sibling in siblings if sibling.path < entry.path]
    after = [sibling for sibling in siblings if sibling.path > entry.path]
    previous = before[-1] if before else None
    following = after[0] if after else None

    # Previous/Next collapse into First/Last when they would duplicate them.
    return NavigationLinks(
        first=None if first.path == entry.path else first,
        previous=None if _same(previous, first) else previous,
        next=None if _same(following, last) else following,
        last=None if last.path == entry.path else last,
    )


def breadcrumbs(tree: GalleryTree, entry: GalleryEntry) -> List[GalleryChildItem]:
    """Project every strict ancestor, root first.

    A missing ancestor yields an empty list rather than a partial trail.
    """
    fragments = split_path(entry.path)
    if not fragments:
        return []
    trail: List[GalleryChildItem] = []
    for depth in range(len(fragments)):
        ancestor = tree.get(join_path(fragments[:depth]))
        if ancestor is None:
            return []
        trail.append(to_child_item(ancestor))
    return trail


__all__ = [
    "NavigationLinks",
    "breadcrumbs",
    "get_siblings",
    "resolve_navigation",
    "to_child_item",
]
