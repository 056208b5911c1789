"""Keyword and event hierarchies derived from the album tree."""

from __future__ import annotations

import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

from gallery_site_sync.config import EventDesc, RunState
from gallery_site_sync.models import GalleryEntry, KeywordEntry, Photo
from gallery_site_sync.naming import (
    build_keyword_slug,
    build_url_safe_path,
    ensure_terminated_breadcrumbs,
    ensure_terminated_path,
    extract_date,
    join_path,
    split_breadcrumbs,
    split_path,
)
from gallery_site_sync.photos import (
    ALBUMS_ROOT,
    album_breadcrumbs_for,
    album_path_for,
    build_photo_entry,
    extract_keywords,
)
from gallery_site_sync.tree import GalleryTree

KEYWORDS_ROOT = "keywords"
KEYWORDS_TITLE = "Keywords"
EVENTS_ROOT = "events"
EVENTS_TITLE = "Events"


@dataclass
class SynthesisReport:
    keyword_entries: int = 0
    event_entries: int = 0
    removed_keywords: List[str] = field(default_factory=list)


# ----------------------------------------------------------------------
# Keywords
# ----------------------------------------------------------------------
def collect_keywords(tree: GalleryTree, photos: Sequence[Photo]) -> Dict[str, KeywordEntry]:
    """Group photos by normalized keyword, in photo order.

    The first spelling seen for a keyword becomes its display name. Photos in
    hidden albums contribute nothing.
    """
    keywords: Dict[str, KeywordEntry] = {}
    for photo in photos:
        if tree.is_under_hidden(album_path_for(photo)):
            continue
        for keyword in extract_keywords(photo):
            slug = build_keyword_slug(keyword)
            if not slug:
                continue
            entry = keywords.get(slug)
            if entry is None:
                entry = KeywordEntry(keyword=keyword)
                keywords[slug] = entry
            if entry.photos and entry.photos[-1] is photo:
                continue
            entry.photos.append(photo)
    return keywords


def remove_obese_keywords(keywords: Dict[str, KeywordEntry], max_photos: int) -> List[str]:
    removed: List[str] = []
    for slug, entry in list(keywords.items()):
        if len(entry.photos) > max_photos:
            print(f"[INFO] Removing over-sized, probably generic keyword '{entry.keyword}' ({len(entry.photos)} photos)")
            removed.append(entry.keyword)
            del keywords[slug]
    return removed


def _keyword_target(slug: str, entry: KeywordEntry, photo: Photo) -> Tuple[str, str, str]:
    source_fragments = split_path(album_path_for(photo))
    source_crumbs = split_breadcrumbs(album_breadcrumbs_for(photo))

    leaf = source_fragments[-1]
    parent = source_fragments[-2] if len(source_fragments) > 1 else ALBUMS_ROOT
    path = ensure_terminated_path(f"/{KEYWORDS_ROOT}/{slug[0]}/{slug}/{parent}-{leaf}")

    title = source_crumbs[-1] if source_crumbs else leaf
    parent_date = extract_date(source_crumbs[-2]) if len(source_crumbs) > 1 else ""
    if parent_date:
        title = f"{title} ({parent_date})"
    breadcrumbs = ensure_terminated_breadcrumbs(
        f"\\{KEYWORDS_TITLE}\\{slug[0].upper()}\\{entry.keyword}\\{title}"
    )
    return path, breadcrumbs, title


def build_keyword_entries(tree: GalleryTree, keywords: Dict[str, KeywordEntry]) -> int:
    """Insert one pointer entry per (keyword, photo) pair under /keywords/."""
    inserted = 0
    for slug in sorted(keywords):
        entry = keywords[slug]
        for photo in entry.photos:
            path, breadcrumbs, title = _keyword_target(slug, entry, photo)
            path_fragments = split_path(path)
            tree.ensure_parent_folders_exist(path_fragments, split_breadcrumbs(breadcrumbs))
            pointer = build_photo_entry(photo, path, title, original_album_path=album_path_for(photo))
            if tree.insert(join_path(path_fragments[:-1]), path, pointer) is None:
                inserted += 1
    print(f"[INFO] Built {inserted} keyword entries for {len(keywords)} keyword(s)")
    return inserted


# ----------------------------------------------------------------------
# Events
# ----------------------------------------------------------------------
def find_event_folders(tree: GalleryTree) -> List[GalleryEntry]:
    """Album folders holding photos, outside hidden albums, in path order."""
    prefix = f"/{ALBUMS_ROOT}/"
    return [
        entry
        for entry in tree.entries()
        if entry.path.lower().startswith(prefix)
        and not tree.is_under_hidden(entry.path)
        and any(child.is_image for child in entry.children)
    ]


def match_event(path: str, events: Sequence[EventDesc]) -> Optional[Tuple[EventDesc, re.Match]]:
    """Return the first registered event whose pattern matches ``path``."""
    for event in events:
        match = event.pattern.search(path)
        if match:
            return event, match
    return None


def _event_photo_entry(source: GalleryEntry, path: str) -> GalleryEntry:
    return replace(
        source,
        path=path,
        children=[],
        image_sizes=list(source.image_sizes),
        metadata=list(source.metadata),
        keywords=list(source.keywords),
        original_album_path=source.path,
    )


def build_event_entries(tree: GalleryTree, folders: Sequence[GalleryEntry], events: Sequence[EventDesc]) -> int:
    """Re-project photos of recognized event albums under /events/."""
    inserted = 0
    described: Dict[str, str] = {}
    for folder in folders:
        found = match_event(folder.path, events)
        if found is None:
            continue
        event, match = found
        print(f"[INFO] Found event '{event.name}' in {folder.path}")

        year, month, day, slug = match.group(2), match.group(3), match.group(4), match.group(5)
        path_rest = folder.path[match.end(0):].strip().rstrip("/")
        if not path_rest:
            path_rest = slug.strip()
        event_date = f"{year}-{month}-{day}"
        title_date = extract_date(event_date) or event_date
        folder_title = folder.title.replace(f"{title_date} - ", "")

        for source in sorted(folder.children, key=lambda child: child.path):
            if not source.is_image:
                continue
            path = ensure_terminated_path(
                build_url_safe_path(f"/{EVENTS_ROOT}/{event.name}/{year}/{event_date}/{path_rest}/{source.title}")
            )
            breadcrumbs = ensure_terminated_breadcrumbs(
                f"\\{EVENTS_TITLE}\\{event.name}\\{year}\\{title_date}\\{folder_title}\\{source.title}"
            )
            path_fragments = split_path(path)
            tree.ensure_parent_folders_exist(path_fragments, split_breadcrumbs(breadcrumbs))
            if tree.insert(join_path(path_fragments[:-1]), path, _event_photo_entry(source, path)) is None:
                inserted += 1
            if event.description:
                described.setdefault(join_path(path_fragments[:2]), event.description)

    for event_path, description in described.items():
        tree.describe(event_path, description)
    print(f"[INFO] Built {inserted} event entries")
    return inserted


# ----------------------------------------------------------------------
# Orchestration
# ----------------------------------------------------------------------
def synthesize(
    tree: GalleryTree,
    photos: Sequence[Photo],
    events: Sequence[EventDesc],
    *,
    max_photos_per_keyword: int,
    run_state: Optional[RunState] = None,
) -> SynthesisReport:
    """Build the keyword and event hierarchies concurrently and wait for both."""
    keywords = collect_keywords(tree, photos)
    print(f"[INFO] Found {len(keywords)} keyword(s) in total")
    removed = remove_obese_keywords(keywords, max_photos_per_keyword)
    if run_state is not None:
        run_state.removed_keywords.extend(removed)
    event_folders = find_event_folders(tree)

    with ThreadPoolExecutor(max_workers=2) as executor:
        events_future = executor.submit(build_event_entries, tree, event_folders, events)
        keywords_future = executor.submit(build_keyword_entries, tree, keywords)
        event_entries = events_future.result()
        keyword_entries = keywords_future.result()

    return SynthesisReport(keyword_entries=keyword_entries, event_entries=event_entries, removed_keywords=removed)


__all__ = [
    "EVENTS_ROOT",
    "KEYWORDS_ROOT",
    "SynthesisReport",
    "build_event_entries",
    "build_keyword_entries",
    "collect_keywords",
    "find_event_folders",
    "match_event",
    "remove_obese_keywords",
    "synthesize",
]
