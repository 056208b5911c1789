"""The path-keyed gallery tree that every derived view is built from."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Set

from gallery_site_sync.config import DEFAULT_HIDDEN_PATHS, RunState
from gallery_site_sync.location import get_center_from_degrees
from gallery_site_sync.models import GalleryEntry, Location
from gallery_site_sync.naming import join_path, reformat_title

ROOT_PATH = "/"

ANOMALY_DUPLICATE_PATH = "duplicate-path"
ANOMALY_MISSING_PARENT = "missing-parent"


@dataclass(frozen=True)
class StructuralAnomaly:
    """An insert the tree refused; the run carries on without it."""

    kind: str
    path: str
    parent_path: str

    def describe(self) -> str:
        if self.kind == ANOMALY_DUPLICATE_PATH:
            return f"Duplicate path '{self.path}'"
        return f"Parent '{self.parent_path}' missing for '{self.path}'"


class GalleryTree:
    """Single source of truth for the gallery hierarchy.

    Writers (ingestion, keyword and event synthesis) may run concurrently;
    every mutation goes through one lock. Navigation and assembly only start
    once all writers of the run have joined.
    """

    def __init__(
        self,
        *,
        hidden_paths: Optional[Sequence[str]] = None,
        run_state: Optional[RunState] = None,
    ) -> None:
        self._entries: Dict[str, GalleryEntry] = {}
        self._lock = threading.Lock()
        configured = DEFAULT_HIDDEN_PATHS if hidden_paths is None else hidden_paths
        self.hidden_paths = [path.lower() for path in configured]
        self._derived_folders: Set[str] = set()
        self.run_state = run_state

    # ------------------------------------------------------------------
    # Hidden albums
    # ------------------------------------------------------------------
    def is_hidden(self, path: str) -> bool:
        return path.lower() in self.hidden_paths

    def is_under_hidden(self, path: str) -> bool:
        lowered = path.lower()
        return any(lowered.startswith(hidden) for hidden in self.hidden_paths)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def add_root(self, title: str, description: str) -> GalleryEntry:
        root = GalleryEntry(path=ROOT_PATH, title=title, description=description)
        with self._lock:
            self._entries[ROOT_PATH] = root
        return root

    def insert(self, parent_path: str, path: str, entry: GalleryEntry) -> Optional[StructuralAnomaly]:
        with self._lock:
            anomaly = self._insert_locked(parent_path, path, entry)
        if anomaly is not None:
            self._report(anomaly)
        return anomaly

    def _insert_locked(self, parent_path: str, path: str, entry: GalleryEntry) -> Optional[StructuralAnomaly]:
        parent = self._entries.get(parent_path)
        if parent is None:
            return StructuralAnomaly(ANOMALY_MISSING_PARENT, path, parent_path)
        if path in self._entries:
            return StructuralAnomaly(ANOMALY_DUPLICATE_PATH, path, parent_path)
        parent.children.append(entry)
        self._entries[path] = entry
        return None

    def _report(self, anomaly: StructuralAnomaly) -> None:
        print(f"[ERROR] {anomaly.describe()}; entry skipped")
        if self.run_state is not None:
            self.run_state.record_anomaly(anomaly)

    def ensure_parent_folders_exist(
        self,
        path_fragments: Sequence[str],
        breadcrumb_fragments: Sequence[str],
    ) -> List[StructuralAnomaly]:
        """Create every missing ancestor folder of the given path.

        Folder titles come from the breadcrumb fragment at the same depth,
        reformatted so a leading date reads as a long date. Each level is
        checked and created under the lock, so concurrent callers sharing
        ancestors never collide. When callers disagree on a folder's title
        the lowest one wins, whatever order the threads arrive in.
        """
        anomalies: List[StructuralAnomaly] = []
        for level in range(1, len(path_fragments)):
            folder_path = join_path(list(path_fragments[:level]))
            if level - 1 < len(breadcrumb_fragments):
                title = reformat_title(breadcrumb_fragments[level - 1])
            else:
                title = reformat_title(path_fragments[level - 1])
            folder = GalleryEntry(path=folder_path, title=title)
            parent = join_path(list(path_fragments[: level - 1]))
            with self._lock:
                existing = self._entries.get(folder_path)
                if existing is not None:
                    if folder_path in self._derived_folders and title < existing.title:
                        existing.title = title
                    continue
                anomaly = self._insert_locked(parent, folder_path, folder)
                if anomaly is None:
                    self._derived_folders.add(folder_path)
            if anomaly is not None:
                self._report(anomaly)
                anomalies.append(anomaly)
        return anomalies

    def describe(self, path: str, description: str) -> bool:
        with self._lock:
            entry = self._entries.get(path)
            if entry is None or entry.description:
                return False
            entry.description = description
            return True

    def backfill_locations(self) -> int:
        """Give every located-less folder the centroid of its leaf descendants."""
        updated = 0
        for entry in self._entries.values():
            if entry.location is not None or not entry.children:
                continue
            locations: List[Location] = []
            _append_child_locations(entry, locations)
            center = get_center_from_degrees(locations)
            if center is not None:
                entry.location = center
                updated += 1
        return updated

    # ------------------------------------------------------------------
    # Read phase
    # ------------------------------------------------------------------
    def get(self, path: str) -> Optional[GalleryEntry]:
        return self._entries.get(path)

    def entries(self) -> List[GalleryEntry]:
        with self._lock:
            values = list(self._entries.values())
        return sorted(values, key=lambda entry: entry.path)

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[GalleryEntry]:
        return iter(self.entries())


def _append_child_locations(entry: GalleryEntry, locations: List[Location]) -> None:
    # Path order keeps the floating point sum stable across runs.
    for child in sorted(entry.children, key=lambda item: item.path):
        if child.children:
            _append_child_locations(child, locations)
        elif child.location is not None:
            locations.append(child.location)


__all__ = [
    "ANOMALY_DUPLICATE_PATH",
    "ANOMALY_MISSING_PARENT",
    "GalleryTree",
    "ROOT_PATH",
    "StructuralAnomaly",
]
