"""One end-to-end run: build the site index, queue the changes, drain the queue."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from gallery_site_sync.config import GALLERY_JSON_VERSION, AppConfig, RunState
from gallery_site_sync.models import GalleryItem, GallerySiteIndex, Photo, UploadType
from gallery_site_sync.photos import ingest_photos, load_repository
from gallery_site_sync.site_index import produce_site_index
from gallery_site_sync.snapshot import (
    SnapshotDiff,
    diff,
    find_deleted_items,
    is_unchanged,
    load_previous,
    write_snapshot,
)
from gallery_site_sync.tree import GalleryTree
from gallery_site_sync.upload_queue import DrainReport, QueueDrainer, SyncTransport, UploadQueue, UploadQuota
from gallery_site_sync.uploader import GallerySyncClient
from gallery_site_sync.virtual import synthesize


class GalleryError(Exception):
    """Base exception for failures that abort a gallery run."""


class QueueWriteError(GalleryError):
    """Raised when a change cannot be persisted to the upload queue."""


class SnapshotWriteError(GalleryError):
    """Raised when the new snapshot cannot be written."""


@dataclass
class RunReport:
    photos: int = 0
    entries: int = 0
    unchanged_run: bool = False
    changes: SnapshotDiff = field(default_factory=SnapshotDiff)
    drain: DrainReport = field(default_factory=DrainReport)


class SiteIndexService:
    def __init__(
        self,
        app_config: AppConfig,
        run_state: RunState,
        client: Optional[SyncTransport] = None,
    ) -> None:
        self.app_config = app_config
        self.run_state = run_state
        self.client = client
        self.queue = UploadQueue(app_config.paths.queue_folder)

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------
    def build_tree(self, photos: List[Photo]) -> GalleryTree:
        site = self.app_config.site
        index = self.app_config.index
        tree = GalleryTree(hidden_paths=index.hidden_paths, run_state=self.run_state)
        tree.add_root(site.title, site.description)
        ingest_photos(tree, photos, max_workers=index.ingest_workers)
        synthesize(
            tree,
            photos,
            self.app_config.events,
            max_photos_per_keyword=index.max_photos_per_keyword,
            run_state=self.run_state,
        )
        located = tree.backfill_locations()
        print(f"[INFO] Backfilled locations for {located} folder(s)")
        return tree

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------
    def _enqueue(self, item: GalleryItem, upload_type: UploadType) -> None:
        try:
            self.queue.enqueue(item, upload_type, GALLERY_JSON_VERSION)
        except OSError as exc:
            raise QueueWriteError(f"Unable to queue {upload_type.value} for '{item.path}': {exc}") from exc

    def enqueue_changes(self, changes: SnapshotDiff) -> int:
        for item in changes.new:
            self._enqueue(item, UploadType.NEW)
        for item in changes.updated:
            self._enqueue(item, UploadType.UPDATE)
        for path in changes.deleted:
            self._enqueue(GalleryItem.deleted(path), UploadType.DELETE)
        queued = len(changes.new) + len(changes.updated) + len(changes.deleted)
        print(f"[INFO] Queued {queued} change(s) in '{self.queue.folder}'")
        return queued

    def publish_snapshot(self, snapshot: GallerySiteIndex) -> None:
        try:
            write_snapshot(self.app_config.paths.snapshot_path, snapshot)
        except OSError as exc:
            raise SnapshotWriteError(f"Unable to write snapshot: {exc}") from exc

    # ------------------------------------------------------------------
    # Drain
    # ------------------------------------------------------------------
    def _transport(self) -> SyncTransport:
        if self.client is None:
            self.client = GallerySyncClient.from_settings(self.app_config.upload)
        return self.client

    def drain_queue(self) -> DrainReport:
        limit = None if self.run_state.no_limit else self.app_config.upload.max_daily_uploads
        drainer = QueueDrainer(self._transport(), self.queue, UploadQuota(limit))
        return drainer.drain()

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------
    def run(self) -> RunReport:
        report = RunReport()
        photos = load_repository(self.app_config.paths.database_input_folder)
        report.photos = len(photos)

        tree = self.build_tree(photos)
        report.entries = len(tree)
        current = produce_site_index(tree, GALLERY_JSON_VERSION)

        snapshot_path = self.app_config.paths.snapshot_path
        previous = None if self.run_state.ignore_existing else load_previous(snapshot_path)
        current.deleted_items = find_deleted_items(previous, current)

        if previous is not None and is_unchanged(snapshot_path, current):
            print("♻️ Site index unchanged since the last run; nothing new to queue")
            report.unchanged_run = True
        else:
            report.changes = diff(previous, current)
            self.enqueue_changes(report.changes)
            self.publish_snapshot(current)

        if self.run_state.anomalies:
            print(f"⚠️ {len(self.run_state.anomalies)} structural anomaly(ies) during this run")
        report.drain = self.drain_queue()
        return report


__all__ = [
    "GalleryError",
    "QueueWriteError",
    "RunReport",
    "SiteIndexService",
    "SnapshotWriteError",
]
