"""Durable per-item upload queue, daily quota and the sequential drainer."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import List, Optional, Protocol

from gallery_site_sync.models import TYPE_PHOTO, GalleryItem, UploadQueueItem, UploadType
from gallery_site_sync.naming import hash_text
from gallery_site_sync.snapshot import write_text_atomically

QUEUE_FILE_PREFIX = "UploadQueue"
QUEUE_FILE_EXTENSION = ".queue"


class UploadQueue:
    """One JSON file per pending path; enqueueing a path again replaces its file."""

    def __init__(self, folder: str) -> None:
        self.folder = folder

    @staticmethod
    def file_name_for(path: str) -> str:
        return f"{QUEUE_FILE_PREFIX}{hash_text(path)}{QUEUE_FILE_EXTENSION}"

    def file_path_for(self, path: str) -> str:
        return os.path.join(self.folder, self.file_name_for(path))

    def enqueue(self, item: GalleryItem, upload_type: UploadType, version: int) -> str:
        queue_item = UploadQueueItem(item=item, upload_type=upload_type, version=version)
        target = self.file_path_for(item.path)
        write_text_atomically(target, json.dumps(queue_item.to_json(), indent=2, ensure_ascii=False))
        return target

    def load(self) -> List[UploadQueueItem]:
        if not os.path.isdir(self.folder):
            return []
        with os.scandir(self.folder) as iterator:
            entries = sorted(iterator, key=lambda item: item.name)
        items: List[UploadQueueItem] = []
        for entry in entries:
            if not entry.is_file() or not entry.name.endswith(QUEUE_FILE_EXTENSION):
                continue
            try:
                with open(entry.path, "r", encoding="utf-8") as handle:
                    items.append(UploadQueueItem.from_json(json.load(handle)))
            except (OSError, ValueError, TypeError) as exc:
                print(f"[WARN] Leaving unreadable queue file '{entry.path}' in place: {exc}")
        return items

    def remove(self, queue_item: UploadQueueItem) -> None:
        target = self.file_path_for(queue_item.path)
        try:
            os.remove(target)
        except FileNotFoundError:
            print(f"[WARN] Queue file for '{queue_item.path}' already gone")

    def __len__(self) -> int:
        if not os.path.isdir(self.folder):
            return 0
        return sum(1 for name in os.listdir(self.folder) if name.endswith(QUEUE_FILE_EXTENSION))


def drain_order(items: List[UploadQueueItem]) -> List[UploadQueueItem]:
    """Photos before folders, each by path; deletes last, by path."""
    changes = [item for item in items if not item.is_delete]
    deletes = [item for item in items if item.is_delete]
    changes.sort(key=lambda item: (0 if item.item.type == TYPE_PHOTO else 1, item.path))
    deletes.sort(key=lambda item: item.path)
    return changes + deletes


class UploadQuota:
    """Per-run upload allowance; ``limit=None`` means unlimited."""

    def __init__(self, limit: Optional[int]) -> None:
        self.limit = limit
        self.used = 0

    @property
    def remaining(self) -> Optional[int]:
        if self.limit is None:
            return None
        return max(0, self.limit - self.used)

    @property
    def exhausted(self) -> bool:
        return self.limit is not None and self.used >= self.limit

    def try_acquire(self) -> bool:
        if self.exhausted:
            return False
        self.used += 1
        return True


class SyncTransport(Protocol):
    def deliver(self, queue_item: UploadQueueItem) -> bool:
        ...


@dataclass
class DrainReport:
    delivered: int = 0
    failed: int = 0
    remaining: int = 0
    quota_reached: bool = False


class QueueDrainer:
    def __init__(self, client: SyncTransport, queue: UploadQueue, quota: UploadQuota) -> None:
        self.client = client
        self.queue = queue
        self.quota = quota

    def drain(self, items: Optional[List[UploadQueueItem]] = None) -> DrainReport:
        """Deliver queued items in drain order until done or out of quota.

        Delivered items leave the queue; failed ones stay for the next run.
        """
        pending = drain_order(self.queue.load() if items is None else list(items))
        report = DrainReport()
        for queue_item in pending:
            if not self.quota.try_acquire():
                print(f"⚠️ REACHED MAX daily uploads ({self.quota.limit}); stopping early")
                report.quota_reached = True
                break
            if self.client.deliver(queue_item):
                self.queue.remove(queue_item)
                report.delivered += 1
            else:
                print(f"[ERROR] Upload of {queue_item.path} failed; left queued")
                report.failed += 1
        report.remaining = len(pending) - report.delivered
        print(
            f"[INFO] Drain finished: {report.delivered} delivered, {report.failed} failed, "
            f"{report.remaining} still queued"
        )
        return report


__all__ = [
    "DrainReport",
    "QueueDrainer",
    "UploadQueue",
    "UploadQuota",
    "drain_order",
]
