"""HTTP transport that pushes single-item changes to the gallery service."""

from __future__ import annotations

import time
from typing import Optional
from urllib.parse import urljoin

import requests

from gallery_site_sync.config import (
    DEFAULT_RETRIES,
    DEFAULT_RETRY_SLEEP_SECONDS,
    DEFAULT_UPLOAD_TIMEOUT_SECONDS,
    UploadSettings,
)
from gallery_site_sync.models import GallerySiteIndex, UploadQueueItem

SYNC_ENDPOINT = "tasks/sync"


class GallerySyncClient:
    """POSTs envelopes to ``{base_url}/tasks/sync`` with bounded retries."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_UPLOAD_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_RETRIES,
        retry_sleep_seconds: float = DEFAULT_RETRY_SLEEP_SECONDS,
        session: Optional[requests.Session] = None,
    ) -> None:
        base = base_url if base_url.endswith("/") else f"{base_url}/"
        self.endpoint = urljoin(base, SYNC_ENDPOINT)
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_sleep_seconds = retry_sleep_seconds
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: UploadSettings) -> "GallerySyncClient":
        return cls(
            settings.base_url,
            timeout=settings.timeout_seconds,
            max_retries=settings.max_retries,
            retry_sleep_seconds=settings.retry_sleep_seconds,
        )

    def post_once(self, envelope: GallerySiteIndex, label: str) -> bool:
        """Single attempt; any transport error or non-2xx status is a failure."""
        try:
            response = self.session.post(
                self.endpoint,
                data=envelope.serialize().encode("utf-8"),
                headers={"Content-Type": "application/json; charset=utf-8"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            print(f"   ↳ ❌ {label}: {exc}")
            return False
        if not 200 <= response.status_code < 300:
            print(f"   ↳ ❌ {label}: HTTP {response.status_code}")
            return False
        return True

    def deliver(self, queue_item: UploadQueueItem) -> bool:
        envelope = queue_item.to_envelope()
        label = f"{queue_item.upload_type.value} {queue_item.path}"
        for attempt in range(1, self.max_retries + 1):
            if self.post_once(envelope, label):
                print(f"✅ Uploaded {label}")
                return True
            print(f"Upload attempt {attempt} of {self.max_retries} failed for {queue_item.path}")
            if attempt < self.max_retries:
                time.sleep(self.retry_sleep_seconds)
        return False


__all__ = ["GallerySyncClient", "SYNC_ENDPOINT"]
