# tests/test_uploader.py
# HTTP transport with a fake session; no network

import json
from datetime import datetime

import requests

from gallery_site_sync.models import GalleryItem, UploadQueueItem, UploadType
from gallery_site_sync.uploader import GallerySyncClient


class FakeResponse:
    def __init__(self, status_code: int):
        self.status_code = status_code


class FakeSession:
    """Replays scripted outcomes: an int is a status code, an exception is raised."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def post(self, url, data=None, headers=None, timeout=None):
        self.calls.append({"url": url, "data": data, "timeout": timeout})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return FakeResponse(outcome)

    def close(self):
        pass


def _queue_item(upload_type=UploadType.NEW):
    if upload_type is UploadType.DELETE:
        item = GalleryItem.deleted("/albums/gone/")
    else:
        item = GalleryItem(
            path="/albums/a/",
            title="a",
            description="",
            date_created=datetime(2020, 1, 1),
            date_updated=datetime(2020, 1, 1),
            type="photo",
        )
    return UploadQueueItem(item, upload_type, 1)


def _client(session, retries=5):
    return GallerySyncClient(
        "https://gallery.example.test/api",
        timeout=30,
        max_retries=retries,
        retry_sleep_seconds=0,
        session=session,
    )


def test_posts_single_item_envelope_to_sync_endpoint():
    session = FakeSession([200])

    assert _client(session).deliver(_queue_item())

    call = session.calls[0]
    assert call["url"] == "https://gallery.example.test/api/tasks/sync"
    assert call["timeout"] == 30
    body = json.loads(call["data"].decode("utf-8"))
    assert body["version"] == 1
    assert [item["path"] for item in body["items"]] == ["/albums/a/"]
    assert body["deletedItems"] == []


def test_delete_envelope_carries_only_the_path():
    session = FakeSession([204])
    assert _client(session).deliver(_queue_item(UploadType.DELETE))
    body = json.loads(session.calls[0]["data"].decode("utf-8"))
    assert body["items"] == []
    assert body["deletedItems"] == ["/albums/gone/"]


def test_retries_transport_errors_and_bad_status():
    session = FakeSession([requests.exceptions.Timeout("slow"), 500, 201])
    assert _client(session).deliver(_queue_item())
    assert len(session.calls) == 3


def test_gives_up_after_max_retries(capsys):
    session = FakeSession([requests.exceptions.ConnectionError("down")] * 5)
    assert not _client(session).deliver(_queue_item())
    assert len(session.calls) == 5
    assert "Upload attempt 5 of 5 failed" in capsys.readouterr().out
