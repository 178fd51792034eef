"""Object storage adapter: key shape and error translation."""
from __future__ import annotations

import asyncio
import re
import time

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from printorder.errors import UpstreamError, UpstreamTimeoutError
from printorder.services import storage

# conftest swaps storage.upload for a fake; keep the real one for these tests
_real_upload = storage.upload


class StubStore:
    def __init__(self, fail_with=None, delay=0.0):
        self.fail_with = fail_with
        self.delay = delay
        self.calls = []

    def put(self, data, file_name, content_type):
        self.calls.append((file_name, content_type, len(data)))
        if self.delay:
            time.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        return f"https://files.test/orders/1-{file_name}"


@pytest.fixture()
def stub(monkeypatch):
    def _install(**kwargs):
        store = StubStore(**kwargs)
        monkeypatch.setattr(storage, "get_store", lambda: store)
        return store
    return _install


def test_upload_returns_public_url(stub):
    store = stub()
    url = asyncio.run(_real_upload(b"data", "a.jpg", "image/jpeg"))
    assert url == "https://files.test/orders/1-a.jpg"
    assert store.calls == [("a.jpg", "image/jpeg", 4)]


@pytest.mark.parametrize("exc", [
    ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"),
    EndpointConnectionError(endpoint_url="https://r2.test"),
])
def test_boto_failures_become_upstream_errors(stub, exc):
    stub(fail_with=exc)
    with pytest.raises(UpstreamError) as err:
        asyncio.run(_real_upload(b"data", "a.jpg", "image/jpeg"))
    assert not isinstance(err.value, UpstreamTimeoutError)
    assert err.value.message == "Failed to upload a.jpg"
    assert err.value.status_code == 500


def test_slow_upload_times_out(stub, monkeypatch):
    monkeypatch.setattr(storage.settings, "upstream_timeout_seconds", 0.05)
    stub(delay=0.3)
    with pytest.raises(UpstreamTimeoutError) as err:
        asyncio.run(_real_upload(b"data", "a.jpg", "image/jpeg"))
    assert err.value.status_code == 504


# ---------- ObjectStore ----------

class RecordingS3:
    def __init__(self):
        self.puts = []

    def put_object(self, **kwargs):
        self.puts.append(kwargs)


@pytest.fixture()
def object_store(monkeypatch):
    monkeypatch.setattr(storage.settings, "storage_endpoint_url", "https://r2.test")
    monkeypatch.setattr(storage.settings, "storage_public_url", "https://files.test/")
    store = storage.ObjectStore()
    store.client = RecordingS3()
    return store


def test_object_key_is_prefixed_and_flattened(object_store):
    key = object_store.object_key("a/../b\\c.jpg")
    assert re.fullmatch(r"orders/\d{13}-a_\.\._b_c\.jpg", key)
    assert re.fullmatch(r"orders/\d{13}-file", object_store.object_key(""))


def test_put_writes_bucket_and_returns_public_url(object_store):
    url = object_store.put(b"%PDF", "b.pdf", "application/pdf")
    put = object_store.client.puts[0]

    assert put["Bucket"] == "test-bucket"
    assert put["Body"] == b"%PDF"
    assert put["ContentType"] == "application/pdf"
    assert url == f"https://files.test/{put['Key']}"


def test_put_defaults_content_type(object_store):
    object_store.put(b"x", "blob", "")
    assert object_store.client.puts[0]["ContentType"] == "application/octet-stream"


def test_store_requires_a_bucket(monkeypatch):
    monkeypatch.setattr(storage.settings, "storage_bucket", "")
    with pytest.raises(RuntimeError):
        storage.ObjectStore()
