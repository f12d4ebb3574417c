# tests/test_object_store.py
import pytest
from botocore.exceptions import ClientError

from onnoff_app.errors import StoreUnavailableError
from onnoff_app.services.object_store import LocalObjectStore, S3ObjectStore, init_object_store


# --------------------------------------------------------------------
# Disco local
# --------------------------------------------------------------------
def test_local_put_delete_roundtrip(tmp_path):
    store = LocalObjectStore(str(tmp_path))
    url = store.put("photos/1/a.jpg", b"abc", "image/jpeg")
    assert url == "/uploads/photos/1/a.jpg"
    assert (tmp_path / "photos/1/a.jpg").read_bytes() == b"abc"
    assert store.key_from_url(url) == "photos/1/a.jpg"

    store.delete("photos/1/a.jpg")
    assert not (tmp_path / "photos/1/a.jpg").exists()
    # apagar de novo não é erro
    store.delete("photos/1/a.jpg")


def test_local_rejects_keys_outside_root(tmp_path):
    store = LocalObjectStore(str(tmp_path / "root"))
    with pytest.raises(ValueError):
        store.put("../escape.jpg", b"x")


def test_local_key_from_foreign_url(tmp_path):
    store = LocalObjectStore(str(tmp_path))
    assert store.key_from_url(None) is None
    assert store.key_from_url("https://example.com/x.jpg") is None


# --------------------------------------------------------------------
# S3 com client falso
# --------------------------------------------------------------------
class _FakeS3:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def _maybe_fail(self, op):
        if self.fail:
            raise ClientError({"Error": {"Code": "500", "Message": "boom"}}, op)

    def put_object(self, **kwargs):
        self._maybe_fail("PutObject")
        self.calls.append(("put", kwargs))

    def delete_object(self, **kwargs):
        self._maybe_fail("DeleteObject")
        self.calls.append(("delete", kwargs))


def test_s3_put_returns_public_url():
    client = _FakeS3()
    store = S3ObjectStore("bucket", "sa-east-1", client=client)
    url = store.put("photos/1/a.jpg", b"abc", "image/jpeg")
    assert url == "https://bucket.s3.sa-east-1.amazonaws.com/photos/1/a.jpg"
    op, kwargs = client.calls[0]
    assert op == "put"
    assert kwargs["Bucket"] == "bucket" and kwargs["Key"] == "photos/1/a.jpg"
    assert kwargs["ContentType"] == "image/jpeg"
    assert store.key_from_url(url) == "photos/1/a.jpg"


def test_s3_custom_public_base_url():
    store = S3ObjectStore("bucket", "us-east-1", public_base_url="https://cdn.example.com/", client=_FakeS3())
    url = store.put("k.jpg", b"x")
    assert url == "https://cdn.example.com/k.jpg"
    assert store.key_from_url(url) == "k.jpg"
    assert store.key_from_url("https://elsewhere.example.com/k.jpg") is None


def test_s3_errors_become_store_unavailable():
    store = S3ObjectStore("bucket", "us-east-1", client=_FakeS3(fail=True))
    with pytest.raises(StoreUnavailableError):
        store.put("k.jpg", b"x")
    with pytest.raises(StoreUnavailableError):
        store.delete("k.jpg")


def test_init_object_store_picks_backend(app, monkeypatch):
    monkeypatch.setitem(app.config, "S3_BUCKET", "")
    init_object_store(app)
    assert isinstance(app.extensions["object_store"], LocalObjectStore)

    monkeypatch.setitem(app.config, "S3_BUCKET", "bucket")
    monkeypatch.setitem(app.config, "AWS_ACCESS_KEY_ID", "test")
    monkeypatch.setitem(app.config, "AWS_SECRET_ACCESS_KEY", "test")
    init_object_store(app)
    assert isinstance(app.extensions["object_store"], S3ObjectStore)
