import asyncio
import threading

import pytest

from field_dispatch.storage.object_store import LocalObjectStore, MinioObjectStore


class RecordingMinio:
    def __init__(self, bucket_exists=False):
        self.exists = bucket_exists
        self.calls = []

    def _record(self, name):
        self.calls.append((name, threading.get_ident()))

    def bucket_exists(self, bucket):
        self._record("bucket_exists")
        return self.exists

    def make_bucket(self, bucket):
        self._record("make_bucket")
        self.exists = True

    def presigned_put_object(self, bucket, key, expires):
        self._record("presigned_put_object")
        return f"https://minio.test/{bucket}/{key}?put"

    def presigned_get_object(self, bucket, key, expires):
        self._record("presigned_get_object")
        return f"https://minio.test/{bucket}/{key}?get"

    def remove_object(self, bucket, key):
        self._record("remove_object")


def test_minio_calls_run_off_the_event_loop():
    client = RecordingMinio()
    store = MinioObjectStore(client, "field-evidence", "http://objects.test/field-evidence/")

    async def scenario():
        loop_thread = threading.get_ident()
        first = await store.get_upload_url("evidence/j1/a.jpg", "image/jpeg", 60)
        await store.get_upload_url("evidence/j1/b.jpg", "image/jpeg", 60)
        download = await store.get_download_url("evidence/j1/a.jpg", 60)
        await store.delete_file("evidence/j1/a.jpg")
        return loop_thread, first, download

    loop_thread, first, download = asyncio.run(scenario())

    assert first["upload_url"].endswith("?put")
    assert first["public_url"] == "http://objects.test/field-evidence/evidence/j1/a.jpg"
    assert download.endswith("?get")
    names = [name for name, _ in client.calls]
    assert names.count("make_bucket") == 1
    assert names.count("bucket_exists") == 1
    assert "remove_object" in names
    assert all(thread != loop_thread for _, thread in client.calls)


def test_local_store_rejects_keys_outside_root(tmp_path):
    store = LocalObjectStore(str(tmp_path), "http://objects.test/field-evidence")

    with pytest.raises(ValueError):
        asyncio.run(store.get_download_url("../outside.jpg", 60))

    upload = asyncio.run(store.get_upload_url("evidence/j1/a.jpg", "image/jpeg", 60))
    assert upload["upload_url"].startswith("file://")
    assert (tmp_path / "evidence" / "j1").is_dir()

    # deleting a file that was never uploaded is not an error
    asyncio.run(store.delete_file("evidence/j1/a.jpg"))
