import threading

import pytest

from app.core import firebase
from app.core.exceptions import StorageError
from app.core.firebase import firebase_service


class FakeBlob:
    def __init__(self, store, path):
        self.store = store
        self.path = path
        self.public_url = f"https://storage.test/{path}"

    def exists(self):
        self.store.threads.append(threading.get_ident())
        return self.path in self.store.objects

    def upload_from_string(self, data, content_type=None):
        self.store.threads.append(threading.get_ident())
        self.store.objects[self.path] = data

    def make_public(self):
        pass

    def delete(self):
        self.store.threads.append(threading.get_ident())
        del self.store.objects[self.path]


class FakeBucket:
    def __init__(self):
        self.objects = {}
        self.threads = []

    def blob(self, path):
        return FakeBlob(self, path)


class PushedRef:
    key = "event-1"


class FakeReference:
    def __init__(self, store, path):
        self.store = store
        self.path = path

    def push(self, value):
        self.store.threads.append(threading.get_ident())
        self.store.writes.append((self.path, value))
        return PushedRef()

    def set(self, value):
        self.store.threads.append(threading.get_ident())
        self.store.writes.append((self.path, value))

    def delete(self):
        self.store.threads.append(threading.get_ident())
        self.store.writes.append((self.path, None))


class FakeDatabase:
    def __init__(self):
        self.writes = []
        self.threads = []

    def reference(self, path):
        return FakeReference(self, path)


@pytest.fixture
def sdk(monkeypatch):
    bucket = FakeBucket()
    database = FakeDatabase()
    monkeypatch.setattr(firebase, "firebase_app", object())
    monkeypatch.setattr(firebase.storage, "bucket", lambda: bucket)
    monkeypatch.setattr(firebase.db, "reference", database.reference)
    return bucket, database


async def test_storage_calls_run_off_the_event_loop(sdk):
    bucket, _ = sdk
    loop_thread = threading.get_ident()

    url = await firebase_service.upload_object("profile-media/u/images/a.jpg", b"img", "image/jpeg")
    assert url == "https://storage.test/profile-media/u/images/a.jpg"
    assert await firebase_service.object_exists("profile-media/u/images/a.jpg") is True
    assert await firebase_service.delete_object("profile-media/u/images/a.jpg") is True
    assert await firebase_service.delete_object("profile-media/u/images/a.jpg") is False

    assert bucket.threads
    assert loop_thread not in bucket.threads


async def test_realtime_calls_run_off_the_event_loop(sdk):
    _, database = sdk
    loop_thread = threading.get_ident()

    await firebase_service.create_chat_room("room", "match", "u1", "u2")
    key = await firebase_service.publish_message_event("room", "INSERT", {"id": "m1"})
    await firebase_service.set_presence("room", "u1", online=True)
    await firebase_service.set_presence("room", "u1", online=False)
    await firebase_service.delete_chat_room("room")

    assert key == "event-1"
    assert [path for path, _ in database.writes] == [
        "chat_rooms/room/metadata",
        "chat_rooms/room/events",
        "chat_rooms/room/presence/u1",
        "chat_rooms/room/presence/u1",
        "chat_rooms/room",
    ]
    assert loop_thread not in database.threads


async def test_storage_requires_configuration(monkeypatch):
    monkeypatch.setattr(firebase, "firebase_app", None)

    with pytest.raises(StorageError):
        await firebase_service.object_exists("any")
    assert await firebase_service.publish_message_event("room", "INSERT", {}) is None
