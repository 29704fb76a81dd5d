import re
import uuid

import pytest

from app.core.exceptions import PermissionDeniedError, ServiceError
from app.core.firebase import firebase_service
from app.services import media_service
from app.services.media_service import MediaFile


class FakeBucket:
    def __init__(self, existing=()):
        self.objects = {path: b"" for path in existing}
        self.exists_checks = []

    async def object_exists(self, path):
        self.exists_checks.append(path)
        return path in self.objects

    async def upload_object(self, path, data, content_type):
        self.objects[path] = data
        return f"https://storage.test/{path}"

    async def delete_object(self, path):
        return self.objects.pop(path, None) is not None


@pytest.fixture
def bucket(monkeypatch):
    fake = FakeBucket()
    monkeypatch.setattr(firebase_service, "object_exists", fake.object_exists)
    monkeypatch.setattr(firebase_service, "upload_object", fake.upload_object)
    monkeypatch.setattr(firebase_service, "delete_object", fake.delete_object)
    return fake


def jpeg(size=1024, filename="photo.JPG"):
    return MediaFile(filename=filename, content_type="image/jpeg", data=b"\xff" * size)


async def test_upload_main_image_path_layout(bucket):
    user_id = uuid.uuid4()

    url = await media_service.upload_main_image(user_id, jpeg())

    (path,) = bucket.objects
    assert re.fullmatch(rf"profile-media/{user_id}/images/\d{{13}}_[a-z0-9]{{6}}\.jpg", path)
    assert url == f"https://storage.test/{path}"


async def test_extension_defaults_by_folder(bucket):
    user_id = uuid.uuid4()
    await media_service.upload_video(user_id, MediaFile(filename="clip", content_type="video/mp4", data=b"v"))

    (path,) = bucket.objects
    assert path.endswith(".mp4")
    assert f"/{user_id}/videos/" in path


async def test_name_collision_retries_with_longer_suffix(bucket, monkeypatch):
    user_id = uuid.uuid4()
    checked = []

    async def taken_once(path):
        checked.append(path)
        return len(checked) == 1

    monkeypatch.setattr(firebase_service, "object_exists", taken_once)

    await media_service.upload_main_image(user_id, jpeg())

    (path,) = bucket.objects
    assert re.search(r"/\d{13}_[a-z0-9]{13}\.jpg$", path)


@pytest.mark.parametrize(
    "file",
    [
        MediaFile(filename="doc.pdf", content_type="application/pdf", data=b"x"),
        MediaFile(filename="clip.mp4", content_type="video/mp4", data=b"x"),
        MediaFile(filename="empty.jpg", content_type="image/jpeg", data=b""),
    ],
)
async def test_invalid_images_rejected(bucket, file):
    with pytest.raises(ServiceError):
        await media_service.upload_main_image(uuid.uuid4(), file)
    assert bucket.objects == {}


async def test_size_limits(bucket):
    user_id = uuid.uuid4()
    await media_service.upload_main_image(user_id, jpeg(size=media_service.MAX_IMAGE_BYTES))

    with pytest.raises(ServiceError, match="too large"):
        await media_service.upload_main_image(user_id, jpeg(size=media_service.MAX_IMAGE_BYTES + 1))

    video = MediaFile(filename="v.mov", content_type="video/quicktime", data=b"v" * (media_service.MAX_IMAGE_BYTES + 1))
    await media_service.upload_video(user_id, video)


async def test_additional_images_limit(bucket):
    user_id = uuid.uuid4()
    urls = await media_service.upload_additional_images(user_id, [jpeg(filename=f"{i}.png") for i in range(5)])
    assert len(urls) == 5

    with pytest.raises(ServiceError):
        await media_service.upload_additional_images(user_id, [jpeg() for _ in range(6)])


async def test_additional_images_validated_before_upload(bucket):
    files = [jpeg(), MediaFile(filename="x.gif", content_type="image/gif", data=b"g")]
    with pytest.raises(ServiceError):
        await media_service.upload_additional_images(uuid.uuid4(), files)
    assert bucket.objects == {}


async def test_delete_own_file(bucket):
    user_id = uuid.uuid4()
    await media_service.upload_main_image(user_id, jpeg())
    (path,) = bucket.objects
    relative = path[len("profile-media/"):]

    assert await media_service.delete_file(user_id, relative) is True
    assert await media_service.delete_file(user_id, relative) is False


@pytest.mark.parametrize("path", ["{other}/images/a.jpg", "{me}/../{other}/images/a.jpg", "{me}"])
async def test_delete_rejects_foreign_paths(bucket, path):
    me, other = uuid.uuid4(), uuid.uuid4()
    with pytest.raises(PermissionDeniedError):
        await media_service.delete_file(me, path.format(me=me, other=other))
