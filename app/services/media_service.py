"""
Profile media uploads to object storage.

Objects are stored as {prefix}/{user_id}/{folder}/{timestamp_ms}_{random}.{ext}
so each user only ever writes below their own id.
"""

import logging
import secrets
import string
import time
import uuid
from dataclasses import dataclass
from typing import List, Optional

from app.config import settings
from app.core.exceptions import PermissionDeniedError, ServiceError
from app.core.firebase import firebase_service


logger = logging.getLogger(__name__)

IMAGE_FOLDER = "images"
VIDEO_FOLDER = "videos"

IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp", "image/heic"}
VIDEO_TYPES = {"video/mp4", "video/quicktime"}

MAX_IMAGE_BYTES = 10 * 1024 * 1024
MAX_VIDEO_BYTES = 50 * 1024 * 1024
MAX_ADDITIONAL_IMAGES = 5

RANDOM_ALPHABET = string.ascii_lowercase + string.digits


@dataclass
class MediaFile:
    filename: Optional[str]
    content_type: Optional[str]
    data: bytes


def random_suffix(length: int) -> str:
    return "".join(secrets.choice(RANDOM_ALPHABET) for _ in range(length))


def file_extension(filename: Optional[str], folder: str) -> str:
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[1].lower()
        if ext:
            return ext
    return "jpg" if folder == IMAGE_FOLDER else "mp4"


def object_name(user_id: uuid.UUID, folder: str, timestamp_ms: int, suffix: str, ext: str) -> str:
    """Path relative to the media prefix."""
    return f"{user_id}/{folder}/{timestamp_ms}_{suffix}.{ext}"


def storage_path(name: str) -> str:
    return f"{settings.MEDIA_BUCKET_PREFIX}/{name}"


def validate_media(file: MediaFile, folder: str) -> None:
    allowed = IMAGE_TYPES if folder == IMAGE_FOLDER else VIDEO_TYPES
    if file.content_type not in allowed:
        raise ServiceError(f"Unsupported file type: {file.content_type}")

    if not file.data:
        raise ServiceError("File is empty")

    limit = MAX_IMAGE_BYTES if folder == IMAGE_FOLDER else MAX_VIDEO_BYTES
    if len(file.data) > limit:
        raise ServiceError(f"File is too large (max {limit // (1024 * 1024)}MB)")


async def upload_file(user_id: uuid.UUID, file: MediaFile, folder: str) -> str:
    """
    Upload one file and return its public URL.
    A name collision is retried once with a longer random suffix.
    """
    if folder not in (IMAGE_FOLDER, VIDEO_FOLDER):
        raise ServiceError(f"Invalid folder: {folder}")
    validate_media(file, folder)

    ext = file_extension(file.filename, folder)
    timestamp_ms = int(time.time() * 1000)

    name = object_name(user_id, folder, timestamp_ms, random_suffix(6), ext)
    if await firebase_service.object_exists(storage_path(name)):
        logger.warning(f"Object {name} already exists, retrying with a new name")
        name = object_name(user_id, folder, timestamp_ms, random_suffix(13), ext)

    url = await firebase_service.upload_object(storage_path(name), file.data, file.content_type)
    logger.info(f"Uploaded {folder[:-1]} for {user_id}: {name} ({len(file.data)} bytes)")
    return url


async def upload_main_image(user_id: uuid.UUID, file: MediaFile) -> str:
    return await upload_file(user_id, file, IMAGE_FOLDER)


async def upload_additional_images(user_id: uuid.UUID, files: List[MediaFile]) -> List[str]:
    if not files:
        raise ServiceError("No files provided")
    if len(files) > MAX_ADDITIONAL_IMAGES:
        raise ServiceError(f"Up to {MAX_ADDITIONAL_IMAGES} additional images can be uploaded")

    # Validate the whole batch before anything is written
    for file in files:
        validate_media(file, IMAGE_FOLDER)

    return [await upload_file(user_id, file, IMAGE_FOLDER) for file in files]


async def upload_video(user_id: uuid.UUID, file: MediaFile) -> str:
    return await upload_file(user_id, file, VIDEO_FOLDER)


async def delete_file(user_id: uuid.UUID, path: str) -> bool:
    """
    Delete an object by its path relative to the media prefix.
    Returns False when there was nothing to delete.
    """
    parts = path.strip("/").split("/")
    if len(parts) < 3 or parts[0] != str(user_id) or ".." in parts:
        raise PermissionDeniedError("You can only delete your own files")

    deleted = await firebase_service.delete_object(storage_path("/".join(parts)))
    if deleted:
        logger.info(f"Deleted media {path} for {user_id}")
    return deleted
