from fastapi import APIRouter, Depends, UploadFile, File, Query
from typing import List

from app.core.dependencies import get_current_user
from app.core.security import TokenData
from app.schemas.media import MediaBatchUploadResponse, MediaDeleteResponse, MediaUploadResponse
from app.services import media_service
from app.services.media_service import MediaFile


router = APIRouter(prefix="/media", tags=["Media"])


async def _read(upload: UploadFile) -> MediaFile:
    return MediaFile(filename=upload.filename, content_type=upload.content_type, data=await upload.read())


@router.post("/images/main", response_model=MediaUploadResponse)
async def upload_main_image(
    file: UploadFile = File(...),
    current_user: TokenData = Depends(get_current_user),
):
    """Upload the main profile photo. Returns its public URL."""
    url = await media_service.upload_main_image(current_user.user_id, await _read(file))
    return MediaUploadResponse(url=url)


@router.post("/images", response_model=MediaBatchUploadResponse)
async def upload_additional_images(
    files: List[UploadFile] = File(...),
    current_user: TokenData = Depends(get_current_user),
):
    """Upload up to 5 additional profile photos."""
    media_files = [await _read(upload) for upload in files]
    urls = await media_service.upload_additional_images(current_user.user_id, media_files)
    return MediaBatchUploadResponse(urls=urls)


@router.post("/videos", response_model=MediaUploadResponse)
async def upload_video(
    file: UploadFile = File(...),
    current_user: TokenData = Depends(get_current_user),
):
    url = await media_service.upload_video(current_user.user_id, await _read(file))
    return MediaUploadResponse(url=url)


@router.delete("", response_model=MediaDeleteResponse)
async def delete_media(
    path: str = Query(..., min_length=1),
    current_user: TokenData = Depends(get_current_user),
):
    """Delete one of my uploads by its storage path ({user_id}/{folder}/{name})."""
    deleted = await media_service.delete_file(current_user.user_id, path)
    return MediaDeleteResponse(path=path, deleted=deleted)
