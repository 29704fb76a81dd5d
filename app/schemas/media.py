from pydantic import BaseModel
from typing import List


class MediaUploadResponse(BaseModel):
    url: str


class MediaBatchUploadResponse(BaseModel):
    urls: List[str]


class MediaDeleteResponse(BaseModel):
    path: str
    deleted: bool
