from fastapi import APIRouter

from app.api.v1.auth import router as auth_router
from app.api.v1.profiles import router as profiles_router
from app.api.v1.matching import router as matching_router
from app.api.v1.chat import router as chat_router
from app.api.v1.media import router as media_router

api_router = APIRouter()

# Include all route modules
api_router.include_router(auth_router)
api_router.include_router(profiles_router)
api_router.include_router(matching_router)
api_router.include_router(chat_router)
api_router.include_router(media_router)

