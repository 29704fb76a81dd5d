from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.db.session import get_db
from app.db.redis import RedisService
from app.core.security import TokenData, verify_access_token
from app.models.user import Profile
from app.services import profile_service


# Security scheme
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> TokenData:
    """
    Dependency to get the current authenticated user.
    Validates the provider-issued bearer token; no database lookup.
    """
    return verify_access_token(credentials.credentials)


async def get_current_profile(
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    """
    Dependency to get the current user's profile.
    """
    profile = await profile_service.get_profile(db, current_user.user_id)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found. Create a profile first.",
        )
    return profile


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(
        HTTPBearer(auto_error=False)
    ),
) -> Optional[TokenData]:
    """
    Dependency to optionally get the current user.
    Returns None if no valid token is provided.
    """
    if credentials is None:
        return None

    try:
        return verify_access_token(credentials.credentials)
    except HTTPException:
        return None


def get_redis_service() -> RedisService:
    """Dependency to get Redis service."""
    return RedisService()
