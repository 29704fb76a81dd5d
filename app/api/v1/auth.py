from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from uuid import UUID

from app.db.session import get_db
from app.core.dependencies import get_current_user, get_optional_user
from app.core.security import TokenData
from app.schemas.profile import CurrentUserResponse, SessionResponse, IsCurrentUserResponse
from app.services import profile_service


router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.get("/me", response_model=CurrentUserResponse)
async def get_me(
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get the signed-in user and whether they have created a profile yet."""
    has_profile = await profile_service.has_profile(db, current_user.user_id)
    if has_profile:
        await profile_service.touch_last_active(db, current_user.user_id)

    return CurrentUserResponse(
        id=current_user.user_id,
        email=current_user.email,
        has_profile=has_profile,
    )


@router.get("/session", response_model=SessionResponse)
async def get_session(current_user: TokenData = Depends(get_current_user)):
    """Describe the session behind the bearer token."""
    return SessionResponse(
        user_id=current_user.user_id,
        email=current_user.email,
        expires_at=current_user.expires_at,
    )


@router.get("/is-current/{user_id}", response_model=IsCurrentUserResponse)
async def is_current_user(
    user_id: UUID,
    current_user: Optional[TokenData] = Depends(get_optional_user),
):
    """False when unauthenticated or when user_id belongs to someone else."""
    return IsCurrentUserResponse(
        is_current_user=current_user is not None and current_user.user_id == user_id,
    )
