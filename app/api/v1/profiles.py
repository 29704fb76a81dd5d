from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from app.db.session import get_db
from app.db.redis import RedisService
from app.core.dependencies import get_current_user, get_current_profile, get_redis_service
from app.core.security import TokenData
from app.models.user import Profile
from app.schemas.profile import (
    FieldValidationRequest,
    PrefectureResponse,
    ProfileExistsResponse,
    ProfileForm,
    ProfileResponse,
    ValidationResult,
)
from app.services import profile_service
from app.services.validation import PROFILE_FORM_FIELDS, validate_field, validate_profile


router = APIRouter(prefix="/profiles", tags=["Profiles"])


def _validation_result(errors) -> ValidationResult:
    return ValidationResult(valid=not errors, errors=[error.to_dict() for error in errors])


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(profile: Profile = Depends(get_current_profile)):
    """Get current user's profile."""
    return profile


@router.post("/me", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_profile(
    form: ProfileForm,
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Create profile for current user.
    Field errors come back as 422 with an errors list and nothing is stored.
    """
    return await profile_service.create_profile(db, current_user.user_id, form.model_dump())


@router.put("/me", response_model=ProfileResponse)
async def update_profile(
    form: ProfileForm,
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update current user's profile with the full form."""
    return await profile_service.update_profile(db, current_user.user_id, form.model_dump())


@router.get("/me/exists", response_model=ProfileExistsResponse)
async def profile_exists(
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return ProfileExistsResponse(exists=await profile_service.has_profile(db, current_user.user_id))


@router.get("/prefectures", response_model=List[PrefectureResponse])
async def list_prefectures(
    db: AsyncSession = Depends(get_db),
    redis: RedisService = Depends(get_redis_service),
):
    """Prefecture master list, ordered by code."""
    return await profile_service.get_prefectures(db, redis)


@router.post("/validate", response_model=ValidationResult)
async def validate_form(form: ProfileForm):
    """Run the full form validation without saving."""
    return _validation_result(validate_profile(form.model_dump()))


@router.post("/validate/{field}", response_model=ValidationResult)
async def validate_single_field(field: str, request: FieldValidationRequest):
    """Validate one field as the user types, using the rest of the form for context."""
    if field not in PROFILE_FORM_FIELDS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown field: {field}",
        )
    return _validation_result(validate_field(field, request.value, request.form.model_dump()))


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_user_profile(
    user_id: UUID,
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get another user's profile."""
    profile = await profile_service.get_profile(db, user_id)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found.",
        )
    return profile
