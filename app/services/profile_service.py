"""
Profile CRUD, completion scoring and the prefecture list.
"""

import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ConflictError, NotFoundError, ProfileValidationError
from app.db.redis import RedisService
from app.db.session import utcnow
from app.models.user import Prefecture, Profile
from app.services.validation import parse_int, validate_profile


logger = logging.getLogger(__name__)

PREFECTURE_CACHE_KEY = "prefectures"

# Served when the prefectures table is empty or unreachable
PREFECTURES_FALLBACK: List[Dict[str, str]] = [
    {"code": "01", "name": "Hokkaido"},
    {"code": "11", "name": "Saitama"},
    {"code": "12", "name": "Chiba"},
    {"code": "13", "name": "Tokyo"},
    {"code": "14", "name": "Kanagawa"},
    {"code": "23", "name": "Aichi"},
    {"code": "27", "name": "Osaka"},
    {"code": "40", "name": "Fukuoka"},
]


def calculate_completion_rate(data: Mapping[str, Any]) -> int:
    """Percentage score over filled-in profile fields, capped at 100."""
    rate = 0

    # Required items, 20 each
    for field in ("display_name", "age", "gender", "prefecture", "main_image_url"):
        if data.get(field):
            rate += 20

    # Optional items
    if data.get("city"):
        rate += 5
    if data.get("occupation"):
        rate += 5
    bio = data.get("bio") or ""
    if len(bio) >= 20:
        rate += 10
    if data.get("preferred_min_age") and data.get("preferred_max_age"):
        rate += 5
    if data.get("additional_images"):
        rate += 5
    if data.get("video_url"):
        rate += 5

    return min(rate, 100)


def _int_or_none(value: str) -> Optional[int]:
    value = (value or "").strip()
    if not value:
        return None
    return parse_int(value)


def _build_profile_values(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert validated form values into column values. Blank optionals become NULL."""
    return {
        "display_name": data["display_name"],
        "age": _int_or_none(data["age"]),
        "gender": data["gender"],
        "prefecture": data["prefecture"],
        "city": data.get("city") or None,
        "occupation": data.get("occupation") or None,
        "bio": data.get("bio") or None,
        "interests": data.get("interests") or [],
        "preferred_min_age": _int_or_none(data.get("preferred_min_age", "")),
        "preferred_max_age": _int_or_none(data.get("preferred_max_age", "")),
        "preferred_prefecture": data.get("preferred_prefecture") or None,
        "main_image_url": data.get("main_image_url") or None,
        "additional_images": data.get("additional_images") or None,
        "video_url": data.get("video_url") or None,
        "meeting_purpose": data.get("meeting_purpose") or None,
        "nickname": data.get("nickname") or None,
        "height": _int_or_none(data.get("height", "")),
        "body_type": data.get("body_type") or None,
        "hometown_prefecture": data.get("hometown_prefecture") or None,
        "drinking": data.get("drinking") or None,
        "smoking": data.get("smoking") or None,
        "free_days": data.get("free_days") or None,
        "meeting_frequency": data.get("meeting_frequency") or None,
        "future_dreams": data.get("future_dreams") or None,
        "profile_completion_rate": calculate_completion_rate(data),
    }


def _validated_values(data: Mapping[str, Any]) -> Dict[str, Any]:
    errors = validate_profile(data)
    if errors:
        raise ProfileValidationError(errors)
    return _build_profile_values(data)


async def get_profile(db: AsyncSession, user_id: uuid.UUID) -> Optional[Profile]:
    result = await db.execute(select(Profile).where(Profile.id == user_id))
    return result.scalar_one_or_none()


async def has_profile(db: AsyncSession, user_id: uuid.UUID) -> bool:
    result = await db.execute(select(Profile.id).where(Profile.id == user_id))
    return result.scalar_one_or_none() is not None


async def create_profile(db: AsyncSession, user_id: uuid.UUID, data: Mapping[str, Any]) -> Profile:
    """
    Create the profile for a user on first submission.
    Validation failures raise before anything is written.
    """
    values = _validated_values(data)

    if await has_profile(db, user_id):
        raise ConflictError("Profile already exists. Use PUT to update.")

    profile = Profile(id=user_id, **values)
    db.add(profile)
    await db.commit()
    await db.refresh(profile)

    logger.info(f"Profile created for {user_id} (completion {profile.profile_completion_rate}%)")
    return profile


async def update_profile(db: AsyncSession, user_id: uuid.UUID, data: Mapping[str, Any]) -> Profile:
    values = _validated_values(data)

    profile = await get_profile(db, user_id)
    if profile is None:
        raise NotFoundError("Profile not found. Create a profile first.")

    for field, value in values.items():
        setattr(profile, field, value)
    profile.updated_at = utcnow()

    await db.commit()
    await db.refresh(profile)
    return profile


async def touch_last_active(db: AsyncSession, user_id: uuid.UUID) -> None:
    await db.execute(update(Profile).where(Profile.id == user_id).values(last_active=utcnow()))


async def get_prefectures(db: AsyncSession, redis: Optional[RedisService] = None) -> List[Dict[str, str]]:
    """Prefectures ordered by code; falls back to a built-in list."""
    if redis is not None:
        cached = await redis.get_cached_json(PREFECTURE_CACHE_KEY)
        if cached:
            return cached

    try:
        result = await db.execute(select(Prefecture).order_by(Prefecture.code))
        rows = result.scalars().all()
    except SQLAlchemyError as e:
        logger.error(f"Prefecture query failed, using fallback list: {e}")
        return PREFECTURES_FALLBACK

    if not rows:
        return PREFECTURES_FALLBACK

    prefectures = [{"code": p.code, "name": p.name} for p in rows]
    if redis is not None:
        await redis.cache_json(PREFECTURE_CACHE_KEY, prefectures, settings.PREFECTURE_CACHE_SECONDS)
    return prefectures
