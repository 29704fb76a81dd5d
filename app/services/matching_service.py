"""
Likes, matches and the recommendation deck.

A match is created right after the like that makes a pair mutual is
committed. Pairs are stored ordered (user1_id < user2_id) so one row covers
both directions.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ServiceError
from app.core.firebase import firebase_service
from app.db.session import utcnow
from app.models.match import ChatRoom, Like, Match, MatchStatus
from app.models.user import Profile


logger = logging.getLogger(__name__)

RECOMMENDATION_LIMIT_MAX = 50


def ordered_pair(a: uuid.UUID, b: uuid.UUID) -> Tuple[uuid.UUID, uuid.UUID]:
    return (a, b) if a < b else (b, a)


def _involves(user_id: uuid.UUID):
    return or_(Match.user1_id == user_id, Match.user2_id == user_id)


def profile_card(profile: Profile, liked_by_current_user: bool = False, is_super_like: Optional[bool] = None) -> Dict[str, Any]:
    return {
        "id": profile.id,
        "display_name": profile.display_name,
        "age": profile.age,
        "prefecture": profile.prefecture,
        "occupation": profile.occupation,
        "main_image_url": profile.main_image_url,
        "additional_images": profile.additional_images,
        "bio": profile.bio,
        "liked_by_current_user": liked_by_current_user,
        "is_super_like": is_super_like,
    }


async def _profiles_by_id(db: AsyncSession, ids: List[uuid.UUID]) -> Dict[uuid.UUID, Profile]:
    if not ids:
        return {}
    result = await db.execute(select(Profile).where(Profile.id.in_(ids)))
    return {profile.id: profile for profile in result.scalars().all()}


async def _chat_room_ids(db: AsyncSession, match_ids: List[uuid.UUID]) -> Dict[uuid.UUID, uuid.UUID]:
    if not match_ids:
        return {}
    result = await db.execute(select(ChatRoom.match_id, ChatRoom.id).where(ChatRoom.match_id.in_(match_ids)))
    return {match_id: room_id for match_id, room_id in result.all()}


# ==================== Likes ====================

async def check_mutual_like(db: AsyncSession, user_a: uuid.UUID, user_b: uuid.UUID) -> bool:
    result = await db.execute(
        select(Like.id).where(
            or_(
                and_(Like.from_user_id == user_a, Like.to_user_id == user_b),
                and_(Like.from_user_id == user_b, Like.to_user_id == user_a),
            )
        )
    )
    return len(result.all()) == 2


async def send_like(
    db: AsyncSession,
    user_id: uuid.UUID,
    to_user_id: uuid.UUID,
    is_super_like: bool = False,
) -> Tuple[Like, Optional[Match]]:
    """
    Record a like. When the target already liked the user back,
    the match for the pair is created too.

    Returns (like, match) where match is None unless the like made the pair mutual.
    """
    if to_user_id == user_id:
        raise ServiceError("Cannot like yourself")

    target = await db.execute(select(Profile.id).where(Profile.id == to_user_id))
    if target.scalar_one_or_none() is None:
        raise NotFoundError("User not found")

    existing = await db.execute(
        select(Like.id).where(and_(Like.from_user_id == user_id, Like.to_user_id == to_user_id))
    )
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Already liked")

    like = Like(from_user_id=user_id, to_user_id=to_user_id, is_super_like=is_super_like)
    db.add(like)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Already liked")

    match = await create_match_if_mutual(db, user_id, to_user_id)
    # A lost match insert race rolls the session back and expires the like
    await db.refresh(like)
    return like, match


async def create_match_if_mutual(db: AsyncSession, user_a: uuid.UUID, user_b: uuid.UUID) -> Optional[Match]:
    """
    Create the match for a pair once both directed likes are committed.

    Runs after the like itself is committed, so of two concurrent reverse
    likes at least one request sees the other. When both do, the unique pair
    constraint lets one insert through and the other side reads that row.

    Returns the match, or None when the likes are not mutual or the pair
    already had a match row (an ended match is not revived).
    """
    if not await check_mutual_like(db, user_a, user_b):
        return None

    user1_id, user2_id = ordered_pair(user_a, user_b)
    pair_query = select(Match).where(and_(Match.user1_id == user1_id, Match.user2_id == user2_id))
    existing = await db.execute(pair_query)
    if existing.scalar_one_or_none() is not None:
        return None

    match = Match(user1_id=user1_id, user2_id=user2_id, status=MatchStatus.MATCHED.value)
    db.add(match)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        result = await db.execute(pair_query)
        return result.scalar_one()

    logger.info(f"Match {match.id} created between {user1_id} and {user2_id}")
    return match


async def get_likes_received(db: AsyncSession, user_id: uuid.UUID) -> List[Dict[str, Any]]:
    """Profiles of users who liked the user, newest like first."""
    result = await db.execute(
        select(Like).where(Like.to_user_id == user_id).order_by(Like.created_at.desc())
    )
    likes = result.scalars().all()
    profiles = await _profiles_by_id(db, [like.from_user_id for like in likes])

    return [
        profile_card(profiles[like.from_user_id], liked_by_current_user=False, is_super_like=like.is_super_like)
        for like in likes
        if like.from_user_id in profiles
    ]


async def get_likes_sent(db: AsyncSession, user_id: uuid.UUID) -> List[Dict[str, Any]]:
    """Profiles the user liked, newest like first."""
    result = await db.execute(
        select(Like).where(Like.from_user_id == user_id).order_by(Like.created_at.desc())
    )
    likes = result.scalars().all()
    profiles = await _profiles_by_id(db, [like.to_user_id for like in likes])

    return [
        profile_card(profiles[like.to_user_id], liked_by_current_user=True, is_super_like=like.is_super_like)
        for like in likes
        if like.to_user_id in profiles
    ]


# ==================== Matches ====================

async def get_matches(db: AsyncSession, user_id: uuid.UUID) -> List[Match]:
    result = await db.execute(
        select(Match)
        .where(and_(_involves(user_id), Match.status == MatchStatus.MATCHED.value))
        .order_by(Match.matched_at.desc())
    )
    return list(result.scalars().all())


async def check_if_matched(db: AsyncSession, user_a: uuid.UUID, user_b: uuid.UUID) -> Optional[Match]:
    user1_id, user2_id = ordered_pair(user_a, user_b)
    result = await db.execute(
        select(Match).where(
            and_(
                Match.user1_id == user1_id,
                Match.user2_id == user2_id,
                Match.status == MatchStatus.MATCHED.value,
            )
        )
    )
    return result.scalar_one_or_none()


async def find_match_with_partner(db: AsyncSession, user_id: uuid.UUID, partner_id: uuid.UUID) -> Optional[Dict[str, uuid.UUID]]:
    match = await check_if_matched(db, user_id, partner_id)
    if match is None:
        return None
    return {"match_id": match.id}


async def _end_match(db: AsyncSession, user_id: uuid.UUID, match_id: uuid.UUID, new_status: MatchStatus) -> Match:
    result = await db.execute(select(Match).where(and_(Match.id == match_id, _involves(user_id))))
    match = result.scalar_one_or_none()
    if match is None:
        raise NotFoundError("Match not found")
    if match.status != MatchStatus.MATCHED.value:
        # Ended matches are final, so a block cannot be turned into an unmatch
        raise ConflictError(f"Match is already {match.status}")

    match.status = new_status.value
    match.unmatched_at = utcnow()

    room = await db.execute(select(ChatRoom.id).where(ChatRoom.match_id == match.id))
    chat_room_id = room.scalar_one_or_none()

    await db.commit()

    if chat_room_id is not None:
        try:
            await firebase_service.delete_chat_room(str(chat_room_id))
        except Exception as e:
            # Match state is already committed
            logger.error(f"Realtime chat room deletion failed for {chat_room_id}: {e}")

    logger.info(f"Match {match.id} {new_status.value} by {user_id}")
    return match


async def unmatch(db: AsyncSession, user_id: uuid.UUID, match_id: uuid.UUID) -> Match:
    return await _end_match(db, user_id, match_id, MatchStatus.UNMATCHED)


async def block_user(db: AsyncSession, user_id: uuid.UUID, match_id: uuid.UUID) -> Match:
    return await _end_match(db, user_id, match_id, MatchStatus.BLOCKED)


async def get_matches_with_profiles(db: AsyncSession, user_id: uuid.UUID) -> List[Dict[str, Any]]:
    """Matched pairs with a short profile of the partner."""
    matches = await get_matches(db, user_id)
    profiles = await _profiles_by_id(db, [match.partner_of(user_id) for match in matches])

    rooms = await _chat_room_ids(db, [match.id for match in matches])

    items = []
    for match in matches:
        partner = profiles.get(match.partner_of(user_id))
        if partner is None:
            continue
        items.append(
            {
                "id": match.id,
                "user1_id": match.user1_id,
                "user2_id": match.user2_id,
                "status": match.status,
                "matched_at": match.matched_at,
                "last_message_at": match.last_message_at,
                "chat_room_id": rooms.get(match.id),
                "partner_profile": {
                    "id": partner.id,
                    "display_name": partner.display_name,
                    "age": partner.age,
                    "prefecture": partner.prefecture,
                    "main_image_url": partner.main_image_url,
                },
            }
        )
    return items


async def get_partner_profile(db: AsyncSession, user_id: uuid.UUID, partner_id: uuid.UUID) -> Profile:
    """Full profile of a matched partner."""
    if await check_if_matched(db, user_id, partner_id) is None:
        raise PermissionDeniedError("Not matched with this user")

    result = await db.execute(select(Profile).where(Profile.id == partner_id))
    profile = result.scalar_one_or_none()
    if profile is None:
        raise NotFoundError("Partner profile not found")
    return profile


# ==================== Recommendations ====================

async def get_recommended_profiles(db: AsyncSession, user_id: uuid.UUID, limit: int = 10) -> List[Dict[str, Any]]:
    """
    Profiles for the swipe deck.
    Excludes:
    - Own profile
    - Profiles the user already liked
    - Anyone the user shares a match row with, whatever its status
    Filters on the viewer's preferred age range and prefecture when set.
    """
    if not 1 <= limit <= RECOMMENDATION_LIMIT_MAX:
        raise ServiceError(f"limit must be between 1 and {RECOMMENDATION_LIMIT_MAX}")

    viewer_result = await db.execute(select(Profile).where(Profile.id == user_id))
    viewer = viewer_result.scalar_one_or_none()
    if viewer is None:
        raise NotFoundError("Create your profile first")

    liked_result = await db.execute(select(Like.to_user_id).where(Like.from_user_id == user_id))
    excluded = {row[0] for row in liked_result.all()}

    match_result = await db.execute(select(Match).where(_involves(user_id)))
    excluded.update(match.partner_of(user_id) for match in match_result.scalars().all())
    excluded.add(user_id)

    conditions = [Profile.id.not_in(excluded)]
    if viewer.preferred_min_age is not None:
        conditions.append(Profile.age >= viewer.preferred_min_age)
    if viewer.preferred_max_age is not None:
        conditions.append(Profile.age <= viewer.preferred_max_age)
    if viewer.preferred_prefecture:
        conditions.append(Profile.prefecture == viewer.preferred_prefecture)

    result = await db.execute(
        select(Profile)
        .where(and_(*conditions))
        .order_by(Profile.profile_completion_rate.desc(), Profile.last_active.desc().nulls_last())
        .limit(limit)
    )
    return [profile_card(profile) for profile in result.scalars().all()]
