from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from app.db.session import get_db
from app.core.dependencies import get_current_user
from app.core.security import TokenData
from app.schemas.match import (
    LikeCreate,
    LikeResponse,
    LikeListResponse,
    MatchActionResponse,
    MatchListResponse,
    MatchResponse,
    MatchesWithProfilesResponse,
    PartnerMatchResponse,
    RecommendedProfilesResponse,
)
from app.services import matching_service


router = APIRouter(prefix="/matching", tags=["Matching"])


@router.get("/recommendations", response_model=RecommendedProfilesResponse)
async def get_recommendations(
    limit: int = Query(10, ge=1, le=50),
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Profiles for the swipe deck."""
    profiles = await matching_service.get_recommended_profiles(db, current_user.user_id, limit)
    return RecommendedProfilesResponse(profiles=profiles)


@router.post("/likes", response_model=LikeResponse, status_code=status.HTTP_201_CREATED)
async def send_like(
    like_data: LikeCreate,
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Like another user (right swipe).
    If they already liked back, the match is created and returned.
    """
    like, match = await matching_service.send_like(
        db, current_user.user_id, like_data.to_user_id, like_data.is_super_like
    )
    return LikeResponse(
        id=like.id,
        from_user_id=like.from_user_id,
        to_user_id=like.to_user_id,
        is_super_like=like.is_super_like,
        created_at=like.created_at,
        is_match=match is not None,
        match_id=match.id if match is not None else None,
    )


@router.get("/likes/received", response_model=LikeListResponse)
async def get_likes_received(
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Users who liked me."""
    profiles = await matching_service.get_likes_received(db, current_user.user_id)
    return LikeListResponse(profiles=profiles, total=len(profiles))


@router.get("/likes/sent", response_model=LikeListResponse)
async def get_likes_sent(
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Users I liked."""
    profiles = await matching_service.get_likes_sent(db, current_user.user_id)
    return LikeListResponse(profiles=profiles, total=len(profiles))


@router.get("/matches", response_model=MatchListResponse)
async def get_matches(
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get all active matches for current user."""
    matches = await matching_service.get_matches(db, current_user.user_id)
    return MatchListResponse(
        matches=[MatchResponse.model_validate(match) for match in matches],
        total=len(matches),
    )


@router.get("/matches/with-profiles", response_model=MatchesWithProfilesResponse)
async def get_matches_with_profiles(
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    matches = await matching_service.get_matches_with_profiles(db, current_user.user_id)
    return MatchesWithProfilesResponse(matches=matches)


@router.get("/partners/{partner_id}/match", response_model=PartnerMatchResponse)
async def find_match_with_partner(
    partner_id: UUID,
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Match id shared with a partner, if matched."""
    found = await matching_service.find_match_with_partner(db, current_user.user_id, partner_id)
    if found is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Not matched with this user.",
        )
    return found


@router.delete("/matches/{match_id}", response_model=MatchActionResponse)
async def unmatch(
    match_id: UUID,
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Unmatch from a user."""
    match = await matching_service.unmatch(db, current_user.user_id, match_id)
    return MatchActionResponse(message="Successfully unmatched.", match_id=match.id, status=match.status)


@router.post("/matches/{match_id}/block", response_model=MatchActionResponse)
async def block_user(
    match_id: UUID,
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Block a matched user."""
    match = await matching_service.block_user(db, current_user.user_id, match_id)
    return MatchActionResponse(message="User blocked successfully.", match_id=match.id, status=match.status)
