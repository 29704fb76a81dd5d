from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from app.schemas.profile import ProfileWithLike


# ==================== Like Schemas ====================

class LikeCreate(BaseModel):
    """Schema for sending a like."""
    to_user_id: UUID
    is_super_like: bool = False


class LikeResponse(BaseModel):
    """Schema for like response."""
    id: UUID
    from_user_id: UUID
    to_user_id: UUID
    is_super_like: bool
    created_at: datetime
    is_match: bool = False  # True if this like created a match
    match_id: Optional[UUID] = None


class LikeListResponse(BaseModel):
    profiles: List[ProfileWithLike]
    total: int


# ==================== Match Schemas ====================

class MatchResponse(BaseModel):
    """Schema for match response."""
    id: UUID
    user1_id: UUID
    user2_id: UUID
    status: str
    matched_at: Optional[datetime]
    unmatched_at: Optional[datetime] = None
    last_message_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MatchListResponse(BaseModel):
    """List of matches."""
    matches: List[MatchResponse]
    total: int


class PartnerMatchResponse(BaseModel):
    match_id: UUID


class MatchActionResponse(BaseModel):
    message: str
    match_id: UUID
    status: str


# ==================== Matches with profiles ====================

class PartnerSummary(BaseModel):
    """Short partner profile shown in the match list."""
    id: UUID
    display_name: str
    age: int
    prefecture: str
    main_image_url: Optional[str] = None


class MatchWithProfile(BaseModel):
    """Match with the other user's profile info."""
    id: UUID
    user1_id: UUID
    user2_id: UUID
    status: str
    matched_at: Optional[datetime]
    last_message_at: Optional[datetime] = None
    chat_room_id: Optional[UUID] = None
    partner_profile: PartnerSummary = Field(..., serialization_alias="partnerProfile")


class MatchesWithProfilesResponse(BaseModel):
    matches: List[MatchWithProfile]


class RecommendedProfilesResponse(BaseModel):
    profiles: List[ProfileWithLike]
