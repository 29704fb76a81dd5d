from pydantic import BaseModel, Field, validator
from typing import Optional, List, Any
from datetime import datetime
from uuid import UUID


# ==================== Profile Form ====================

class ProfileForm(BaseModel):
    """
    Profile form as submitted by the client.
    Numeric fields are accepted as numbers or strings and kept as strings
    so the validator can report field-level errors.
    """
    display_name: str = ""
    age: str = ""
    gender: str = ""
    prefecture: str = ""
    city: str = ""
    occupation: str = ""
    bio: str = ""
    preferred_min_age: str = ""
    preferred_max_age: str = ""
    preferred_prefecture: str = ""
    main_image_url: Optional[str] = None
    additional_images: Optional[List[str]] = None
    video_url: Optional[str] = None
    interests: Optional[List[str]] = None

    # Basic items
    meeting_purpose: str = ""
    nickname: str = ""
    height: str = ""
    body_type: str = ""

    # Recommended items
    hometown_prefecture: str = ""
    drinking: str = ""
    smoking: str = ""
    free_days: str = ""

    # Detail items
    meeting_frequency: str = ""
    future_dreams: str = ""

    @validator(
        "display_name", "age", "gender", "prefecture", "city", "occupation", "bio",
        "preferred_min_age", "preferred_max_age", "preferred_prefecture",
        "meeting_purpose", "nickname", "height", "body_type", "hometown_prefecture",
        "drinking", "smoking", "free_days", "meeting_frequency", "future_dreams",
        pre=True,
    )
    def coerce_to_text(cls, v):
        if v is None:
            return ""
        if isinstance(v, bool):
            raise ValueError("Expected a string or number")
        if isinstance(v, (int, float)):
            return str(int(v)) if float(v).is_integer() else str(v)
        return v


class FieldValidationRequest(BaseModel):
    """Validate a single field against the rest of the form."""
    value: Any = ""
    form: ProfileForm = Field(default_factory=ProfileForm)


class ValidationErrorItem(BaseModel):
    field: str
    message: str


class ValidationResult(BaseModel):
    valid: bool
    errors: List[ValidationErrorItem]


# ==================== Profile Responses ====================

class ProfileResponse(BaseModel):
    """Full profile row."""
    id: UUID
    display_name: str
    age: int
    gender: str
    prefecture: str
    city: Optional[str] = None
    occupation: Optional[str] = None
    bio: Optional[str] = None
    interests: Optional[List[str]] = None
    preferred_min_age: Optional[int] = None
    preferred_max_age: Optional[int] = None
    preferred_prefecture: Optional[str] = None
    main_image_url: Optional[str] = None
    additional_images: Optional[List[str]] = None
    video_url: Optional[str] = None
    profile_completion_rate: int
    last_active: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    meeting_purpose: Optional[str] = None
    nickname: Optional[str] = None
    height: Optional[int] = None
    body_type: Optional[str] = None

    hometown_prefecture: Optional[str] = None
    drinking: Optional[str] = None
    smoking: Optional[str] = None
    free_days: Optional[str] = None

    meeting_frequency: Optional[str] = None
    future_dreams: Optional[str] = None

    class Config:
        from_attributes = True


class ProfileWithLike(BaseModel):
    """Profile card shown in like lists and the recommendation deck."""
    id: UUID
    display_name: str
    age: int
    prefecture: str
    occupation: Optional[str] = None
    main_image_url: Optional[str] = None
    additional_images: Optional[List[str]] = None
    bio: Optional[str] = None
    liked_by_current_user: bool = False
    is_super_like: Optional[bool] = None

    class Config:
        from_attributes = True


class ProfileExistsResponse(BaseModel):
    exists: bool


class PrefectureResponse(BaseModel):
    code: str
    name: str

    class Config:
        from_attributes = True


# ==================== Auth ====================

class CurrentUserResponse(BaseModel):
    id: UUID
    email: Optional[str]
    has_profile: bool


class SessionResponse(BaseModel):
    user_id: UUID
    email: Optional[str]
    expires_at: Optional[datetime]


class IsCurrentUserResponse(BaseModel):
    is_current_user: bool
