from sqlalchemy import Column, String, DateTime, Integer, Text, Uuid
from sqlalchemy.sql import func
import enum

from app.db.session import Base, JSONType, utcnow


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class MeetingPurpose(str, enum.Enum):
    CHAT = "chat"
    FRIEND = "friend"
    RELATIONSHIP = "relationship"
    MARRIAGE = "marriage"


class BodyType(str, enum.Enum):
    SLIM = "slim"
    NORMAL = "normal"
    CHUBBY = "chubby"
    OVERWEIGHT = "overweight"


class Drinking(str, enum.Enum):
    NEVER = "never"
    SOMETIMES = "sometimes"
    OFTEN = "often"


class Smoking(str, enum.Enum):
    NEVER = "never"
    SOMETIMES = "sometimes"
    OFTEN = "often"
    QUIT_FOR_PARTNER = "quit_for_partner"


class FreeDays(str, enum.Enum):
    IRREGULAR = "irregular"
    WEEKENDS = "weekends"
    WEEKDAYS = "weekdays"


class MeetingFrequency(str, enum.Enum):
    MONTHLY = "monthly"
    TWICE_MONTHLY = "twice_monthly"
    WEEKLY = "weekly"
    MULTIPLE_WEEKLY = "multiple_weekly"
    FREQUENT = "frequent"


HEIGHT_MIN = 140
HEIGHT_MAX = 220


class Profile(Base):
    """
    User profile.
    The primary key is the id of the authenticated user issued by the auth provider.
    """

    __tablename__ = "profiles"

    id = Column(Uuid, primary_key=True)

    # Required basics
    display_name = Column(String(50), nullable=False)
    age = Column(Integer, nullable=False)
    gender = Column(String(10), nullable=False)
    prefecture = Column(String(20), nullable=False)

    # Optional details
    city = Column(String(100), nullable=True)
    occupation = Column(String(100), nullable=True)
    bio = Column(Text, nullable=True)
    interests = Column(JSONType, default=list)

    # Partner preferences
    preferred_min_age = Column(Integer, nullable=True)
    preferred_max_age = Column(Integer, nullable=True)
    preferred_prefecture = Column(String(20), nullable=True)

    # Media
    main_image_url = Column(String(500), nullable=True)
    additional_images = Column(JSONType, nullable=True)  # Array of image URLs
    video_url = Column(String(500), nullable=True)

    # Basic items
    meeting_purpose = Column(String(20), nullable=True)
    nickname = Column(String(30), nullable=True)
    height = Column(Integer, nullable=True)  # cm
    body_type = Column(String(20), nullable=True)

    # Recommended items
    hometown_prefecture = Column(String(20), nullable=True)
    drinking = Column(String(20), nullable=True)
    smoking = Column(String(20), nullable=True)
    free_days = Column(String(20), nullable=True)

    # Detail items
    meeting_frequency = Column(String(20), nullable=True)
    future_dreams = Column(Text, nullable=True)

    profile_completion_rate = Column(Integer, nullable=False, default=0)
    last_active = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now())


class Prefecture(Base):
    """Prefecture master data."""

    __tablename__ = "prefectures"

    code = Column(String(2), primary_key=True)
    name = Column(String(20), nullable=False)
