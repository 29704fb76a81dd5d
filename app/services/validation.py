"""
Field-level validation for the profile form.

Form values arrive as strings (numbers included) the way the client's
form holds them. Every check runs; errors accumulate per field.
"""

import re
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Mapping, Optional

from app.models.user import (
    BodyType,
    Drinking,
    FreeDays,
    Gender,
    HEIGHT_MAX,
    HEIGHT_MIN,
    MeetingFrequency,
    MeetingPurpose,
    Smoking,
)


INVALID_CHARS = re.compile(r"[<>\"'&]")

AGE_MIN = 18
AGE_MAX = 99

PROFILE_FORM_FIELDS = (
    "display_name",
    "age",
    "gender",
    "prefecture",
    "city",
    "occupation",
    "bio",
    "preferred_min_age",
    "preferred_max_age",
    "preferred_prefecture",
    "meeting_purpose",
    "nickname",
    "height",
    "body_type",
    "hometown_prefecture",
    "drinking",
    "smoking",
    "free_days",
    "meeting_frequency",
    "future_dreams",
)


@dataclass
class ValidationError:
    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def parse_int(value: str) -> Optional[int]:
    """Leading-integer parse: "170cm" -> 170, "abc" -> None."""
    match = re.match(r"\s*([+-]?\d+)", value)
    return int(match.group(1)) if match else None


def _values(enum_cls) -> List[str]:
    return [member.value for member in enum_cls]


class ProfileValidator:
    def __init__(self):
        self.errors: List[ValidationError] = []

    def validate(self, data: Mapping[str, Any]) -> List[ValidationError]:
        self.errors = []
        get = lambda name: _text(data.get(name))  # noqa: E731

        # Required basics
        self.validate_display_name(get("display_name"))
        self.validate_age(get("age"))
        self.validate_gender(get("gender"))
        self.validate_prefecture(get("prefecture"))

        # Basic items
        self.validate_nickname(get("nickname"))
        self.validate_height(get("height"))
        self.validate_choice("body_type", get("body_type"), _values(BodyType), "Invalid body type")
        self.validate_choice("meeting_purpose", get("meeting_purpose"), _values(MeetingPurpose), "Invalid meeting purpose")

        # Recommended items
        self.validate_choice("drinking", get("drinking"), _values(Drinking), "Invalid drinking value")
        self.validate_choice("smoking", get("smoking"), _values(Smoking), "Invalid smoking value")
        self.validate_choice("free_days", get("free_days"), _values(FreeDays), "Invalid free days value")

        # Detail items
        self.validate_choice(
            "meeting_frequency", get("meeting_frequency"), _values(MeetingFrequency), "Invalid meeting frequency"
        )
        self.validate_max_length("future_dreams", get("future_dreams"), 500, "Future dreams must be 500 characters or fewer")

        self.validate_max_length("bio", get("bio"), 1000, "Bio must be 1000 characters or fewer")
        self.validate_age_preferences(get("preferred_min_age"), get("preferred_max_age"))

        return self.errors

    def add_error(self, field: str, message: str) -> None:
        self.errors.append(ValidationError(field=field, message=message))

    def validate_display_name(self, value: str) -> None:
        if not value.strip():
            self.add_error("display_name", "Display name is required")
            return
        if len(value) < 2:
            self.add_error("display_name", "Display name must be at least 2 characters")
        if len(value) > 50:
            self.add_error("display_name", "Display name must be 50 characters or fewer")
        if INVALID_CHARS.search(value):
            self.add_error("display_name", "Display name contains invalid characters")

    def validate_age(self, value: str) -> None:
        if not value.strip():
            self.add_error("age", "Age is required")
            return
        age = parse_int(value)
        if age is None:
            self.add_error("age", "Age must be a number")
            return
        if age < AGE_MIN:
            self.add_error("age", "You must be 18 or older to use this service")
        if age > AGE_MAX:
            self.add_error("age", "Age must be 99 or under")

    def validate_gender(self, value: str) -> None:
        if not value.strip():
            self.add_error("gender", "Gender is required")
            return
        if value not in _values(Gender):
            self.add_error("gender", "Invalid gender")

    def validate_prefecture(self, value: str) -> None:
        if not value.strip():
            self.add_error("prefecture", "Prefecture is required")

    def validate_nickname(self, value: str) -> None:
        if len(value) > 30:
            self.add_error("nickname", "Nickname must be 30 characters or fewer")
        if value and INVALID_CHARS.search(value):
            self.add_error("nickname", "Nickname contains invalid characters")

    def validate_height(self, value: str) -> None:
        if not value.strip():
            return
        height = parse_int(value)
        if height is None:
            self.add_error("height", "Height must be a number")
            return
        if height < HEIGHT_MIN:
            self.add_error("height", f"Height must be at least {HEIGHT_MIN}cm")
        if height > HEIGHT_MAX:
            self.add_error("height", f"Height must be {HEIGHT_MAX}cm or under")

    def validate_choice(self, field: str, value: str, allowed: List[str], message: str) -> None:
        if value.strip() and value not in allowed:
            self.add_error(field, message)

    def validate_max_length(self, field: str, value: str, limit: int, message: str) -> None:
        if len(value) > limit:
            self.add_error(field, message)

    def validate_age_preferences(self, min_age: str, max_age: str) -> None:
        # Only checked when both ends are given
        if not (min_age and max_age):
            return
        low = parse_int(min_age)
        high = parse_int(max_age)
        if low is None or high is None:
            return
        if low > high:
            self.add_error("preferred_min_age", "Minimum age must not exceed maximum age")
        if low < AGE_MIN:
            self.add_error("preferred_min_age", "Preferred minimum age must be 18 or older")
        if high > AGE_MAX:
            self.add_error("preferred_max_age", "Preferred maximum age must be 99 or under")


def validate_profile(data: Mapping[str, Any]) -> List[ValidationError]:
    """Validate the whole form."""
    return ProfileValidator().validate(data)


def validate_field(field: str, value: Any, all_data: Optional[Mapping[str, Any]] = None) -> List[ValidationError]:
    """Validate one field, using all_data for the fields it depends on."""
    data: Dict[str, Any] = {name: "" for name in PROFILE_FORM_FIELDS}
    data.update(all_data or {})
    data[field] = value
    return [error for error in validate_profile(data) if error.field == field]
