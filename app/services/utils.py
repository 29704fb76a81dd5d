import uuid
from typing import Any, Optional

from app.core.exceptions import ServiceError


def parse_uuid(value: Any, field: str) -> uuid.UUID:
    """Parse an id taken from a request body. Missing or malformed ids are a 400."""
    if isinstance(value, uuid.UUID):
        return value
    if not value:
        raise ServiceError(f"{field} is required")
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ServiceError(f"Invalid {field}")


def iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None
