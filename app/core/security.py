"""
Bearer token verification.

Access tokens are issued by the hosted auth provider and signed with the
project's JWT secret. This service only verifies them; create_access_token
exists for local development tooling and tests.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import HTTPException, status

from app.config import settings


@dataclass
class TokenData:
    """Identity carried by a verified access token."""
    user_id: uuid.UUID
    email: Optional[str]
    expires_at: Optional[datetime]


def _credentials_exception(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_access_token(token: str) -> TokenData:
    """Decode and validate an access token. Raises 401 on any problem."""
    try:
        payload = jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALGORITHM],
            audience=settings.AUTH_JWT_AUDIENCE,
        )
    except jwt.ExpiredSignatureError:
        raise _credentials_exception("Token has expired")
    except jwt.PyJWTError:
        raise _credentials_exception("Could not validate credentials")

    sub = payload.get("sub")
    if not sub:
        raise _credentials_exception("Could not validate credentials")
    try:
        user_id = uuid.UUID(str(sub))
    except ValueError:
        raise _credentials_exception("Could not validate credentials")

    exp = payload.get("exp")
    expires_at = datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None
    return TokenData(user_id=user_id, email=payload.get("email"), expires_at=expires_at)


def create_access_token(
    user_id: uuid.UUID,
    email: Optional[str] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    """Sign a token shaped like the auth provider's. Development and tests only."""
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=expires_minutes or settings.DEV_TOKEN_EXPIRE_MINUTES)
    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "aud": settings.AUTH_JWT_AUDIENCE,
        "role": "authenticated",
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, settings.AUTH_JWT_SECRET, algorithm=settings.AUTH_JWT_ALGORITHM)
