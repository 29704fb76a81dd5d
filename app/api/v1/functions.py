"""
Serverless-function endpoints.

Mounted at /functions/v1/<name>, all POST with a JSON body and a bearer
token. Whatever goes wrong (auth included) the function answers
HTTP 400 with {"error": message}; mobile clients depend on that shape.
"""

import logging
import time
from typing import Any, Awaitable, Callable, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import AuthenticationError, ServiceError
from app.core.logging import log_api, log_performance
from app.core.security import verify_access_token
from app.db.session import get_db
from app.schemas.chat import ChatListResponse, ChatMessagesResponse, SendMessageResponse
from app.schemas.match import MatchesWithProfilesResponse, RecommendedProfilesResponse
from app.schemas.profile import ProfileResponse
from app.services import chat_service, matching_service
from app.services.utils import parse_uuid


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions/v1", tags=["Functions"])

Handler = Callable[[AsyncSession, UUID, Dict[str, Any]], Awaitable[Dict[str, Any]]]


def _authenticate(request: Request) -> UUID:
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        raise AuthenticationError("Authorization header is required")
    try:
        return verify_access_token(header[len("Bearer "):]).user_id
    except HTTPException:
        raise AuthenticationError("Authentication failed")


async def _read_body(request: Request) -> Dict[str, Any]:
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = await request.json()
    except ValueError:
        raise ServiceError("Request body must be JSON")
    if not isinstance(body, dict):
        raise ServiceError("Request body must be a JSON object")
    return body


def _int_param(body: Dict[str, Any], name: str, default: int) -> int:
    value = body.get(name, default)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise ServiceError(f"{name} must be an integer")
    return value


async def _invoke(name: str, request: Request, db: AsyncSession, handler: Handler) -> JSONResponse:
    endpoint = f"/functions/v1/{name}"
    started = time.perf_counter()
    try:
        user_id = _authenticate(request)
        body = await _read_body(request)
        result = await handler(db, user_id, body)
    except ServiceError as e:
        await db.rollback()
        log_api("POST", endpoint, False, error=e.message)
        log_performance(name, started, success=False)
        return JSONResponse(status_code=400, content={"error": e.message})
    except Exception:
        await db.rollback()
        logger.exception(f"Unhandled error in {name}")
        log_api("POST", endpoint, False, error="Internal error")
        log_performance(name, started, success=False)
        return JSONResponse(status_code=400, content={"error": "Internal error"})

    log_api("POST", endpoint, True, user_id=str(user_id))
    log_performance(name, started)
    return JSONResponse(content=result)


# ==================== Handlers ====================

async def _get_chat_list(db: AsyncSession, user_id: UUID, body: Dict[str, Any]) -> Dict[str, Any]:
    chats = await chat_service.get_chat_list(db, user_id)
    return ChatListResponse(chats=chats).model_dump(mode="json")


async def _get_chat_messages(db: AsyncSession, user_id: UUID, body: Dict[str, Any]) -> Dict[str, Any]:
    chat_room_id = parse_uuid(body.get("chat_room_id"), "chat_room_id")
    limit = _int_param(body, "limit", settings.CHAT_PAGE_SIZE)
    offset = _int_param(body, "offset", 0)

    messages, has_more = await chat_service.get_chat_messages(db, user_id, chat_room_id, limit, offset)
    return ChatMessagesResponse(messages=messages, has_more=has_more).model_dump(mode="json")


async def _send_message(db: AsyncSession, user_id: UUID, body: Dict[str, Any]) -> Dict[str, Any]:
    if not body.get("match_id") or not body.get("content"):
        raise ServiceError("match_id and content are required")
    match_id = parse_uuid(body["match_id"], "match_id")
    content = body["content"]
    if not isinstance(content, str):
        raise ServiceError("content must be a string")

    message, chat_room_id = await chat_service.send_message(
        db, user_id, match_id, content, body.get("message_type") or "text"
    )
    return SendMessageResponse(message=message, chat_room_id=chat_room_id).model_dump(mode="json")


async def _get_matches_with_profiles(db: AsyncSession, user_id: UUID, body: Dict[str, Any]) -> Dict[str, Any]:
    matches = await matching_service.get_matches_with_profiles(db, user_id)
    return MatchesWithProfilesResponse(matches=matches).model_dump(mode="json", by_alias=True)


async def _get_partner_profile(db: AsyncSession, user_id: UUID, body: Dict[str, Any]) -> Dict[str, Any]:
    partner_id = parse_uuid(body.get("partnerId"), "partnerId")
    profile = await matching_service.get_partner_profile(db, user_id, partner_id)
    return {"profile": ProfileResponse.model_validate(profile).model_dump(mode="json")}


async def _get_recommended_profiles(db: AsyncSession, user_id: UUID, body: Dict[str, Any]) -> Dict[str, Any]:
    limit = _int_param(body, "limit", 10)
    profiles = await matching_service.get_recommended_profiles(db, user_id, limit)
    return RecommendedProfilesResponse(profiles=profiles).model_dump(mode="json")


# ==================== Endpoints ====================

@router.post("/get-chat-list")
async def get_chat_list(request: Request, db: AsyncSession = Depends(get_db)):
    """Chat list for the chat tab."""
    return await _invoke("get-chat-list", request, db, _get_chat_list)


@router.post("/get-chat-messages")
async def get_chat_messages(request: Request, db: AsyncSession = Depends(get_db)):
    """Body: {chat_room_id, limit?, offset?}."""
    return await _invoke("get-chat-messages", request, db, _get_chat_messages)


@router.post("/send-message")
async def send_message(request: Request, db: AsyncSession = Depends(get_db)):
    """Body: {match_id, content, message_type?}."""
    return await _invoke("send-message", request, db, _send_message)


@router.post("/get-matches-with-profiles")
async def get_matches_with_profiles(request: Request, db: AsyncSession = Depends(get_db)):
    return await _invoke("get-matches-with-profiles", request, db, _get_matches_with_profiles)


@router.post("/get-partner-profile")
async def get_partner_profile(request: Request, db: AsyncSession = Depends(get_db)):
    """Body: {partnerId}."""
    return await _invoke("get-partner-profile", request, db, _get_partner_profile)


@router.post("/get-recommended-profiles")
async def get_recommended_profiles(request: Request, db: AsyncSession = Depends(get_db)):
    """Body: {limit?}, 1 to 50."""
    return await _invoke("get-recommended-profiles", request, db, _get_recommended_profiles)
