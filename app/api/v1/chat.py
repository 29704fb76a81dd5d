from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from app.config import settings
from app.db.session import get_db
from app.db.redis import RedisService
from app.core.dependencies import get_current_user, get_redis_service
from app.core.firebase import firebase_service
from app.core.security import TokenData
from app.schemas.chat import (
    ChatListResponse,
    ChatMessagesResponse,
    ChatRoomLookupResponse,
    DeletedMessageResponse,
    FirebaseTokenResponse,
    PresenceResponse,
    ReadReceiptResponse,
    SendMessageRequest,
    SendMessageResponse,
)
from app.services import chat_service


router = APIRouter(prefix="/chat", tags=["Chat"])


@router.get("/token", response_model=FirebaseTokenResponse)
async def get_firebase_token(current_user: TokenData = Depends(get_current_user)):
    """
    Get a Firebase custom token for client-side authentication.
    Use this token to subscribe to chat_rooms/{chat_room_id}/events.
    """
    token = firebase_service.get_custom_token(str(current_user.user_id))
    return FirebaseTokenResponse(token=token)


@router.get("/rooms", response_model=ChatListResponse)
async def get_chat_list(
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Chat list: one entry per active match with partner, last message and unread count."""
    chats = await chat_service.get_chat_list(db, current_user.user_id)
    return ChatListResponse(chats=chats)


@router.get("/rooms/by-match/{match_id}", response_model=ChatRoomLookupResponse)
async def get_chat_room_by_match(
    match_id: UUID,
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Chat room of a match; null until the first message is sent."""
    chat_room_id = await chat_service.get_chat_room_by_match_id(db, current_user.user_id, match_id)
    return ChatRoomLookupResponse(chat_room_id=chat_room_id)


@router.get("/rooms/{chat_room_id}/messages", response_model=ChatMessagesResponse)
async def get_messages(
    chat_room_id: UUID,
    limit: int = Query(settings.CHAT_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Page of messages, oldest first within the page. Marks the partner's messages read."""
    messages, has_more = await chat_service.get_chat_messages(db, current_user.user_id, chat_room_id, limit, offset)
    return ChatMessagesResponse(messages=messages, has_more=has_more)


@router.post("/messages", response_model=SendMessageResponse)
async def send_message(
    request: SendMessageRequest,
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    message, chat_room_id = await chat_service.send_message(
        db, current_user.user_id, request.match_id, request.content, request.message_type
    )
    return SendMessageResponse(message=message, chat_room_id=chat_room_id)


@router.post("/rooms/{chat_room_id}/read", response_model=ReadReceiptResponse)
async def mark_read(
    chat_room_id: UUID,
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await chat_service.mark_messages_read(db, current_user.user_id, chat_room_id)
    return ReadReceiptResponse(chat_room_id=chat_room_id, marked_read=count)


@router.delete("/messages/{message_id}", response_model=DeletedMessageResponse)
async def delete_message(
    message_id: UUID,
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete one of my messages. The row is kept and flagged."""
    message = await chat_service.delete_message(db, current_user.user_id, message_id)
    return DeletedMessageResponse(id=message.id, is_deleted=message.is_deleted)


# ==================== Presence ====================

async def _presence(redis: RedisService, chat_room_id: UUID, partner_id: UUID) -> PresenceResponse:
    return PresenceResponse(
        chat_room_id=chat_room_id,
        user_ids=await redis.get_chat_room_presence(str(chat_room_id)),
        partner_online=await redis.is_online(str(partner_id)),
    )


@router.post("/rooms/{chat_room_id}/presence", response_model=PresenceResponse)
async def join_chat_room(
    chat_room_id: UUID,
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: RedisService = Depends(get_redis_service),
):
    """Announce that I have the chat room open."""
    _, match = await chat_service.get_chat_room_for_user(db, current_user.user_id, chat_room_id)
    await redis.join_chat_room(str(chat_room_id), str(current_user.user_id))
    await firebase_service.set_presence(str(chat_room_id), str(current_user.user_id), online=True)
    return await _presence(redis, chat_room_id, match.partner_of(current_user.user_id))


@router.delete("/rooms/{chat_room_id}/presence", response_model=PresenceResponse)
async def leave_chat_room(
    chat_room_id: UUID,
    current_user: TokenData = Depends(get_current_user),
    redis: RedisService = Depends(get_redis_service),
):
    await redis.leave_chat_room(str(chat_room_id), str(current_user.user_id))
    await firebase_service.set_presence(str(chat_room_id), str(current_user.user_id), online=False)
    return PresenceResponse(chat_room_id=chat_room_id, user_ids=await redis.get_chat_room_presence(str(chat_room_id)))


@router.get("/rooms/{chat_room_id}/presence", response_model=PresenceResponse)
async def get_presence(
    chat_room_id: UUID,
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: RedisService = Depends(get_redis_service),
):
    """Who has the chat room open, and whether my partner is online at all."""
    _, match = await chat_service.get_chat_room_for_user(db, current_user.user_id, chat_room_id)
    return await _presence(redis, chat_room_id, match.partner_of(current_user.user_id))
