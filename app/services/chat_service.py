"""
Chat rooms and messages.

Messages are stored relationally. Every insert or update of a message row
is also pushed to the realtime feed (chat_rooms/{id}/events) so clients
subscribed to the room see it without polling. A failed push is logged and
never fails the request; the database stays the source of truth.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import NotFoundError, PermissionDeniedError, ServiceError
from app.core.firebase import firebase_service
from app.db.session import utcnow
from app.models.match import ChatRoom, Match, MatchStatus, Message, MessageType
from app.models.user import Profile
from app.services.matching_service import get_matches
from app.services.utils import iso


logger = logging.getLogger(__name__)

EVENT_INSERT = "INSERT"
EVENT_UPDATE = "UPDATE"

# id breaks ties between messages sent in the same instant
NEWEST_FIRST = (Message.sent_at.desc(), Message.id.desc())


# ==================== Payloads ====================

def sender_summary(profile: Optional[Profile], sender_id: uuid.UUID) -> Dict[str, Any]:
    if profile is None:
        return {"id": sender_id, "display_name": "", "main_image_url": None}
    return {"id": profile.id, "display_name": profile.display_name, "main_image_url": profile.main_image_url}


def message_with_sender(message: Message, sender: Optional[Profile], user_id: uuid.UUID) -> Dict[str, Any]:
    return {
        "id": message.id,
        "content": message.content,
        "message_type": message.message_type,
        "sent_at": message.sent_at,
        "read_at": message.read_at,
        "sender": sender_summary(sender, message.sender_id),
        "is_own_message": message.sender_id == user_id,
    }


def message_row(message: Message) -> Dict[str, Any]:
    """JSON form of a message row as carried by realtime events."""
    return {
        "id": str(message.id),
        "chat_room_id": str(message.chat_room_id),
        "sender_id": str(message.sender_id),
        "content": message.content,
        "message_type": message.message_type,
        "sent_at": iso(message.sent_at),
        "read_at": iso(message.read_at),
        "is_deleted": bool(message.is_deleted),
    }


async def _publish(event_type: str, message: Message) -> None:
    try:
        await firebase_service.publish_message_event(str(message.chat_room_id), event_type, message_row(message))
    except Exception as e:
        logger.error(f"Realtime {event_type} for message {message.id} failed: {e}")


async def _mark_read(db: AsyncSession, messages: List[Message]) -> None:
    if not messages:
        return
    read_at = utcnow()
    for message in messages:
        message.read_at = read_at
    await db.commit()
    for message in messages:
        await _publish(EVENT_UPDATE, message)


# ==================== Access ====================

async def _get_match_for_chat(db: AsyncSession, user_id: uuid.UUID, match_id: uuid.UUID) -> Match:
    result = await db.execute(select(Match).where(Match.id == match_id))
    match = result.scalar_one_or_none()
    if match is None:
        raise NotFoundError("Match not found")
    if match.status != MatchStatus.MATCHED.value:
        raise PermissionDeniedError("Chat is not available for this match")
    if not match.has_participant(user_id):
        raise PermissionDeniedError("You do not have access to this chat")
    return match


async def get_chat_room_for_user(db: AsyncSession, user_id: uuid.UUID, chat_room_id: uuid.UUID) -> Tuple[ChatRoom, Match]:
    result = await db.execute(
        select(ChatRoom, Match).join(Match, ChatRoom.match_id == Match.id).where(ChatRoom.id == chat_room_id)
    )
    row = result.first()
    if row is None:
        raise NotFoundError("Chat room not found")

    room, match = row
    if match.status != MatchStatus.MATCHED.value or not match.has_participant(user_id):
        raise PermissionDeniedError("You do not have access to this chat room")
    return room, match


# ==================== Chat rooms ====================

async def get_chat_room_by_match_id(db: AsyncSession, user_id: uuid.UUID, match_id: uuid.UUID) -> Optional[uuid.UUID]:
    result = await db.execute(
        select(ChatRoom.id)
        .join(Match, ChatRoom.match_id == Match.id)
        .where(
            and_(
                Match.id == match_id,
                Match.status == MatchStatus.MATCHED.value,
                or_(Match.user1_id == user_id, Match.user2_id == user_id),
            )
        )
    )
    return result.scalar_one_or_none()


async def create_or_get_chat_room(db: AsyncSession, match: Match) -> ChatRoom:
    """Chat room of a match, created on first use."""
    result = await db.execute(select(ChatRoom).where(ChatRoom.match_id == match.id))
    room = result.scalar_one_or_none()
    if room is not None:
        return room

    room = ChatRoom(match_id=match.id)
    db.add(room)
    await db.flush()

    try:
        await firebase_service.create_chat_room(str(room.id), str(match.id), str(match.user1_id), str(match.user2_id))
    except Exception as e:
        logger.error(f"Realtime node creation for chat room {room.id} failed: {e}")

    logger.info(f"Chat room {room.id} created for match {match.id}")
    return room


async def get_chat_list(db: AsyncSession, user_id: uuid.UUID) -> List[Dict[str, Any]]:
    """
    One entry per active match, newest match first.
    Matches whose partner has no profile are skipped.
    """
    matches = await get_matches(db, user_id)
    if not matches:
        return []

    partner_ids = [match.partner_of(user_id) for match in matches]
    profile_result = await db.execute(select(Profile).where(Profile.id.in_(partner_ids)))
    profiles = {profile.id: profile for profile in profile_result.scalars().all()}

    room_result = await db.execute(select(ChatRoom).where(ChatRoom.match_id.in_([m.id for m in matches])))
    rooms = {room.match_id: room for room in room_result.scalars().all()}

    last_ids = [room.last_message_id for room in rooms.values() if room.last_message_id]
    last_messages: Dict[uuid.UUID, str] = {}
    if last_ids:
        last_result = await db.execute(
            select(Message.id, Message.content).where(
                and_(Message.id.in_(last_ids), Message.is_deleted.is_(False))
            )
        )
        last_messages = {message_id: content for message_id, content in last_result.all()}

    unread: Dict[uuid.UUID, int] = {}
    if rooms:
        unread_result = await db.execute(
            select(Message.chat_room_id, func.count(Message.id))
            .where(
                and_(
                    Message.chat_room_id.in_([room.id for room in rooms.values()]),
                    Message.sender_id != user_id,
                    Message.read_at.is_(None),
                    Message.is_deleted.is_(False),
                )
            )
            .group_by(Message.chat_room_id)
        )
        unread = {room_id: count for room_id, count in unread_result.all()}

    chats = []
    for match in matches:
        partner = profiles.get(match.partner_of(user_id))
        if partner is None:
            logger.warning(f"Partner profile missing for match {match.id}")
            continue

        room = rooms.get(match.id)
        last_message = None
        last_message_at = None
        if room is not None and room.last_message_id in last_messages:
            last_message = last_messages[room.last_message_id]
            last_message_at = room.last_message_at

        chats.append(
            {
                "chat_room_id": str(room.id) if room is not None else "",
                "match_id": match.id,
                "last_message": last_message,
                "last_message_at": last_message_at,
                "unread_count": unread.get(room.id, 0) if room is not None else 0,
                "partner": sender_summary(partner, partner.id),
            }
        )
    return chats


# ==================== Messages ====================

async def get_chat_messages(
    db: AsyncSession,
    user_id: uuid.UUID,
    chat_room_id: uuid.UUID,
    limit: Optional[int] = None,
    offset: int = 0,
) -> Tuple[List[Dict[str, Any]], bool]:
    """
    A page of messages in chronological order, and whether older ones exist.

    The page is the window [offset, offset + limit) counted from the newest
    message. The partner's unread messages in the page are marked read.
    """
    limit = settings.CHAT_PAGE_SIZE if limit is None else limit
    if limit < 1 or offset < 0:
        raise ServiceError("Invalid pagination parameters")

    await get_chat_room_for_user(db, user_id, chat_room_id)

    visible = and_(Message.chat_room_id == chat_room_id, Message.is_deleted.is_(False))
    result = await db.execute(
        select(Message).where(visible).order_by(*NEWEST_FIRST).offset(offset).limit(limit)
    )
    page = list(result.scalars().all())

    next_result = await db.execute(
        select(Message.id).where(visible).order_by(*NEWEST_FIRST).offset(offset + limit).limit(1)
    )
    has_more = next_result.scalar_one_or_none() is not None

    await _mark_read(db, [message for message in page if message.sender_id != user_id and message.read_at is None])

    sender_ids = {message.sender_id for message in page}
    senders: Dict[uuid.UUID, Profile] = {}
    if sender_ids:
        sender_result = await db.execute(select(Profile).where(Profile.id.in_(sender_ids)))
        senders = {profile.id: profile for profile in sender_result.scalars().all()}

    messages = [message_with_sender(message, senders.get(message.sender_id), user_id) for message in reversed(page)]
    return messages, has_more


async def send_message(
    db: AsyncSession,
    user_id: uuid.UUID,
    match_id: uuid.UUID,
    content: str,
    message_type: str = MessageType.TEXT.value,
) -> Tuple[Dict[str, Any], uuid.UUID]:
    """Store a message in the match's chat room, creating the room on first use."""
    if not content:
        raise ServiceError("match_id and content are required")
    if len(content) > settings.MESSAGE_MAX_LENGTH:
        raise ServiceError(f"Message is too long (max {settings.MESSAGE_MAX_LENGTH} characters)")
    if message_type not in [member.value for member in MessageType]:
        raise ServiceError("Invalid message type")

    match = await _get_match_for_chat(db, user_id, match_id)

    sender_result = await db.execute(select(Profile).where(Profile.id == user_id))
    sender = sender_result.scalar_one_or_none()
    if sender is None:
        raise NotFoundError("Sender profile not found")

    room = await create_or_get_chat_room(db, match)

    sent_at = utcnow()
    message = Message(
        chat_room_id=room.id,
        sender_id=user_id,
        content=content,
        message_type=message_type,
        sent_at=sent_at,
    )
    db.add(message)
    await db.flush()

    room.last_message_id = message.id
    room.last_message_at = sent_at
    match.last_message_at = sent_at
    await db.commit()

    await _publish(EVENT_INSERT, message)
    logger.info(f"Message {message.id} sent to chat room {room.id}")
    return message_with_sender(message, sender, user_id), room.id


async def mark_messages_read(db: AsyncSession, user_id: uuid.UUID, chat_room_id: uuid.UUID) -> int:
    """Mark every unread message from the partner as read. Returns how many changed."""
    await get_chat_room_for_user(db, user_id, chat_room_id)

    result = await db.execute(
        select(Message).where(
            and_(
                Message.chat_room_id == chat_room_id,
                Message.sender_id != user_id,
                Message.read_at.is_(None),
                Message.is_deleted.is_(False),
            )
        )
    )
    unread = list(result.scalars().all())
    await _mark_read(db, unread)
    return len(unread)


async def delete_message(db: AsyncSession, user_id: uuid.UUID, message_id: uuid.UUID) -> Message:
    """Soft delete; only the sender may delete a message."""
    result = await db.execute(select(Message).where(Message.id == message_id))
    message = result.scalar_one_or_none()
    if message is None or message.is_deleted:
        raise NotFoundError("Message not found")
    if message.sender_id != user_id:
        raise PermissionDeniedError("You can only delete your own messages")

    message.is_deleted = True

    room_result = await db.execute(select(ChatRoom).where(ChatRoom.id == message.chat_room_id))
    room = room_result.scalar_one()
    if room.last_message_id == message.id:
        # Preview falls back to the newest remaining message
        previous_result = await db.execute(
            select(Message)
            .where(
                and_(
                    Message.chat_room_id == room.id,
                    Message.id != message.id,
                    Message.is_deleted.is_(False),
                )
            )
            .order_by(*NEWEST_FIRST)
            .limit(1)
        )
        previous = previous_result.scalar_one_or_none()
        room.last_message_id = previous.id if previous is not None else None
        room.last_message_at = previous.sent_at if previous is not None else None

    await db.commit()

    await _publish(EVENT_UPDATE, message)
    return message
