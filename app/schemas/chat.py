from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID


# ==================== Chat List ====================

class PartnerInfo(BaseModel):
    id: UUID
    display_name: str
    main_image_url: Optional[str] = None


class ChatWithPartner(BaseModel):
    """One row of the chat list. chat_room_id is "" until the first message."""
    chat_room_id: str
    match_id: UUID
    last_message: Optional[str] = None
    last_message_at: Optional[datetime] = None
    unread_count: int = 0
    partner: PartnerInfo


class ChatListResponse(BaseModel):
    chats: List[ChatWithPartner]


class ChatRoomLookupResponse(BaseModel):
    chat_room_id: Optional[UUID]


# ==================== Messages ====================

class MessageWithSender(BaseModel):
    id: UUID
    content: str
    message_type: str
    sent_at: datetime
    read_at: Optional[datetime] = None
    sender: PartnerInfo
    is_own_message: bool


class ChatMessagesResponse(BaseModel):
    messages: List[MessageWithSender]
    has_more: bool


class SendMessageRequest(BaseModel):
    match_id: UUID
    content: str = Field(..., min_length=1)
    message_type: str = "text"


class SendMessageResponse(BaseModel):
    message: MessageWithSender
    chat_room_id: UUID


class ReadReceiptResponse(BaseModel):
    chat_room_id: UUID
    marked_read: int


class DeletedMessageResponse(BaseModel):
    id: UUID
    is_deleted: bool


# ==================== Realtime ====================

class FirebaseTokenResponse(BaseModel):
    """Firebase custom token for client authentication."""
    token: str
    expires_in: int = 3600  # 1 hour


class PresenceResponse(BaseModel):
    chat_room_id: UUID
    user_ids: List[str]
    partner_online: Optional[bool] = None  # Only reported to participants
