from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Text, UniqueConstraint, Index, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
import enum

from app.db.session import Base, utcnow


class MatchStatus(str, enum.Enum):
    MATCHED = "matched"
    UNMATCHED = "unmatched"
    BLOCKED = "blocked"


class MessageType(str, enum.Enum):
    TEXT = "text"
    IMAGE = "image"
    STAMP = "stamp"


class Like(Base):
    """Directed like from one user to another. Never updated once written."""

    __tablename__ = "likes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    from_user_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    to_user_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    is_super_like = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (UniqueConstraint("from_user_id", "to_user_id", name="unique_like"),)


class Match(Base):
    """Matched pair of users. user1_id always sorts before user2_id."""

    __tablename__ = "matches"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user1_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    user2_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=MatchStatus.MATCHED.value)  # matched, unmatched, blocked
    matched_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    unmatched_at = Column(DateTime(timezone=True), nullable=True)
    last_message_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (UniqueConstraint("user1_id", "user2_id", name="unique_match_pair"),)

    # Relationships
    chat_room = relationship("ChatRoom", back_populates="match", uselist=False)

    def partner_of(self, user_id: uuid.UUID) -> uuid.UUID:
        return self.user2_id if self.user1_id == user_id else self.user1_id

    def has_participant(self, user_id: uuid.UUID) -> bool:
        return user_id in (self.user1_id, self.user2_id)


class ChatRoom(Base):
    """Messaging channel bound to one match, created with the first message."""

    __tablename__ = "chat_rooms"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    match_id = Column(Uuid, ForeignKey("matches.id", ondelete="CASCADE"), unique=True, nullable=False)
    last_message_id = Column(Uuid, nullable=True)
    last_message_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    # Relationships
    match = relationship("Match", back_populates="chat_room")


class Message(Base):
    """Chat message. Deletion only flips is_deleted."""

    __tablename__ = "messages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    chat_room_id = Column(Uuid, ForeignKey("chat_rooms.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    message_type = Column(String(20), nullable=False, default=MessageType.TEXT.value)
    sent_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    read_at = Column(DateTime(timezone=True), nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)

    __table_args__ = (Index("idx_messages_room_sent_at", "chat_room_id", "sent_at"),)
