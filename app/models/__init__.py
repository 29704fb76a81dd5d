# Export all models for easy importing
from app.models.user import Profile, Prefecture
from app.models.match import Like, Match, ChatRoom, Message

__all__ = [
    "Profile",
    "Prefecture",
    "Like",
    "Match",
    "ChatRoom",
    "Message",
]
