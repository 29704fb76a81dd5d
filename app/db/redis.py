from upstash_redis import Redis
from typing import Any, List, Optional
import json
import logging

from app.config import settings


logger = logging.getLogger(__name__)

# Global Redis client
redis_client: Optional[Redis] = None


async def init_redis():
    """Initialize Upstash Redis connection."""
    global redis_client
    redis_client = Redis(
        url=settings.UPSTASH_REDIS_URL,
        token=settings.UPSTASH_REDIS_TOKEN,
    )
    logger.info("Redis (Upstash) initialized")


async def close_redis():
    """Close Redis connection."""
    global redis_client
    redis_client = None
    logger.info("Redis connection closed")


def get_redis() -> Redis:
    """Get Redis client instance."""
    if redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return redis_client


class RedisService:
    """
    Redis service for response caching and presence.
    Optimized for Upstash free tier (10k commands/day).
    """

    CACHE_PREFIX = "cache:"

    def __init__(self, client: Optional[Redis] = None):
        self.client = client or get_redis()

    # ==================== Caching ====================

    async def cache_json(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Cache a JSON-serialisable value."""
        self.client.setex(f"{self.CACHE_PREFIX}{key}", ttl_seconds, json.dumps(value, default=str))

    async def get_cached_json(self, key: str) -> Optional[Any]:
        """Get a cached value, or None when missing or expired."""
        data = self.client.get(f"{self.CACHE_PREFIX}{key}")
        return json.loads(data) if data else None

    # ==================== Online Status ====================

    async def set_online(self, user_id: str) -> None:
        """Mark user as online for PRESENCE_TTL_SECONDS."""
        key = f"online:{user_id}"
        self.client.setex(key, settings.PRESENCE_TTL_SECONDS, "1")

    async def set_offline(self, user_id: str) -> None:
        self.client.delete(f"online:{user_id}")

    async def is_online(self, user_id: str) -> bool:
        """Check if user is online."""
        key = f"online:{user_id}"
        return self.client.get(key) is not None

    # ==================== Chat Room Presence ====================

    async def join_chat_room(self, chat_room_id: str, user_id: str) -> None:
        key = f"presence:chat_room:{chat_room_id}"
        self.client.sadd(key, user_id)
        self.client.expire(key, settings.PRESENCE_TTL_SECONDS)
        await self.set_online(user_id)

    async def leave_chat_room(self, chat_room_id: str, user_id: str) -> None:
        self.client.srem(f"presence:chat_room:{chat_room_id}", user_id)
        await self.set_offline(user_id)

    async def get_chat_room_presence(self, chat_room_id: str) -> List[str]:
        """User ids currently present in the chat room."""
        members = self.client.smembers(f"presence:chat_room:{chat_room_id}")
        return sorted(members or [])
