import firebase_admin
from firebase_admin import credentials, db, auth, storage
from starlette.concurrency import run_in_threadpool
from typing import Any, Dict, Optional
import logging

from app.config import settings
from app.core.exceptions import StorageError
from app.core.retry import with_retry


logger = logging.getLogger(__name__)

# Global Firebase app instance
firebase_app: Optional[firebase_admin.App] = None


def init_firebase():
    """Initialize Firebase Admin SDK."""
    global firebase_app

    if firebase_app is not None:
        return firebase_app

    # Check if Firebase credentials are configured
    if not settings.FIREBASE_PROJECT_ID or not settings.FIREBASE_CLIENT_EMAIL:
        logger.warning("Firebase credentials not configured - realtime feed and media storage disabled")
        return None

    # Create credentials from environment variables
    cred_dict = {
        "type": "service_account",
        "project_id": settings.FIREBASE_PROJECT_ID,
        "private_key": settings.FIREBASE_PRIVATE_KEY.replace("\\n", "\n"),
        "client_email": settings.FIREBASE_CLIENT_EMAIL,
        "token_uri": "https://oauth2.googleapis.com/token",
    }

    try:
        cred = credentials.Certificate(cred_dict)
        firebase_app = firebase_admin.initialize_app(
            cred,
            {
                "databaseURL": f"https://{settings.FIREBASE_PROJECT_ID}-default-rtdb.firebaseio.com",
                "storageBucket": settings.FIREBASE_STORAGE_BUCKET or f"{settings.FIREBASE_PROJECT_ID}.appspot.com",
            },
        )
        logger.info("Firebase initialized")
        return firebase_app
    except Exception as e:
        logger.error(f"Firebase initialization failed: {e}")
        return None


class FirebaseService:
    """
    Service for Firebase Realtime Database, Storage and Authentication.

    The Realtime Database carries the change feed for chat rooms:
    clients subscribe to chat_rooms/{chat_room_id}/events and receive one
    child per message INSERT or UPDATE. Storage holds profile media.
    """

    @property
    def is_available(self) -> bool:
        return firebase_app is not None

    # ==================== Auth ====================

    def get_custom_token(self, user_id: str) -> str:
        """
        Generate a custom Firebase auth token for the user.
        Client uses this to authenticate with the realtime feed.
        """
        if not self.is_available:
            raise StorageError("Realtime service is not configured", status_code=503)
        return auth.create_custom_token(user_id).decode("utf-8")

    # ==================== Realtime feed ====================
    # The Admin SDK is blocking; calls go through the threadpool

    @with_retry(max_attempts=3, base_delay=0.5)
    async def create_chat_room(self, chat_room_id: str, match_id: str, user1_id: str, user2_id: str) -> None:
        """Create the realtime node for a new chat room."""
        if not self.is_available:
            logger.debug(f"Realtime disabled, skipping chat room node {chat_room_id}")
            return
        ref = db.reference(f"chat_rooms/{chat_room_id}/metadata")
        await run_in_threadpool(
            ref.set,
            {
                "created_at": {".sv": "timestamp"},
                "match_id": match_id,
                "user1_id": user1_id,
                "user2_id": user2_id,
            },
        )

    @with_retry(max_attempts=3, base_delay=0.5)
    async def publish_message_event(self, chat_room_id: str, event_type: str, message: Dict[str, Any]) -> Optional[str]:
        """
        Push a change event (INSERT or UPDATE) for a message row.
        Returns the event key, or None when the realtime feed is disabled.
        """
        if not self.is_available:
            logger.debug(f"Realtime disabled, dropping {event_type} event for room {chat_room_id}")
            return None
        ref = db.reference(f"chat_rooms/{chat_room_id}/events")
        event_ref = await run_in_threadpool(
            ref.push,
            {
                "type": event_type,
                "message": message,
                "timestamp": {".sv": "timestamp"},
            },
        )
        return event_ref.key

    async def set_presence(self, chat_room_id: str, user_id: str, online: bool) -> None:
        """Track (or untrack) a user in the chat room presence node."""
        if not self.is_available:
            return
        ref = db.reference(f"chat_rooms/{chat_room_id}/presence/{user_id}")
        if online:
            await run_in_threadpool(ref.set, {"online_at": {".sv": "timestamp"}})
        else:
            await run_in_threadpool(ref.delete)

    async def delete_chat_room(self, chat_room_id: str) -> None:
        """Delete a chat room node (when unmatched or blocked)."""
        if not self.is_available:
            return
        await run_in_threadpool(db.reference(f"chat_rooms/{chat_room_id}").delete)

    # ==================== Storage ====================

    def _require_storage(self) -> None:
        if not self.is_available:
            raise StorageError("Media storage is not configured", status_code=503)

    async def object_exists(self, path: str) -> bool:
        self._require_storage()
        return await run_in_threadpool(storage.bucket().blob(path).exists)

    async def upload_object(self, path: str, data: bytes, content_type: str) -> str:
        """Upload bytes and return the public URL."""
        self._require_storage()
        try:
            return await self._upload(path, data, content_type)
        except Exception as e:
            raise StorageError(f"Upload failed: {e}")

    @with_retry(max_attempts=3, base_delay=1.0)
    async def _upload(self, path: str, data: bytes, content_type: str) -> str:
        return await run_in_threadpool(_upload_blob, path, data, content_type)

    async def delete_object(self, path: str) -> bool:
        self._require_storage()
        return await run_in_threadpool(_delete_blob, path)


def _upload_blob(path: str, data: bytes, content_type: str) -> str:
    blob = storage.bucket().blob(path)
    blob.upload_from_string(data, content_type=content_type)
    blob.make_public()
    return blob.public_url


def _delete_blob(path: str) -> bool:
    blob = storage.bucket().blob(path)
    if not blob.exists():
        return False
    blob.delete()
    return True


# Singleton instance
firebase_service = FirebaseService()
