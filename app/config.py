from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "Prototype1 Dating API"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    API_V1_PREFIX: str = "/api/v1"

    # CORS - Allowed origins (comma-separated in env)
    CORS_ORIGINS: str = "http://localhost:8081,http://localhost:19006,exp://localhost:8081"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if self.ENVIRONMENT == "development" and self.DEBUG:
            # Expo dev server, web preview and tunnels
            return [
                "http://localhost:8081",
                "http://localhost:19006",
                "http://127.0.0.1:8081",
                "http://127.0.0.1:19006",
                "exp://localhost:8081",
                "exp://127.0.0.1:8081",
            ]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    # PostgreSQL
    DATABASE_URL: str

    # Upstash Redis
    UPSTASH_REDIS_URL: str
    UPSTASH_REDIS_TOKEN: str

    # Bearer tokens are issued by the hosted auth provider; we only verify them
    AUTH_JWT_SECRET: str
    AUTH_JWT_ALGORITHM: str = "HS256"
    AUTH_JWT_AUDIENCE: str = "authenticated"
    DEV_TOKEN_EXPIRE_MINUTES: int = 60

    # Firebase (optional - realtime feed and media storage disabled if not set)
    FIREBASE_PROJECT_ID: str = ""
    FIREBASE_PRIVATE_KEY: str = ""
    FIREBASE_CLIENT_EMAIL: str = ""
    FIREBASE_STORAGE_BUCKET: str = ""
    MEDIA_BUCKET_PREFIX: str = "profile-media"

    # Request limits
    MAX_REQUEST_BODY_MB: int = 60

    # Chat
    MESSAGE_MAX_LENGTH: int = 1000
    CHAT_PAGE_SIZE: int = 50
    PRESENCE_TTL_SECONDS: int = 300

    # Caching
    PREFECTURE_CACHE_SECONDS: int = 300

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()


settings = get_settings()
