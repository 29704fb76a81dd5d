from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy import text
import logging
import time

from app.config import settings
from app.api.v1.router import api_router
from app.api.v1.functions import router as functions_router
from app.db.session import init_db, close_db, async_session_maker
from app.db.redis import init_redis, close_redis, get_redis
from app.core.exceptions import ProfileValidationError, ServiceError
from app.core.firebase import init_firebase, firebase_service
from app.core.logging import setup_logging
from app.core.middleware import (
    SecurityHeadersMiddleware,
    RequestLoggingMiddleware,
    RequestSizeLimitMiddleware,
)
import app.models  # noqa: F401  Register models for create_all


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    setup_logging()
    await init_db()
    await init_redis()
    init_firebase()
    logger.info(f"{settings.APP_NAME} started in {settings.ENVIRONMENT} mode")

    yield

    # Shutdown
    await close_db()
    await close_redis()
    logger.info(f"{settings.APP_NAME} shutting down")


app = FastAPI(
    title=settings.APP_NAME,
    description="Dating app backend: profiles, likes and matching, chat and profile media",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# Mobile dev servers and the web build
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With", "Accept", "Origin", "apikey", "x-client-info"],
    expose_headers=["X-Request-ID"],
    max_age=600,  # Cache preflight requests for 10 minutes
)

# Last added runs first
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestSizeLimitMiddleware)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    content = {"detail": exc.message}
    if isinstance(exc, ProfileValidationError):
        content["errors"] = [error.to_dict() for error in exc.errors]
    return JSONResponse(status_code=exc.status_code, content=content)


app.include_router(api_router, prefix=settings.API_V1_PREFIX)
# Function endpoints keep their unversioned client URLs
app.include_router(functions_router)


@app.get("/")
async def root():
    """Liveness probe."""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
    }


async def _ping_database():
    async with async_session_maker() as session:
        await session.execute(text("SELECT 1"))


async def _ping_redis():
    get_redis().ping()


@app.get("/health")
async def health_check():
    """
    Readiness probe. Pings the database and Redis; Firebase is reported as
    configured or not. Any failed ping marks the service as degraded.
    """
    services = {}
    for name, ping in (("database", _ping_database), ("redis", _ping_redis)):
        started = time.perf_counter()
        try:
            await ping()
        except Exception as e:
            logger.error(f"{name} health check failed: {e}")
            services[name] = {"status": "unhealthy", "error": str(e)[:100]}
        else:
            services[name] = {
                "status": "healthy",
                "latency_ms": round((time.perf_counter() - started) * 1000, 2),
            }

    services["firebase"] = {
        "status": "initialized" if firebase_service.is_available else "not_configured",
    }

    degraded = any(service["status"] == "unhealthy" for service in services.values())
    return {"status": "degraded" if degraded else "healthy", "services": services}
