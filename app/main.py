import time

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi_limiter import FastAPILimiter
from redis.asyncio import Redis
from sqlalchemy import text
from structlog import get_logger

from app.config import identity_capabilities, settings
from app.core.logging import setup_logging
from app.database import AsyncSessionFactory, chat_tables_available
from app.errors import register_exception_handlers
from app.routers import chat, debug, matches, preferences, realtime
from app.services.realtime import manager

logger = get_logger()

app = FastAPI(title="Co-living Match Service")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

app.include_router(matches.router)
app.include_router(preferences.router)
app.include_router(chat.router)
app.include_router(realtime.router)
if settings.ENABLE_DEBUG_ROUTES:
    app.include_router(debug.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "Request handled",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 1),
    )
    return response


async def init_rate_limiter(redis_url: str = None) -> bool:
    """Initialise fastapi-limiter; on any failure the limiter is left fully off."""
    if not redis_url:
        return False
    try:
        redis = Redis.from_url(redis_url, encoding="utf-8", decode_responses=True)
        await redis.ping()
        await FastAPILimiter.init(redis)
    except Exception as e:
        # init assigns the client before loading its script
        FastAPILimiter.redis = None
        logger.warning("Rate limiter disabled", error=str(e))
        return False
    return True


@app.on_event("startup")
async def startup_event():
    setup_logging()
    await init_rate_limiter(settings.REDIS_URL)
    app.state.chat_available = await chat_tables_available()
    if not app.state.chat_available:
        logger.warning("Chat tables missing; chat endpoints will answer 501")


@app.on_event("shutdown")
async def shutdown_event():
    await manager.drain()
    if FastAPILimiter.redis is not None:
        await FastAPILimiter.close()


@app.get("/health", tags=["health"])
async def health():
    details = {"status": "ok"}
    try:
        async with AsyncSessionFactory() as session:
            await session.execute(text("SELECT 1"))
        details["database"] = "up"
    except Exception as e:
        details["status"] = "degraded"
        details["database"] = f"down: {str(e)}"
    details["config"] = {
        "db_url_set": bool(settings.DATABASE_URL),
        "redis_url_set": bool(settings.REDIS_URL),
        "identity_schema_version": identity_capabilities.schema_version,
        "email_lookup": identity_capabilities.email,
        "external_uid_lookup": identity_capabilities.external_uid,
        "placeholder_users": settings.ALLOW_PLACEHOLDER_USERS,
        "debug_routes": settings.ENABLE_DEBUG_ROUTES,
    }
    details["chat_available"] = getattr(app.state, "chat_available", False)
    return details


if __name__ == "__main__":
    uvicorn.run("app.main:app", host="0.0.0.0", port=int(settings.PORT), reload=False)
