"""
FastAPI Application Entry Point

Menu Magi - QR Table Ordering
Supports both Mock services (development) and Real APIs (production).

Endpoints:
    - /customer/table, /api/session, /api/menu, /api/cart, /api/checkout:
      customer ordering flow (signed session cookie)
    - /api/orders: order tracking, payment and offline sync
    - /api/auth, /api/owner: owner accounts, menu, order board, reports
    - /ws/owner/orders, /ws/orders/{id}: realtime change feed
    - GET /offline: offline fallback page for the service worker
    - GET /health: System health check

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

import redis.asyncio as aioredis
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.middleware.sessions import SessionMiddleware

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from menumagi.core.config import get_settings, setup_logging
from menumagi.database import engine, get_db, init_db
from menumagi.routers import auth, customer, owner, realtime
from menumagi.schemas import ErrorResponse, HealthResponse
from menumagi.services.notifications import get_notification_service
from menumagi.services.payment import get_payment_service
from menumagi.services.realtime import get_change_feed

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

MEDIA_DIR = Path(settings.media_directory)
MEDIA_DIR.mkdir(parents=True, exist_ok=True)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    logger.info("✅ Database initialized")

    payment_service = get_payment_service()
    notification_service = get_notification_service()
    logger.info(f"✅ Payment Service: {payment_service.provider_name}")
    logger.info(f"✅ Notification Service: {notification_service.provider_name}")
    logger.info(f"✅ GST: {settings.gst_rate}% ({'IGST' if settings.gst_inter_state else 'CGST + SGST'})")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield

    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "QR table ordering for restaurants: customers scan, order and track; "
        "owners manage the menu and move orders through the kitchen."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.secret_key,
    session_cookie=settings.session_cookie_name,
    same_site="lax",
    https_only=settings.is_production,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/media", StaticFiles(directory=str(MEDIA_DIR)), name="media")

app.include_router(customer.router)
app.include_router(auth.router)
app.include_router(owner.router)
app.include_router(realtime.router)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍽️ Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "scan": "/customer/table",
        "health": "/health",
    }


@app.get("/offline", response_class=HTMLResponse, tags=["Root"])
@app.get("/offline.html", response_class=HTMLResponse, include_in_schema=False)
async def offline_page(request: Request) -> HTMLResponse:
    """Fallback page the service worker serves when the network is gone."""
    return templates.TemplateResponse(
        request,
        "offline.html",
        {"app_name": settings.app_name},
    )


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Verify all system components are operational."""

    db_status = "healthy"
    try:
        await db.execute(select(1))
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {e}"
        logger.error(f"Database health check failed: {e}")

    redis_status = "healthy"
    client = aioredis.from_url(settings.redis_url, socket_timeout=2)
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        redis_status = f"unhealthy: {e}"
        logger.error(f"Redis health check failed: {e}")
    finally:
        await client.aclose()

    payment_status = "healthy" if await get_payment_service().health_check() else "unhealthy"
    notification_status = "healthy" if await get_notification_service().health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, redis_status, payment_status, notification_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        payment_service=payment_status,
        notification_service=notification_status,
        realtime_subscribers=get_change_feed().subscriber_count,
        timestamp=datetime.now(),
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected errors and hide details outside debug mode."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal server error",
            detail=str(exc) if settings.debug else None,
        ).model_dump(),
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "menumagi.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
