"""
Anvago Itinerary API -- FastAPI Application
Preference-matched itinerary templates, itinerary editing, rewards and admin.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from contextlib import asynccontextmanager
import logging
import logging.config
import time
import asyncio

from slowapi.errors import RateLimitExceeded

from anvago.core.config import settings
from anvago.core.errors import register_error_handlers
from anvago.core.rate_limiting import limiter, rate_limit_handler
from anvago.db.database import SessionLocal, init_db
from anvago.api import (
    health, routes_admin, routes_auth, routes_itineraries, routes_locations,
    routes_rewards, routes_users,
)

# Configure logging
logging_config = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "detailed": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
        },
        "json": {
            "()": "anvago.core.monitoring.JSONFormatter",
        },
    },
    "handlers": {
        "default": {
            "formatter": "json" if settings.log_format == "json" else "detailed",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {
        "anvago": {"handlers": ["default"], "level": settings.log_level},
        "uvicorn": {"handlers": ["default"], "level": "INFO"},
        "sqlalchemy": {"handlers": ["default"], "level": "WARNING"},
    },
}

logging.config.dictConfig(logging_config)
logger = logging.getLogger(__name__)


def _seed_if_empty() -> None:
    from anvago.db.seed import seed_database

    db = SessionLocal()
    try:
        created = seed_database(db)
        logger.info(f"Seed check complete: {created}")
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment} | Workers: {settings.api_workers}")

    # Retry DB init up to 3 times
    for attempt in range(1, 4):
        try:
            init_db()
            logger.info("Database initialized successfully")
            break
        except Exception as e:
            if attempt < 3:
                logger.warning(f"Database init attempt {attempt}/3 failed: {e}, retrying in 2s...")
                await asyncio.sleep(2)
            else:
                logger.error(f"Database init failed after 3 attempts, aborting startup: {e}")
                raise

    if settings.seed_on_startup:
        _seed_if_empty()

    logger.info("Application startup complete -- ready to serve")

    yield

    logger.info("Application shutting down")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Anvago -- preference-matched travel itineraries for Danang.",
    docs_url="/docs" if settings.debug else None,
    redoc_url=None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan,
)

# Error envelope handlers
register_error_handlers(app)

# Rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

# GZip compression (min 500 bytes)
app.add_middleware(GZipMiddleware, minimum_size=500)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)


@app.middleware("http")
async def request_middleware(request: Request, call_next):
    """Log requests with timing and add security headers in one pass."""
    start = time.perf_counter()
    request_id = request.headers.get("X-Request-ID", "")

    response = await call_next(request)

    elapsed = time.perf_counter() - start
    response.headers["X-Process-Time"] = f"{elapsed:.3f}"
    response.headers["X-Powered-By"] = "Anvago"

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    if request_id:
        response.headers["X-Request-ID"] = request_id

    logger.info(f"{request.method} {request.url.path} -> {response.status_code} in {elapsed:.3f}s")
    return response


# Include routers
app.include_router(health.router, prefix=settings.api_prefix)
app.include_router(routes_auth.router, prefix=settings.api_prefix)
app.include_router(routes_users.router, prefix=settings.api_prefix)
app.include_router(routes_locations.router, prefix=settings.api_prefix)
app.include_router(routes_itineraries.router, prefix=settings.api_prefix)
app.include_router(routes_rewards.router, prefix=settings.api_prefix)
app.include_router(routes_admin.router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    """Root -- API information."""
    return {
        "success": True,
        "data": {
            "name": settings.app_name,
            "version": settings.app_version,
            "status": "running",
            "health": f"{settings.api_prefix}/health",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "anvago.main:app",
        host=settings.api_host,
        port=settings.api_port,
        workers=settings.api_workers,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
