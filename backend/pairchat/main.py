"""
PairChat - Main FastAPI Application
"""

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from .config import settings
from .api import (
    participants_router, sessions_router, admin_router, events_router,
    register_exception_handlers,
)
from .core import MatchmakingService, ReaperScheduler, init_matchmaking
from .core.logging_config import setup_logging
from .feed import InMemoryChangeFeed
from .middleware import RequestLoggingMiddleware
from .storage import create_record_store

# Logger will be initialized after setup_logging() is called
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    setup_logging(settings)

    store = create_record_store(settings)
    await store.open()
    service = init_matchmaking(MatchmakingService(store, InMemoryChangeFeed()))
    logger.info(f"Record store initialized ({settings.storage_type})")

    scheduler = ReaperScheduler(service.reaper)
    if settings.reaper_enabled:
        scheduler.start()

    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Liveness threshold: {settings.liveness_threshold_seconds}s")
    logger.info(f"Log level: {settings.log_level.upper()}")
    logger.info(f"Debug mode: {settings.debug}")
    yield
    # Shutdown
    await scheduler.stop()
    await store.close()
    logger.info(f"Shutting down {settings.app_name}")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Anonymous one-to-one chat: matchmaking, sessions and messages",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request logging middleware (after CORS)
if settings.log_api_requests:
    app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

# Include routers
app.include_router(participants_router)
app.include_router(sessions_router)
app.include_router(events_router)
app.include_router(admin_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "storage": settings.storage_type,
        "version": settings.app_version
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "pairchat.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
