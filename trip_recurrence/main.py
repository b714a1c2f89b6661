"""
Recurring Trip Scheduler - Main Application Entry Point
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trip_recurrence.core.config import get_settings
from trip_recurrence.core.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    settings = get_settings()
    logger.info(f"Starting Recurring Trip Scheduler in {settings.ENVIRONMENT} mode...")

    from trip_recurrence.infrastructure.local.database import init_db

    await init_db()

    # Start background scheduler for the daily reconcile sweep
    from trip_recurrence.services.background_scheduler import (
        start_background_scheduler,
        stop_background_scheduler,
    )

    await start_background_scheduler()

    yield

    # Shutdown
    logger.info("Shutting down Recurring Trip Scheduler...")
    await stop_background_scheduler()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Recurring Trip Scheduler",
        description="Recurrence patterns, trip materialization and reconciliation",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from trip_recurrence.api import holidays, recurring_trips

    app.include_router(recurring_trips.router, prefix="/api/recurring-trips", tags=["recurring_trips"])
    app.include_router(holidays.router, prefix="/api/holidays", tags=["holidays"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "environment": settings.ENVIRONMENT,
            "version": "0.1.0"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "trip_recurrence.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
