"""
Background scheduler service for periodic jobs.

Runs the daily reconcile sweep that keeps every active pattern's trips
materialized up to the horizon. Uses APScheduler for in-process scheduling
without external dependencies.
"""

from __future__ import annotations

import asyncio
from datetime import date
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from trip_recurrence.core.config import get_settings
from trip_recurrence.core.logger import logger
from trip_recurrence.models.schedule import SweepResult
from trip_recurrence.services.schedule_reconciler import ScheduleReconciler
from trip_recurrence.utils.datetime_utils import get_local_today

SWEEP_JOB_ID = "daily_trip_reconcile"


class BackgroundScheduler:
    """
    Background scheduler for periodic jobs.

    Features:
    - Daily reconcile sweep across all active patterns
    - Startup sweep so a restart never leaves the horizon unfilled
    """

    def __init__(
        self,
        reconciler: ScheduleReconciler,
        today_provider: Optional[Callable[[], date]] = None,
    ):
        self._reconciler = reconciler
        self._today_provider = today_provider or (lambda: get_local_today(get_settings().TIMEZONE))
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._startup_task: Optional[asyncio.Task] = None
        self._last_result: Optional[SweepResult] = None

    @property
    def last_result(self) -> Optional[SweepResult]:
        return self._last_result

    async def start(self):
        """Start the scheduler and run an initial sweep."""
        settings = get_settings()

        # Only run scheduler in non-test environments
        if settings.ENVIRONMENT == "test" or not settings.ENABLE_BACKGROUND_SCHEDULER:
            logger.info("Background scheduler disabled")
            return

        self._scheduler = AsyncIOScheduler(timezone=settings.TIMEZONE)
        self._scheduler.add_job(
            self.run_sweep,
            CronTrigger(
                hour=settings.GENERATION_CRON_HOUR,
                minute=settings.GENERATION_CRON_MINUTE,
                timezone=settings.TIMEZONE,
            ),
            id=SWEEP_JOB_ID,
            name="Daily Trip Reconcile",
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(
            "Background scheduler started:\n"
            f"  - Daily trip reconcile: {settings.GENERATION_CRON_HOUR:02d}:"
            f"{settings.GENERATION_CRON_MINUTE:02d} {settings.TIMEZONE}"
        )

        # Catch up in background (non-blocking)
        self._startup_task = asyncio.create_task(self._run_startup_sweep())

    async def stop(self):
        """Stop the scheduler."""
        if self._startup_task and not self._startup_task.done():
            self._startup_task.cancel()
        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Background scheduler stopped")

    async def _run_startup_sweep(self):
        """Background wrapper for the startup sweep with error handling."""
        try:
            logger.info("Starting startup reconcile sweep...")
            await self.run_sweep()
            logger.info("Startup reconcile sweep completed")
        except Exception as e:
            logger.error(f"Startup reconcile sweep failed: {e}")

    async def run_sweep(self) -> SweepResult:
        """Reconcile every active pattern as of today."""
        today = self._today_provider()
        result = await self._reconciler.reconcile_all(today)
        if not result.skipped:
            self._last_result = result
        return result


# Global scheduler instance
_scheduler: Optional[BackgroundScheduler] = None


async def get_background_scheduler() -> BackgroundScheduler:
    """Get the global background scheduler instance."""
    global _scheduler
    if _scheduler is None:
        from trip_recurrence.api.deps import get_reconciler

        _scheduler = BackgroundScheduler(reconciler=get_reconciler())
    return _scheduler


async def start_background_scheduler():
    """Start the global background scheduler."""
    scheduler = await get_background_scheduler()
    await scheduler.start()


async def stop_background_scheduler():
    """Stop the global background scheduler."""
    global _scheduler
    if _scheduler:
        await _scheduler.stop()
        _scheduler = None
