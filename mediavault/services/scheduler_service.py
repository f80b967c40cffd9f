"""Debounce timers backed by APScheduler"""

import asyncio
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from .log_service import log_service


class SchedulerService:
    """Manages one-shot timers keyed by an id"""

    def __init__(self):
        self.scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self.is_running = False

    async def start(self):
        """Start the scheduler"""
        if self.is_running:
            return

        self.scheduler.start()
        self.is_running = True
        log_service.debug("Debounce scheduler started")

    async def stop(self):
        """Stop the scheduler, dropping timers that have not fired"""
        if not self.is_running:
            return

        try:
            # Shutdown scheduler in executor to avoid blocking
            loop = asyncio.get_running_loop()
            await asyncio.wait_for(
                loop.run_in_executor(None, self.scheduler.shutdown, False), timeout=2.0
            )
        except asyncio.TimeoutError:
            log_service.error("Scheduler shutdown timed out, forcing stop")
        finally:
            self.is_running = False
            log_service.debug("Debounce scheduler stopped")

    def debounce(self, key: str, delay: float, func, *args):
        """(Re)arm the timer `key`; `func(*args)` runs once `delay` seconds after the last call"""
        run_date = datetime.now(timezone.utc) + timedelta(seconds=delay)
        self.scheduler.add_job(
            func,
            trigger=DateTrigger(run_date=run_date),
            args=args,
            id=key,
            name=f"debounce {key}",
            replace_existing=True,
            misfire_grace_time=None,
            coalesce=True,
        )
