import logging
from datetime import datetime
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from channel_guide.services.resolution_service import ScheduleResolver


logger = logging.getLogger(__name__)

class DirectoryRefreshScheduler:
    """Scheduler that keeps the channel directory warm between requests"""

    def __init__(self):
        self.scheduler: AsyncIOScheduler | None = None
        self._resolver: ScheduleResolver | None = None

    async def _refresh_job(self) -> None:
        """Background job that refreshes the directory if it went stale"""
        if self._resolver is None:
            return
        logger.info("Scheduled directory refresh triggered")
        try:
            if not await self._resolver.ensure_directory_fresh():
                logger.error("Scheduled directory refresh failed")
        except Exception as e:
            logger.error(f"Exception in scheduled directory refresh: {e}", exc_info=True)

    def start(self, resolver: ScheduleResolver) -> None:
        """Start the scheduler with the directory refresh job"""
        if self.scheduler and self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        settings = resolver.settings
        if not settings.directory_refresh_enabled:
            logger.info("Directory refresh schedule disabled")
            return

        try:
            trigger = CronTrigger.from_crontab(settings.directory_refresh_cron)
        except (ValueError, KeyError) as exc:
            logger.error("Invalid cron expression '%s': %s", settings.directory_refresh_cron, exc)
            raise

        self._resolver = resolver
        self.scheduler = AsyncIOScheduler(timezone='UTC')
        self.scheduler.add_job(
            self._refresh_job,
            trigger=trigger,
            id='directory_refresh',
            max_instances=1,
            coalesce=True,
            misfire_grace_time=settings.directory_refresh_misfire_grace_sec or None
        )

        self.scheduler.start()
        next_time = self.get_next_run_time()
        logger.info(
            "Scheduler started. Next directory refresh: %s",
            next_time.isoformat() if next_time else "unknown"
        )

    def shutdown(self) -> None:
        """Shutdown the scheduler"""
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Scheduler stopped")
        self.scheduler = None
        self._resolver = None

    def is_running(self) -> bool:
        return bool(self.scheduler and self.scheduler.running)

    def get_next_run_time(self) -> datetime | None:
        """Get next scheduled refresh time"""
        if not self.scheduler:
            return None
        job = self.scheduler.get_job('directory_refresh')
        return job.next_run_time if job else None


directory_scheduler = DirectoryRefreshScheduler()
