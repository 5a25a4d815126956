import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from apscheduler.events import EVENT_JOB_MAX_INSTANCES, JobSubmissionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from ingestion.coordinator import RefreshCoordinator
from schemas.refresh import RefreshResult

logger = logging.getLogger(__name__)

JOB_ID = "refresh_job"


class RefreshScheduler:
    """
    Drives the refresh coordinator on a fixed interval.

    Ticks never pile up: the job allows a single running instance, so a tick
    that arrives while a cycle is still running is dropped with a warning
    rather than queued.
    """

    def __init__(
        self,
        coordinator: RefreshCoordinator,
        interval_seconds: float,
        run_on_startup: bool = True,
        scheduler: Optional[AsyncIOScheduler] = None
    ):
        self.coordinator = coordinator
        self.interval_seconds = interval_seconds
        self.run_on_startup = run_on_startup
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)
        self.skipped_ticks = 0
        self._started = False

    async def run_refresh_job(self) -> Optional[RefreshResult]:
        """Job to run one refresh cycle"""
        logger.info("Scheduler: Starting refresh job")
        result = await self.coordinator.try_refresh()
        if result is None:
            self.skipped_ticks += 1
        return result

    def _on_max_instances(self, event: JobSubmissionEvent):
        if event.job_id != JOB_ID:
            return
        self.skipped_ticks += 1
        logger.warning(
            "Scheduler: previous refresh still running; dropping this tick",
            extra={"scheduled_run_times": [t.isoformat() for t in event.scheduled_run_times]}
        )

    def start(self):
        """Start the scheduler. Must be called with an event loop running."""
        job_kwargs: Dict[str, Any] = {}
        if self.run_on_startup:
            job_kwargs["next_run_time"] = datetime.now(timezone.utc)

        self.scheduler.add_listener(self._on_max_instances, EVENT_JOB_MAX_INSTANCES)
        self.scheduler.add_job(
            self.run_refresh_job,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None,
            **job_kwargs
        )
        self.scheduler.start()
        self._started = True
        logger.info(
            f"Refresh scheduler started (every {self.interval_seconds:g}s, "
            f"run on startup: {self.run_on_startup})"
        )

    def stop(self):
        """Cancel any in-flight cycle and stop scheduling new ones"""
        self.coordinator.cancel()
        if self._started:
            # AsyncIOScheduler applies shutdown on its next loop iteration
            self.scheduler.shutdown(wait=False)
            self._started = False
        logger.info("Refresh scheduler stopped")

    @property
    def running(self) -> bool:
        return self._started
