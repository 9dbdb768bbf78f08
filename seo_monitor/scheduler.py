"""Interval scheduler for monitoring jobs, built on APScheduler."""

import logging
from datetime import datetime, timezone as dt_timezone
from typing import Any, Callable, Optional

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)


class MonitorScheduler:
    """Wrapper around APScheduler for recurring monitoring jobs.

    Jobs run one at a time on a single worker: a job that is still
    running when its next run is due is skipped, and missed runs are
    coalesced into one.

    Usage::

        sched = MonitorScheduler()
        sched.start()
        sched.add_interval_job("performance_alerts", monitor.run_check, minutes=5)
        sched.list_jobs()
        sched.stop()
    """

    def __init__(
        self,
        timezone: str = "UTC",
        misfire_grace_time: int = 60,
    ):
        self._timezone = timezone
        self._misfire_grace_time = misfire_grace_time
        self._scheduler: Optional[BackgroundScheduler] = None

    def _build(self) -> BackgroundScheduler:
        # Bound methods are not serialisable, so jobs live in memory only.
        return BackgroundScheduler(
            jobstores={"default": MemoryJobStore()},
            executors={"default": ThreadPoolExecutor(max_workers=1)},
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": self._misfire_grace_time,
            },
            timezone=self._timezone,
        )

    @property
    def is_running(self) -> bool:
        """Whether the scheduler is currently active."""
        return self._scheduler is not None

    def start(self) -> None:
        """Start the scheduler."""
        if self._scheduler is not None:
            logger.warning("Scheduler is already running.")
            return
        self._scheduler = self._build()
        self._scheduler.start()
        logger.info("Scheduler started (tz=%s).", self._timezone)

    def stop(self, wait: bool = False) -> None:
        """Shut down the scheduler.

        Pending runs are cancelled; a job already executing is allowed to
        finish (``wait`` controls whether this call blocks until it does).
        """
        if self._scheduler is None:
            return
        scheduler, self._scheduler = self._scheduler, None
        scheduler.shutdown(wait=wait)
        logger.info("Scheduler stopped.")

    def add_interval_job(
        self,
        job_id: str,
        func: Callable,
        minutes: float,
        run_immediately: bool = True,
        args: Optional[tuple] = None,
        kwargs: Optional[dict[str, Any]] = None,
    ) -> None:
        """Add or replace a job that runs every ``minutes`` minutes.

        Args:
            job_id: Unique identifier for the job.
            func: Callable to execute.
            minutes: Fixed delay between runs.
            run_immediately: Fire the first run now instead of after one interval.
            args: Positional arguments for func.
            kwargs: Keyword arguments for func.
        """
        if self._scheduler is None:
            raise RuntimeError("Scheduler is not running; call start() first.")
        if minutes <= 0:
            raise ValueError(f"Interval must be positive, got {minutes!r}")

        job_options: dict[str, Any] = {}
        if run_immediately:
            job_options["next_run_time"] = datetime.now(dt_timezone.utc)

        self._scheduler.add_job(
            func,
            trigger=IntervalTrigger(minutes=minutes, timezone=self._timezone),
            id=job_id,
            args=args or (),
            kwargs=kwargs or {},
            replace_existing=True,
            **job_options,
        )
        logger.info("Job added: %s [every %s min]", job_id, minutes)

    def remove_job(self, job_id: str) -> bool:
        """Remove a scheduled job by ID.

        Returns:
            True if the job was found and removed, False otherwise.
        """
        if self._scheduler is None:
            return False
        try:
            self._scheduler.remove_job(job_id)
            logger.info("Job removed: %s", job_id)
            return True
        except JobLookupError:
            logger.warning("Job not found: %s", job_id)
            return False

    def list_jobs(self) -> list[dict[str, Any]]:
        """List all scheduled jobs with their details."""
        if self._scheduler is None:
            return []
        return [self._job_info(job) for job in self._scheduler.get_jobs()]

    def get_job(self, job_id: str) -> Optional[dict[str, Any]]:
        """Get details for a specific job."""
        if self._scheduler is None:
            return None
        job = self._scheduler.get_job(job_id)
        if job is None:
            return None
        return self._job_info(job)

    @staticmethod
    def _job_info(job) -> dict[str, Any]:
        return {
            "id": job.id,
            "name": job.name,
            "trigger": str(job.trigger),
            "next_run_time": (
                job.next_run_time.isoformat() if job.next_run_time else None
            ),
        }
