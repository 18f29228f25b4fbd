"""Job registry — admission control in front of the cron scheduler.

Admission is a check-then-act sequence (capacity, name, insert); all of it runs
under one lock shared by every creation attempt so concurrent requests can
neither exceed the capacity nor register the same name twice.
"""

from __future__ import annotations

import logging
import threading

from cronprobe.errors import JobAlreadyExists, MaxJobsReached
from cronprobe.jobs.models import Job, normalize_cron, resolve_timezone, validate_job
from cronprobe.jobs.scheduler import CronScheduler
from cronprobe.monitor.executor import UrlMonitor

logger = logging.getLogger(__name__)


class JobRegistry:
    """Registers jobs as cron triggers bound to the URL monitor."""

    def __init__(
        self,
        scheduler: CronScheduler,
        monitor: UrlMonitor,
        max_jobs_allowed: int = 5,
    ) -> None:
        self.scheduler = scheduler
        self.monitor = monitor
        self.max_jobs_allowed = max_jobs_allowed
        self._jobs: dict[str, Job] = {}
        self._admission_lock = threading.Lock()

    def create_job(self, job: Job) -> Job:
        """Validate and register a job.

        Raises:
            InvalidInput: A field is blank or malformed (nothing registered).
            MaxJobsReached: ``max_jobs_allowed`` jobs are already registered.
            JobAlreadyExists: A job with the same name is registered.
        """
        job = validate_job(job)

        with self._admission_lock:
            if self.scheduler.count() >= self.max_jobs_allowed:
                logger.warning("Rejected job '%s': limit of %d reached", job.name, self.max_jobs_allowed)
                raise MaxJobsReached(self.max_jobs_allowed)

            if self.scheduler.exists(job.name):
                logger.warning("Rejected job '%s': name already registered", job.name)
                raise JobAlreadyExists(job.name)

            self.scheduler.add_trigger(
                job.name,
                normalize_cron(job.cron_expression),
                resolve_timezone(job.timezone),
                self.monitor.run,
                (job.name, job.url),
            )
            self._jobs[job.name] = job

        logger.info("Job '%s' created for %s (%s %s)", job.name, job.url, job.cron_expression, job.timezone)
        return job

    def get(self, name: str) -> Job | None:
        return self._jobs.get(name)

    def jobs(self) -> list[Job]:
        with self._admission_lock:
            return list(self._jobs.values())

    def count(self) -> int:
        return len(self._jobs)
