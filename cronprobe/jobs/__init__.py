"""Jobs subsystem — definitions, cron scheduler, admission registry."""

from .models import Job, validate_job
from .registry import JobRegistry
from .scheduler import CronScheduler, CronTrigger
