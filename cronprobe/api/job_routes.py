"""Job management routes.

Endpoints:
  POST /api/jobs  — register a cron-scheduled URL check
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, Field

from cronprobe.jobs.models import Job
from cronprobe.jobs.registry import JobRegistry

logger = logging.getLogger(__name__)

job_router = APIRouter(prefix="/jobs", tags=["jobs"])


class CreateJobBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str
    url: str
    cron_expression: str = Field(alias="cronExpression")
    timezone: str | None = None


def _get_registry(request: Request) -> JobRegistry:
    return request.app.state.job_registry  # type: ignore[no-any-return]


@job_router.post("")
def create_job(body: CreateJobBody, request: Request) -> dict[str, Any]:
    """Admit a job; errors are rendered by the app's MonitoringError handler."""
    job = _get_registry(request).create_job(Job(
        name=body.name,
        description=body.description,
        url=body.url,
        cron_expression=body.cron_expression,
        timezone=body.timezone,
    ))
    return job.to_dict()
