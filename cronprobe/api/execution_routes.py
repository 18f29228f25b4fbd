"""Execution ledger routes.

Endpoints:
  GET /api/executions  — filtered, sorted, paginated execution records
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Query, Request

from cronprobe.errors import InvalidInput
from cronprobe.jobs.models import is_valid_url
from cronprobe.ledger.criteria import ExecutionCriteria, PageRequest, SortDirection
from cronprobe.ledger.models import ExecutionStatus
from cronprobe.ledger.store import LedgerStore

execution_router = APIRouter(prefix="/executions", tags=["executions"])


def _get_ledger(request: Request) -> LedgerStore:
    return request.app.state.ledger  # type: ignore[no-any-return]


@execution_router.get("")
def list_executions(
    request: Request,
    job_name: str | None = Query(None, alias="jobName"),
    url: str | None = None,
    status: str | None = None,
    from_: datetime | None = Query(None, alias="from"),
    to: datetime | None = None,
    page_number: int | None = Query(None, alias="pageNumber"),
    page_size: int | None = Query(None, alias="pageSize"),
    sort_direction: str | None = Query(None, alias="sortDirection"),
    sort_properties: list[str] | None = Query(None, alias="sortProperties"),
) -> dict[str, Any]:
    """List executions. Sort properties may repeat or be comma-separated."""
    if url is not None and not is_valid_url(url):
        raise InvalidInput.single("url", "must be a valid URL")

    try:
        parsed_status = ExecutionStatus.from_string(status) if status else None
    except ValueError as e:
        raise InvalidInput.single("status", str(e))

    try:
        direction = SortDirection.from_string(sort_direction) if sort_direction else None
    except ValueError as e:
        raise InvalidInput.single("sortDirection", str(e))

    properties = [
        p.strip() for raw in (sort_properties or []) for p in raw.split(",") if p.strip()
    ]

    criteria = ExecutionCriteria(
        job_name=job_name,
        url=url,
        status=parsed_status,
        from_=from_,
        to=to,
        page=PageRequest(
            page_number=page_number,
            page_size=page_size,
            sort_direction=direction,
            sort_properties=properties,
        ),
    )
    return _get_ledger(request).list_executions(criteria).to_dict()
