"""Ledger record types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ExecutionStatus(str, Enum):
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"

    @classmethod
    def from_string(cls, value: str) -> "ExecutionStatus":
        """Case-insensitive lookup; raises ValueError listing the valid values."""
        for member in cls:
            if member.value == value.strip().upper():
                return member
        raise ValueError(
            f"Invalid status value. Please provide one of {[m.value for m in cls]}"
        )


@dataclass
class ExecutionRecord:
    """Outcome of one firing of a job.

    ``id``, ``external_id`` and the audit fields are left empty by the caller
    and assigned by ``LedgerStore.append``.
    """

    job_name: str
    url: str
    status: ExecutionStatus
    response_time: int
    error_message: str | None = None
    id: int | None = None
    external_id: str | None = None
    created_date: datetime | None = None
    last_modified_date: datetime | None = None
    created_by: str | None = None
    trace_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """API representation (camelCase, ISO timestamps)."""
        return {
            "externalId": self.external_id,
            "jobName": self.job_name,
            "url": self.url,
            "status": self.status.value,
            "errorMessage": self.error_message,
            "responseTime": self.response_time,
            "createdDate": self.created_date.isoformat() if self.created_date else None,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ExecutionRecord":
        return cls(
            id=row["id"],
            external_id=row["external_id"],
            job_name=row["job_name"],
            url=row["url"],
            status=ExecutionStatus(row["status"]),
            response_time=row["response_time"],
            error_message=row.get("error_message"),
            created_date=datetime.fromisoformat(row["created_date"]),
            last_modified_date=datetime.fromisoformat(row["last_modified_date"]),
            created_by=row.get("created_by"),
            trace_id=row.get("trace_id"),
        )


@dataclass
class ExecutionPage:
    """One page of a ledger query plus the totals for the whole predicate."""

    records: list[ExecutionRecord] = field(default_factory=list)
    total_elements: int = 0
    total_pages: int = 1
    page_number: int = 0
    page_size: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "jobExecutionList": [r.to_dict() for r in self.records],
            "totalElements": self.total_elements,
            "totalPages": self.total_pages,
        }
