"""Error taxonomy for admission and query failures.

Admission errors (capacity, duplicate name) and input errors (bad URL, cron,
timezone, page parameters, date range) are functional and reported to the
caller. Probe failures are never raised; the monitor records them instead.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from cronprobe.tracing import current_trace_id

# Trailing C source location, e.g. "(_ssl.c:1006)"
_SOURCE_LOCATION = re.compile(r"\s*\(\w+\.c:\d+\)$")

PROBLEM_TYPE = "https://cronprobe.dev/errors/"


class ErrorType(str, Enum):
    FUNC = "func"
    TECH = "tech"


@dataclass
class InvalidParam:
    """One rejected input field."""

    name: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "reason": self.reason}


class MonitoringError(Exception):
    """Base class for every error surfaced to API callers."""

    code = "internal_server_error"
    title = "Internal error on the server"
    status_code = 500
    error_type = ErrorType.TECH

    def __init__(self, detail: str, invalid_params: list[InvalidParam] | None = None) -> None:
        self.detail = detail
        self.invalid_params = invalid_params or []
        super().__init__(detail)

    @property
    def is_tech(self) -> bool:
        return self.error_type == ErrorType.TECH

    def to_problem(self) -> dict[str, Any]:
        """Render as an RFC 7807 problem detail body."""
        problem: dict[str, Any] = {
            "type": PROBLEM_TYPE + self.code,
            "title": self.title,
            "status": self.status_code,
            "code": self.code,
            "detail": self.detail,
            "traceId": current_trace_id(),
        }
        if self.invalid_params:
            problem["invalidParams"] = [p.to_dict() for p in self.invalid_params]
        return problem


class InvalidInput(MonitoringError):
    code = "invalid_request_params"
    title = "Your request parameters didn't validate"
    status_code = 400
    error_type = ErrorType.FUNC

    def __init__(self, invalid_params: list[InvalidParam]) -> None:
        detail = "; ".join(f"{p.name} {p.reason}" for p in invalid_params)
        super().__init__(detail, invalid_params)

    @classmethod
    def single(cls, name: str, reason: str) -> "InvalidInput":
        return cls([InvalidParam(name, reason)])


class InvalidDateRange(MonitoringError):
    code = "invalid_date_range"
    title = "Invalid date range"
    status_code = 400
    error_type = ErrorType.FUNC

    def __init__(self) -> None:
        super().__init__("Invalid date range. From must be before to and to must be after from")


class JobAlreadyExists(MonitoringError):
    code = "job_already_exists"
    title = "Job already exists"
    status_code = 409
    error_type = ErrorType.FUNC

    def __init__(self, job_name: str) -> None:
        self.job_name = job_name
        super().__init__(f"Job with name {job_name} already exists")

    def to_problem(self) -> dict[str, Any]:
        problem = super().to_problem()
        problem["jobName"] = self.job_name
        return problem


class MaxJobsReached(MonitoringError):
    code = "max_jobs_reach"
    title = "Max jobs reached"
    status_code = 422
    error_type = ErrorType.FUNC

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"You have reach the system limit of {limit} jobs")


class SchedulerError(MonitoringError):
    """Raised by the scheduler itself; the registry never lets it surface."""


def internal_error(exc: BaseException) -> MonitoringError:
    """Wrap an unexpected exception without leaking its message."""
    err = MonitoringError(
        "Some internal server error happen. "
        f"Please provide the traceId {current_trace_id()} to the support team."
    )
    err.__cause__ = exc
    return err


def short_error_message(exc: BaseException) -> str:
    """Reduce an exception message to its most specific ": "-separated segment.

    Chained transport errors read like ``"All connection attempts failed: [Errno
    111] Connection refused"``; only the tail is useful in the ledger. A
    trailing C source location such as ``(_ssl.c:1006)`` is dropped first.
    """
    message = _SOURCE_LOCATION.sub("", " ".join(str(exc).split()))
    if not message:
        return type(exc).__name__
    tail = message.rsplit(": ", 1)[-1].strip()
    return tail or message
