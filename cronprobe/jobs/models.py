"""Job definition and its admission-time validation."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx
from croniter import CroniterBadDateError, croniter  # type: ignore[import-untyped]

from cronprobe.errors import InvalidInput, InvalidParam

DEFAULT_TIMEZONE = "UTC"


@dataclass(frozen=True)
class Job:
    """A named, cron-scheduled URL health check. Lives only in the scheduler."""

    name: str
    description: str
    url: str
    cron_expression: str
    timezone: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "url": self.url,
            "cronExpression": self.cron_expression,
            "timezone": self.timezone,
        }


# ── Field validators ─────────────────────────────────────────────────────────


DOM_FIELD, DOW_FIELD = 3, 5
_ANY = ("*", "?")


def _quartz_weekday(token: str) -> str:
    """Map a Quartz weekday number (1=SUN..7=SAT) to croniter's (0=SUN..6=SAT)."""
    if not token.isdigit():
        return token  # names (MON) and wildcards mean the same in both
    day = int(token)
    if not 1 <= day <= 7:
        raise ValueError(f"day-of-week {day} out of range 1-7")
    return str(day - 1)


def _convert_day_of_week(field_value: str) -> str:
    elements = []
    for element in field_value.split(","):
        base, slash, step = element.partition("/")
        day, hash_sign, nth = base.partition("#")
        if len(day) > 1 and day.endswith("L"):
            # Quartz "6L" (last Friday) is croniter "L5"
            day = "L" + _quartz_weekday(day[:-1])
        else:
            day = "-".join(_quartz_weekday(d) for d in day.split("-"))
        elements.append(day + hash_sign + nth + slash + step)
    return ",".join(elements)


def normalize_cron(expression: str) -> str:
    """Validate a Quartz-style cron expression and return its croniter form.

    Seconds come first; a seventh field restricts the year. ``?`` (no specific
    value) reads as ``*``, and day-of-week numbers shift from Quartz's 1=SUN
    to croniter's 0=SUN. Day-of-month and day-of-week cannot both be set.
    The expression must have at least one future fire time.
    """
    parts = expression.split()
    if len(parts) not in (6, 7):
        raise ValueError(f"expected 6 or 7 fields, got {len(parts)}")
    if parts[DOM_FIELD] not in _ANY and parts[DOW_FIELD] not in _ANY:
        raise ValueError("day-of-month and day-of-week cannot both be specified")

    parts = ["*" if p == "?" else p for p in parts]
    try:
        parts[DOW_FIELD] = _convert_day_of_week(parts[DOW_FIELD])
        normalized = " ".join(parts)
        croniter(
            normalized, datetime.now(timezone.utc), second_at_beginning=True,
        ).get_next(datetime)
    except (CroniterBadDateError, ValueError, KeyError, TypeError) as e:
        raise ValueError(f"Invalid cron expression '{expression}': {e}") from e
    return normalized


def resolve_timezone(name: str | None) -> ZoneInfo:
    """Resolve an IANA zone id; ``None`` means UTC."""
    try:
        return ZoneInfo(name or DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


def is_valid_url(url: str) -> bool:
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError):
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.host)


def validate_job(job: Job) -> Job:
    """Check every field and return the job with its timezone defaulted.

    Raises InvalidInput listing every failing field, before any state change.
    """
    problems: list[InvalidParam] = []

    for field_name in ("name", "description", "url"):
        if not (getattr(job, field_name) or "").strip():
            problems.append(InvalidParam(field_name, "must not be blank"))

    if job.url and job.url.strip() and not is_valid_url(job.url):
        problems.append(InvalidParam("url", "must be a valid URL"))

    try:
        normalize_cron(job.cron_expression or "")
    except ValueError:
        problems.append(InvalidParam("cronExpression", "not a valid cron expression"))

    if job.timezone is not None:
        try:
            resolve_timezone(job.timezone)
        except ValueError:
            problems.append(InvalidParam("timezone", "invalid timezone ID"))

    if problems:
        raise InvalidInput(problems)

    return replace(job, timezone=job.timezone or DEFAULT_TIMEZONE)
