"""Criteria query engine — optional filters become AND-ed SQL predicates.

Each optional criterion maps to at most one predicate; an all-absent criteria
object yields no predicates and matches every record. The same predicate list
feeds both the count query and the page query in ``LedgerStore``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, NamedTuple

from cronprobe.errors import InvalidDateRange, InvalidInput, InvalidParam
from cronprobe.ledger.models import ExecutionRecord, ExecutionStatus

logger = logging.getLogger(__name__)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


# Accepted sort property names (snake_case and camelCase) -> column name
SORTABLE_FIELDS: dict[str, str] = {}
for _f in fields(ExecutionRecord):
    SORTABLE_FIELDS[_f.name] = _f.name
    SORTABLE_FIELDS[_camel(_f.name)] = _f.name

DEFAULT_SORT_COLUMN = "created_date"


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"

    @classmethod
    def from_string(cls, value: str) -> "SortDirection":
        for member in cls:
            if member.value == value.strip().upper():
                return member
        raise ValueError(
            f"Invalid sort direction value. Please provide one of {[m.value for m in cls]}"
        )


@dataclass
class PageRequest:
    page_number: int | None = None
    page_size: int | None = None
    sort_direction: SortDirection | None = None
    sort_properties: list[str] = field(default_factory=list)


@dataclass
class ExecutionCriteria:
    """Optional ledger filters. ``from_``/``to`` bound ``created_date`` inclusively."""

    job_name: str | None = None
    url: str | None = None
    status: ExecutionStatus | None = None
    from_: datetime | None = None
    to: datetime | None = None
    page: PageRequest | None = None


class Predicate(NamedTuple):
    sql: str
    params: tuple[Any, ...]


@dataclass
class ResolvedPage:
    """A page request with defaults applied and sort keys mapped to columns."""

    page_number: int
    page_size: int
    order: list[tuple[str, SortDirection]]

    @property
    def offset(self) -> int:
        return self.page_number * self.page_size

    def order_by(self) -> str:
        keys = list(self.order)
        # Final tie-break so equal sort keys still page deterministically
        if not any(column == "id" for column, _ in keys):
            keys.append(("id", keys[-1][1] if keys else SortDirection.DESC))
        return "ORDER BY " + ", ".join(f"{col} {direction.value}" for col, direction in keys)

    def total_pages(self, total_elements: int) -> int:
        return max(1, math.ceil(total_elements / self.page_size))


def to_db_timestamp(value: datetime) -> str:
    """UTC ISO-8601 with fixed precision; lexical order equals time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


# ── Predicates ───────────────────────────────────────────────────────────────


def build_predicates(criteria: ExecutionCriteria) -> list[Predicate]:
    """Map each present criterion to one predicate."""
    predicates: list[Predicate] = []
    if criteria.job_name is not None:
        predicates.append(Predicate("job_name = ?", (criteria.job_name,)))
    if criteria.url is not None:
        predicates.append(Predicate("url = ?", (criteria.url,)))
    if criteria.status is not None:
        predicates.append(Predicate("status = ?", (ExecutionStatus(criteria.status).value,)))
    if criteria.from_ is not None:
        predicates.append(Predicate("created_date >= ?", (to_db_timestamp(criteria.from_),)))
    if criteria.to is not None:
        predicates.append(Predicate("created_date <= ?", (to_db_timestamp(criteria.to),)))
    return predicates


def where_clause(predicates: list[Predicate]) -> tuple[str, tuple[Any, ...]]:
    """Combine predicates with AND. Empty list -> empty clause."""
    if not predicates:
        return "", ()
    sql = "WHERE " + " AND ".join(p.sql for p in predicates)
    params: tuple[Any, ...] = ()
    for p in predicates:
        params += p.params
    return sql, params


# ── Paging / sorting ─────────────────────────────────────────────────────────


def resolve_page(page: PageRequest | None, max_page_size: int) -> ResolvedPage:
    """Apply defaults: page 0, ``max_page_size`` rows, ``created_date`` DESC.

    The sort only changes when both a direction and at least one known
    property are given; either one alone keeps the default order.
    Out-of-range numbers are clamped and unknown sort properties dropped;
    ``validate_page_request`` is what rejects them at the boundary.
    """
    page = page or PageRequest()

    number = max(page.page_number or 0, 0)
    size = page.page_size if page.page_size is not None else max_page_size
    size = min(max(size, 1), max_page_size)

    columns: list[str] = []
    for prop in page.sort_properties:
        column = SORTABLE_FIELDS.get(prop)
        if column is None:
            logger.warning("Ignoring unknown sort property: %s", prop)
            continue
        if column not in columns:
            columns.append(column)

    if columns and page.sort_direction is not None:
        direction = page.sort_direction
    else:
        columns = [DEFAULT_SORT_COLUMN]
        direction = SortDirection.DESC

    return ResolvedPage(
        page_number=number,
        page_size=size,
        order=[(column, direction) for column in columns],
    )


# ── Boundary validation ──────────────────────────────────────────────────────


def validate_page_request(page: PageRequest | None, max_page_size: int) -> None:
    """Reject negative page numbers, bad sizes and unknown sort properties."""
    if page is None:
        return

    problems: list[InvalidParam] = []
    if page.page_number is not None and page.page_number < 0:
        problems.append(InvalidParam("pageNumber", "must be greater than or equal to 0"))
    if page.page_size is not None:
        if page.page_size <= 0:
            problems.append(InvalidParam("pageSize", "must be greater than 0"))
        elif page.page_size > max_page_size:
            problems.append(
                InvalidParam("pageSize", f"page size max value allowed is {max_page_size}")
            )
    for prop in page.sort_properties:
        if prop not in SORTABLE_FIELDS:
            problems.append(InvalidParam(f"sortProperties.{prop}", "invalid field"))

    if problems:
        raise InvalidInput(problems)


def validate_criteria(criteria: ExecutionCriteria, max_page_size: int) -> None:
    if (
        criteria.from_ is not None
        and criteria.to is not None
        and to_db_timestamp(criteria.from_) > to_db_timestamp(criteria.to)
    ):
        raise InvalidDateRange()
    validate_page_request(criteria.page, max_page_size)
