"""Execution ledger storage — append-only SQLite table of probe outcomes.

Connections are opened per call (WAL mode) so scheduler threads appending
records and request threads querying them never share a connection.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

from cronprobe.ledger.criteria import (
    ExecutionCriteria,
    build_predicates,
    resolve_page,
    to_db_timestamp,
    validate_criteria,
    where_clause,
)
from cronprobe.ledger.models import ExecutionPage, ExecutionRecord
from cronprobe.tracing import current_trace_id

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGE_SIZE = 100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LedgerStore:
    """SQLite-backed, append-only store of ExecutionRecords."""

    def __init__(
        self,
        db_path: Path | str,
        max_page_size: int = DEFAULT_MAX_PAGE_SIZE,
        created_by: str = "cronprobe",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self.max_page_size = max_page_size
        self._created_by = created_by
        self._clock = clock
        self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self._db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS job_execution (
                    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
                    external_id        TEXT NOT NULL UNIQUE,
                    job_name           TEXT NOT NULL,
                    url                TEXT NOT NULL,
                    status             TEXT NOT NULL,
                    response_time      INTEGER NOT NULL,
                    error_message      TEXT,
                    created_date       TEXT NOT NULL,
                    last_modified_date TEXT NOT NULL,
                    created_by         TEXT,
                    trace_id           TEXT
                );

                CREATE INDEX IF NOT EXISTS idx_execution_created
                    ON job_execution (created_date DESC);

                CREATE INDEX IF NOT EXISTS idx_execution_job
                    ON job_execution (job_name, created_date DESC);
            """)

    # ── Writes ────────────────────────────────────────────────────────────

    def append(self, record: ExecutionRecord) -> ExecutionRecord:
        """Persist a record and return a copy carrying its id and audit fields."""
        created = to_db_timestamp(self._clock())
        stored = replace(
            record,
            external_id=str(uuid.uuid4()),
            created_date=datetime.fromisoformat(created),
            last_modified_date=datetime.fromisoformat(created),
            created_by=self._created_by,
            trace_id=record.trace_id or current_trace_id(),
        )
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO job_execution "
                "(external_id, job_name, url, status, response_time, error_message, "
                " created_date, last_modified_date, created_by, trace_id) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    stored.external_id, stored.job_name, stored.url, stored.status.value,
                    stored.response_time, stored.error_message, created, created,
                    stored.created_by, stored.trace_id,
                ),
            )
            stored.id = cursor.lastrowid
        return stored

    # ── Reads ─────────────────────────────────────────────────────────────

    def count(self, criteria: ExecutionCriteria | None = None) -> int:
        """Number of records matching the criteria filters."""
        where, params = where_clause(build_predicates(criteria or ExecutionCriteria()))
        with self._connect() as conn:
            row = conn.execute(f"SELECT COUNT(*) FROM job_execution {where}", params).fetchone()
        return int(row[0])

    def query(self, criteria: ExecutionCriteria | None = None) -> ExecutionPage:
        """One sorted page of matching records plus totals for the same filters."""
        criteria = criteria or ExecutionCriteria()
        page = resolve_page(criteria.page, self.max_page_size)
        where, params = where_clause(build_predicates(criteria))

        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM job_execution {where} {page.order_by()} LIMIT ? OFFSET ?",
                params + (page.page_size, page.offset),
            ).fetchall()
            total = conn.execute(
                f"SELECT COUNT(*) FROM job_execution {where}", params,
            ).fetchone()[0]

        return ExecutionPage(
            records=[ExecutionRecord.from_row(dict(r)) for r in rows],
            total_elements=int(total),
            total_pages=page.total_pages(int(total)),
            page_number=page.page_number,
            page_size=page.page_size,
        )

    def list_executions(self, criteria: ExecutionCriteria) -> ExecutionPage:
        """Boundary entry point: validate the criteria, then query.

        Raises:
            InvalidDateRange: ``from_`` is after ``to``.
            InvalidInput: Bad page number/size or unknown sort property.
        """
        validate_criteria(criteria, self.max_page_size)
        return self.query(criteria)

    def get(self, external_id: str) -> ExecutionRecord | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM job_execution WHERE external_id = ?", (external_id,),
            ).fetchone()
        return ExecutionRecord.from_row(dict(row)) if row else None
