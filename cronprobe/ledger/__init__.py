"""Execution ledger — append-only SQLite store and its criteria query engine."""

from .criteria import ExecutionCriteria, PageRequest, SortDirection
from .models import ExecutionPage, ExecutionRecord, ExecutionStatus
from .store import LedgerStore
