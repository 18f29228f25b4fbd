"""URL monitor executor — one timed GET, exactly one ledger record.

A failed probe is a successful execution: non-success statuses and transport
errors are written as FAILED records, never raised to the scheduler.
"""

from __future__ import annotations

import logging
import time

import httpx

from cronprobe.errors import short_error_message
from cronprobe.ledger.models import ExecutionRecord, ExecutionStatus
from cronprobe.ledger.store import LedgerStore
from cronprobe.tracing import bind_trace_id

logger = logging.getLogger(__name__)


class UrlMonitor:
    """Probes a URL and appends the outcome to the ledger."""

    def __init__(
        self,
        ledger: LedgerStore,
        timeout_seconds: float | None = 30.0,
        follow_redirects: bool = True,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.ledger = ledger
        self.timeout_seconds = timeout_seconds
        self.follow_redirects = follow_redirects
        self._transport = transport

    def run(self, job_name: str, url: str) -> None:
        """Fire once for ``job_name``. Never raises."""
        bind_trace_id()
        record = self.probe(job_name, url)
        try:
            self.ledger.append(record)
        except Exception:
            logger.exception("Failed to record execution of %s (%s)", job_name, url)

    def probe(self, job_name: str, url: str) -> ExecutionRecord:
        """Issue the GET and build the (unsaved) record."""
        t0 = time.perf_counter()
        try:
            with httpx.Client(
                timeout=self.timeout_seconds,
                follow_redirects=self.follow_redirects,
                transport=self._transport,
            ) as client:
                resp = client.get(url)
            elapsed = _elapsed_ms(t0)
        except httpx.HTTPError as e:
            return _failed(job_name, url, _elapsed_ms(t0), short_error_message(e))
        except Exception as e:
            # Malformed URLs and the like surface as non-httpx exceptions
            logger.warning("Unexpected probe error for %s: %s", url, type(e).__name__)
            return _failed(job_name, url, _elapsed_ms(t0), short_error_message(e))

        if resp.is_error:
            message = f"{resp.status_code} {resp.reason_phrase} from GET {url}"
            return _failed(job_name, url, elapsed, message)

        logger.debug("Call to %s took %d ms", url, elapsed)
        return ExecutionRecord(
            job_name=job_name, url=url, status=ExecutionStatus.SUCCEEDED,
            response_time=elapsed,
        )


def _failed(job_name: str, url: str, elapsed: int, message: str) -> ExecutionRecord:
    logger.debug("Call to %s took %d ms with error %s", url, elapsed, message)
    return ExecutionRecord(
        job_name=job_name, url=url, status=ExecutionStatus.FAILED,
        response_time=elapsed, error_message=message,
    )


def _elapsed_ms(t0: float) -> int:
    return int(round((time.perf_counter() - t0) * 1000))
