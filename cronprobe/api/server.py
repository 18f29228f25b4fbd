"""FastAPI server for job admission and the execution ledger."""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from cronprobe import __version__
from cronprobe.api.execution_routes import execution_router
from cronprobe.api.job_routes import job_router
from cronprobe.config import Settings, settings as default_settings
from cronprobe.errors import InvalidInput, InvalidParam, MonitoringError, internal_error
from cronprobe.jobs.registry import JobRegistry
from cronprobe.jobs.scheduler import CronScheduler
from cronprobe.ledger.store import LedgerStore
from cronprobe.monitor.executor import UrlMonitor
from cronprobe.tracing import bind_trace_id

logger = logging.getLogger(__name__)

TRACE_HEADER = "X-Trace-Id"


# ── Request logging ──────────────────────────────────────────────────────────


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Bind a trace id per request and log method, path, status and latency."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        trace_id = bind_trace_id(request.headers.get(TRACE_HEADER))
        t0 = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s -> %d (%.1fms) trace=%s",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - t0) * 1000,
            trace_id,
        )
        response.headers[TRACE_HEADER] = trace_id
        return response


# ── Error handlers ───────────────────────────────────────────────────────────


def _problem_response(error: MonitoringError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.to_problem())


async def _handle_monitoring_error(request: Request, exc: MonitoringError) -> JSONResponse:
    if exc.is_tech:
        logger.error("Controlled error: %s", exc.detail)
    return _problem_response(exc)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
    params = [
        InvalidParam(name=str(err["loc"][-1]) if err.get("loc") else "request", reason=err["msg"])
        for err in exc.errors()
    ]
    return _problem_response(InvalidInput(params))


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error on %s %s", request.method, request.url.path)
    return _problem_response(internal_error(exc))


# ── App factory ──────────────────────────────────────────────────────────────


def create_app(app_settings: Settings | None = None) -> FastAPI:
    cfg = app_settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Wire ledger, monitor, scheduler and registry; start firing."""
        ledger = LedgerStore(
            cfg.db_path,
            max_page_size=cfg.max_page_size,
            created_by=cfg.created_by,
        )
        monitor = UrlMonitor(
            ledger,
            timeout_seconds=cfg.probe_timeout_seconds,
            follow_redirects=cfg.probe_follow_redirects,
        )
        scheduler = CronScheduler(max_workers=cfg.worker_count)
        registry = JobRegistry(scheduler, monitor, max_jobs_allowed=cfg.max_jobs_allowed)

        app.state.ledger = ledger
        app.state.monitor = monitor
        app.state.scheduler = scheduler
        app.state.job_registry = registry

        scheduler.start()
        logger.info(
            "cronprobe ready: ledger=%s max_jobs=%d workers=%d",
            cfg.db_path, cfg.max_jobs_allowed, cfg.worker_count,
        )

        yield

        scheduler.shutdown(wait=False)

    app = FastAPI(
        title="cronprobe - URL Monitoring Service",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLogMiddleware)
    app.add_exception_handler(MonitoringError, _handle_monitoring_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _handle_unexpected)

    app.include_router(job_router, prefix="/api")
    app.include_router(execution_router, prefix="/api")

    @app.get("/api/health")
    def health(request: Request) -> dict[str, Any]:
        return {
            "status": "ok",
            "jobs": request.app.state.job_registry.count(),
            "scheduler": "running" if request.app.state.scheduler.is_running() else "stopped",
        }

    return app


app = create_app()
