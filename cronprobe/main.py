"""Entry point for cronprobe."""

from __future__ import annotations

import argparse
import logging
import sys

import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from cronprobe.config import settings
from cronprobe.errors import MonitoringError
from cronprobe.ledger.criteria import ExecutionCriteria, PageRequest, SortDirection
from cronprobe.ledger.models import ExecutionStatus
from cronprobe.ledger.store import LedgerStore

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)


def run_server() -> None:
    """Start the FastAPI server."""
    console.print(Panel("Starting cronprobe API Server", style="bold green"))
    uvicorn.run(
        "cronprobe.api.server:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


def show_executions(args: argparse.Namespace) -> None:
    """Print one page of the execution ledger as a table."""
    ledger = LedgerStore(settings.db_path, max_page_size=settings.max_page_size)
    criteria = ExecutionCriteria(
        job_name=args.job_name,
        url=args.url,
        status=ExecutionStatus.from_string(args.status) if args.status else None,
        page=PageRequest(
            page_number=args.page,
            page_size=args.page_size,
            sort_direction=SortDirection.from_string(args.direction) if args.direction else None,
            sort_properties=args.sort or [],
        ),
    )
    result = ledger.list_executions(criteria)

    table = Table(title=f"Executions (page {result.page_number + 1}/{result.total_pages})")
    table.add_column("Created")
    table.add_column("Job")
    table.add_column("URL")
    table.add_column("Status")
    table.add_column("ms", justify="right")
    table.add_column("Error")
    for r in result.records:
        style = "green" if r.status == ExecutionStatus.SUCCEEDED else "red"
        table.add_row(
            r.created_date.isoformat() if r.created_date else "",
            r.job_name,
            r.url,
            f"[{style}]{r.status.value}[/{style}]",
            str(r.response_time),
            r.error_message or "",
        )
    console.print(table)
    console.print(f"[dim]{result.total_elements} matching executions[/dim]")


def main() -> None:
    parser = argparse.ArgumentParser(description="cronprobe URL monitoring service")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Start the API server")

    ex = sub.add_parser("executions", help="List recorded executions")
    ex.add_argument("--job-name")
    ex.add_argument("--url")
    ex.add_argument("--status", help="SUCCEEDED or FAILED")
    ex.add_argument("--page", type=int, default=0)
    ex.add_argument("--page-size", type=int, default=20)
    ex.add_argument("--sort", action="append", help="Sort property (repeatable; applies with --direction)")
    ex.add_argument("--direction", help="ASC or DESC")

    args = parser.parse_args()

    if args.command == "serve":
        run_server()
    elif args.command == "executions":
        try:
            show_executions(args)
        except (MonitoringError, ValueError) as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            sys.exit(2)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
