"""``importbench batchimport`` — run the parallel batch-import benchmark."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from importbench._internal.errors import ConfigError, RunFailedError, StoreError
from importbench._internal.logging import setup_logging
from importbench.cli.connection import (
    COLLECTION_OPTION,
    DATABASE_OPTION,
    ENDPOINT_OPTION,
    PASSWORD_OPTION,
    USERNAME_OPTION,
    build_config,
    open_collection,
)
from importbench.engine.coordinator import install_uvloop, run_batch_import
from importbench.store.client import ArangoClient

if TYPE_CHECKING:
    from importbench._internal.config import ImportBenchConfig
    from importbench.metrics.models import RunResult

console = Console(stderr=True)


async def _run(
    config: ImportBenchConfig,
    database: str,
    collection: str,
    *,
    create: bool,
    parallelism: int,
    number: int,
    start_delay_ms: int,
    payload_size: int,
    batch_size: int,
) -> RunResult:
    async with ArangoClient.from_config(config) as client:
        handle = await open_collection(client, database, collection, create=create)
        return await run_batch_import(
            handle,
            parallelism=parallelism,
            batches_per_worker=number,
            start_delay=start_delay_ms / 1000.0,
            payload_size=payload_size,
            batch_size=batch_size,
            deadline=config.batch_deadline,
        )


def _print_summary(result: RunResult) -> None:
    """Print per-worker and run-level tables.

    Args:
        result: Finalized run result.
    """
    workers = Table(
        title="Workers",
        show_header=True,
        header_style="bold cyan",
        expand=True,
    )
    workers.add_column("Worker", justify="right")
    workers.add_column("Status")
    workers.add_column("Batches", justify="right")
    workers.add_column("Docs/sec", justify="right")
    workers.add_column("Median", justify="right")
    workers.add_column("p90", justify="right")
    workers.add_column("p99", justify="right")
    workers.add_column("Average", justify="right")

    for outcome in result.workers:
        if outcome.stats is None:
            workers.add_row(
                str(outcome.worker_id),
                f"[red]{outcome.state.name}[/red]",
                str(outcome.batches_completed),
                "-",
                "-",
                "-",
                "-",
                "-",
            )
            continue
        stats = outcome.stats
        workers.add_row(
            str(outcome.worker_id),
            f"[green]{outcome.state.name}[/green]",
            str(outcome.batches_completed),
            f"{stats.documents_per_second:.1f}",
            f"{stats.latency_p50_ms:.1f}ms",
            f"{stats.latency_p90_ms:.1f}ms",
            f"{stats.latency_p99_ms:.1f}ms",
            f"{stats.latency_avg_ms:.1f}ms",
        )
    console.print(workers)

    table = Table(
        title="Batch Import Complete",
        show_header=True,
        header_style="bold green",
        expand=True,
    )
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Total Documents", str(result.total_documents))
    table.add_row("Documents Written", str(result.documents_written))
    table.add_row("Total Time", f"{result.wall_clock_elapsed:.2f}s")
    table.add_row("Documents/sec", f"{result.documents_per_second:.1f}")
    if result.latency is not None and result.latency.sample_count:
        table.add_row("Median Batch", f"{result.latency.latency_p50_ms:.1f}ms")
        table.add_row("p90 Batch", f"{result.latency.latency_p90_ms:.1f}ms")
        table.add_row("p99 Batch", f"{result.latency.latency_p99_ms:.1f}ms")
    table.add_row("Any Worker Failed", "yes" if result.any_worker_failed else "no")
    console.print(table)


def batchimport_cmd(
    parallelism: int = typer.Option(
        1,
        "--parallelism",
        help="Number of concurrent workers.",
        min=1,
    ),
    number: int = typer.Option(
        1_000_000,
        "--number",
        help="Number of batches to write per worker.",
        min=1,
    ),
    start_delay: int = typer.Option(
        5,
        "--start-delay",
        help="Delay in milliseconds before starting each worker.",
        min=0,
    ),
    payload_size: int = typer.Option(
        10,
        "--payload-size",
        help="Size in bytes of the payload in each document.",
        min=0,
    ),
    batch_size: int = typer.Option(
        10_000,
        "--batch-size",
        help="Number of documents in each import batch.",
        min=1,
    ),
    database: str = DATABASE_OPTION,
    collection: str = COLLECTION_OPTION,
    create: bool = typer.Option(
        False,
        "--create",
        help="Create the database and collection if they do not exist.",
    ),
    endpoint: list[str] | None = ENDPOINT_OPTION,
    username: str | None = USERNAME_OPTION,
    password: str | None = PASSWORD_OPTION,
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
) -> None:
    """Write batches of synthetic documents from parallel workers."""
    setup_logging(level=logging.DEBUG if verbose else logging.INFO)

    try:
        config = build_config(endpoint, username, password)
    except ConfigError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    console.print(
        Panel(
            f"[bold]Target:[/bold]       {config.endpoints[0]} {database}.{collection}\n"
            f"[bold]Parallelism:[/bold]  {parallelism}\n"
            f"[bold]Batches:[/bold]      {number} per worker\n"
            f"[bold]Batch size:[/bold]   {batch_size}\n"
            f"[bold]Payload:[/bold]      {payload_size} bytes\n"
            f"[bold]Start delay:[/bold]  {start_delay}ms",
            title="importbench",
            border_style="cyan",
        )
    )

    install_uvloop()
    try:
        result = asyncio.run(
            _run(
                config,
                database,
                collection,
                create=create,
                parallelism=parallelism,
                number=number,
                start_delay_ms=start_delay,
                payload_size=payload_size,
                batch_size=batch_size,
            )
        )
    except RunFailedError as exc:
        _print_summary(exc.result)
        console.print(f"[red]FAIL:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    except (ConfigError, StoreError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    _print_summary(result)
    console.print("[green]Batch import completed successfully.[/green]")
