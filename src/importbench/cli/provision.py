"""``importbench provision`` — create the benchmark database and collection."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import typer
from rich.console import Console

from importbench._internal.errors import ConfigError, StoreError
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
from importbench.store.client import ArangoClient
from importbench.store.filler import CollectionFiller

if TYPE_CHECKING:
    from importbench._internal.config import ImportBenchConfig

console = Console(stderr=True)


async def _provision(
    config: ImportBenchConfig,
    database: str,
    collection: str,
    count: int,
    size: int,
) -> int:
    async with ArangoClient.from_config(config) as client:
        handle = await open_collection(client, database, collection, create=True)
        filler = CollectionFiller(
            handle,
            expected_size=size,
            expected_count=count,
            deadline=config.batch_deadline,
        )
        await filler.fill()
        return await handle.count()


def provision_cmd(
    database: str = DATABASE_OPTION,
    collection: str = COLLECTION_OPTION,
    endpoint: list[str] | None = ENDPOINT_OPTION,
    username: str | None = USERNAME_OPTION,
    password: str | None = PASSWORD_OPTION,
    count: int = typer.Option(
        0,
        "--count",
        min=0,
        help="Top the collection up to this many documents (0 = create only).",
    ),
    size: int = typer.Option(
        0,
        "--size",
        min=0,
        help="Total payload bytes of the collection, split evenly over --count.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
) -> None:
    """Create the database and collection if needed and show the document count.

    With --count and --size, also fill the collection up to --count documents.
    """
    setup_logging(level=logging.DEBUG if verbose else logging.INFO)

    try:
        config = build_config(endpoint, username, password)
        held = asyncio.run(_provision(config, database, collection, count, size))
    except (ConfigError, StoreError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    console.print(f"[green]Ready:[/green] {database}.{collection} holds {held} documents")
