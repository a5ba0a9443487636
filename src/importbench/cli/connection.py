"""Connection options shared by the ``importbench`` commands."""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING

import typer

from importbench._internal.config import load_config
from importbench.store.client import (
    ArangoClient,
    create_or_get_collection,
    create_or_get_database,
)

if TYPE_CHECKING:
    from importbench._internal.config import ImportBenchConfig
    from importbench.store.client import Collection

ENDPOINT_OPTION = typer.Option(
    None,
    "--endpoint",
    "-e",
    help="Store endpoint URL; repeat for several (default: $IMPORTBENCH_ENDPOINTS).",
)
USERNAME_OPTION = typer.Option(
    None,
    "--username",
    help="Username (default: $IMPORTBENCH_USERNAME or root).",
)
PASSWORD_OPTION = typer.Option(
    None,
    "--password",
    help="Password (default: $IMPORTBENCH_PASSWORD).",
)
DATABASE_OPTION = typer.Option("_system", "--database", help="Database name.")
COLLECTION_OPTION = typer.Option("batchimport", "--collection", help="Collection name.")


def build_config(
    endpoints: list[str] | None,
    username: str | None,
    password: str | None,
) -> ImportBenchConfig:
    """Load the environment configuration and apply CLI overrides.

    Raises:
        ConfigError: If the environment holds an invalid value.
    """
    config = load_config()
    overrides: dict[str, object] = {}
    if endpoints:
        overrides["endpoints"] = tuple(endpoints)
    if username is not None:
        overrides["username"] = username
    if password is not None:
        overrides["password"] = password
    return dataclasses.replace(config, **overrides) if overrides else config


async def open_collection(
    client: ArangoClient,
    database_name: str,
    collection_name: str,
    *,
    create: bool = False,
) -> Collection:
    """Open (or with ``create``, create-or-get) the target collection.

    Raises:
        NotFoundError: If the database or collection is missing and
            ``create`` is False.
    """
    if create:
        database = await create_or_get_database(client, database_name)
        return await create_or_get_collection(database, collection_name)
    database = await client.database(database_name)
    return await database.collection(collection_name)
