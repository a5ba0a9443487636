"""Main Typer application — entry point for the ``importbench`` CLI."""

from __future__ import annotations

import typer

from importbench import __version__
from importbench.cli.batchimport import batchimport_cmd
from importbench.cli.provision import provision_cmd

app = typer.Typer(
    name="importbench",
    help="Benchmark concurrent batch imports into ArangoDB.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("batchimport", help="Write document batches from parallel workers.")(batchimport_cmd)
app.command("provision", help="Create the benchmark database and collection.")(provision_cmd)


def _version_callback(value: bool) -> None:
    """Print version and exit.

    Args:
        value: True if --version was passed.
    """
    if value:
        typer.echo(f"importbench {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """importbench — benchmark concurrent batch imports into ArangoDB."""
