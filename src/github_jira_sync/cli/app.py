"""Main CLI application for GitHub Jira Sync."""

from pathlib import Path
from typing import Annotated

import typer
from prometheus_client import start_http_server

from github_jira_sync import __version__
from github_jira_sync.cli import sync as sync_cmd
from github_jira_sync.config import get_settings
from github_jira_sync.db import create_tables, dispose_engine
from github_jira_sync.logging import setup_logging
from github_jira_sync.worker import Worker

from .common import console, run_async_command

app = typer.Typer(
    name="ghjira",
    help="Backfill GitHub pull requests, branches and commits into Jira.",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"ghjira version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-error output (WARNING level).",
        ),
    ] = False,
) -> None:
    """GitHub Jira Sync - backfill repository history into Jira."""
    settings = get_settings()
    log_config = settings.logging

    # Setup logging with CLI overrides
    setup_logging(
        level=settings.log_level,
        verbose=verbose,
        quiet=quiet,
        log_file=Path(log_config.log_file) if log_config.log_file else None,
        rotation=log_config.rotation,
        retention=log_config.retention,
        serialize=log_config.serialize,
    )


@app.command()
def worker(
    metrics_port: Annotated[
        int | None,
        typer.Option("--metrics-port", help="Serve Prometheus metrics on this port"),
    ] = None,
) -> None:
    """Run the discovery and installation queues until interrupted."""

    async def _run() -> None:
        await create_tables()
        sync_worker = Worker()
        if metrics_port is not None:
            start_http_server(metrics_port, registry=sync_worker.metrics.registry)
            console.print(f"Serving metrics on :{metrics_port}")
        try:
            await sync_worker.run_forever()
        finally:
            await dispose_engine()

    try:
        run_async_command(_run(), error_prefix="Worker failed")
    except KeyboardInterrupt:
        console.print("[yellow]Worker stopped[/yellow]")


# Register subcommands
app.add_typer(sync_cmd.app, name="sync")


if __name__ == "__main__":
    app()
