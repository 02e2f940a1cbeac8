"""Sync commands for GitHub Jira Sync."""

import json
from typing import Annotated, Any

import typer
from rich.table import Table

from github_jira_sync.db import create_tables, dispose_engine
from github_jira_sync.schemas import InstallationSnapshot, SyncStatus, TaskType
from github_jira_sync.sync import ProgressStore, select_next_task
from github_jira_sync.worker import Worker

from .common import (
    InstallationIdArgument,
    JiraHostArgument,
    OutputFormat,
    OutputFormatOption,
    console,
    run_async_command,
)

app = typer.Typer(help="Backfill GitHub history into Jira")

_STATUS_STYLES = {
    SyncStatus.PENDING: "yellow",
    SyncStatus.ACTIVE: "cyan",
    SyncStatus.COMPLETE: "green",
    SyncStatus.FAILED: "red",
}


def snapshot_to_dict(snapshot: InstallationSnapshot) -> dict[str, Any]:
    """JSON view of an installation's progress."""
    selection = select_next_task(snapshot)
    next_task = selection.next_task
    return {
        "jira_host": snapshot.jira_host,
        "installation_id": snapshot.github_installation_id,
        "sync_status": snapshot.sync_status.value,
        "sync_warning": snapshot.sync_warning,
        "synced_repos": selection.synced_count,
        "total_repos": len(snapshot.repos),
        "next_task": (
            {"repository_id": next_task.repository_id, "task": next_task.task.value}
            if next_task
            else None
        ),
        "repos": snapshot.repo_sync_state_json()["repos"],
    }


def render_snapshot(snapshot: InstallationSnapshot) -> None:
    """Print an installation's progress as a table."""
    style = _STATUS_STYLES[snapshot.sync_status]
    console.print(
        f"[bold]{snapshot.jira_host}[/bold] installation {snapshot.github_installation_id}: "
        f"[{style}]{snapshot.sync_status.value}[/{style}] "
        f"({snapshot.repo_sync_state.count_synced()}/{len(snapshot.repos)} repositories synced)"
    )
    if snapshot.sync_warning:
        console.print(f"[yellow]Warning:[/yellow] {snapshot.sync_warning}")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Repository")
    for task in TaskType:
        table.add_column(task.value.capitalize())

    for repository_id, progress in snapshot.repo_sync_state.sorted_repos():
        name = progress.repository.full_name if progress.repository else repository_id
        cells = [
            "[green]complete[/green]" if progress.task(task).is_complete else "pending"
            for task in TaskType
        ]
        table.add_row(name, *cells)
    console.print(table)


async def _load_or_exit(
    store: ProgressStore, jira_host: str, installation_id: int
) -> InstallationSnapshot:
    snapshot = await store.load(jira_host, installation_id)
    if snapshot is None:
        console.print(
            f"[red]Error:[/red] No installation {installation_id} for {jira_host}"
        )
        raise typer.Exit(1)
    return snapshot


@app.command("start")
def sync_start(
    jira_host: JiraHostArgument,
    installation_id: InstallationIdArgument,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", help="Give up after this many seconds"),
    ] = None,
) -> None:
    """Discover an installation's repositories and backfill them into Jira.

    Runs the discovery and installation queues in-process until the
    installation is fully synced or has failed.

    Examples:
        ghjira sync start https://acme.atlassian.net 1234
        ghjira -v sync start https://acme.atlassian.net 1234 --timeout 600
    """

    async def _run() -> InstallationSnapshot:
        await create_tables()
        worker = Worker()
        await worker.start()
        try:
            await worker.request_sync(jira_host, installation_id)
            await worker.drain(timeout)
            return await _load_or_exit(worker.store, jira_host, installation_id)
        finally:
            await worker.stop()
            await dispose_engine()

    snapshot = run_async_command(_run(), error_prefix="Sync failed")
    render_snapshot(snapshot)
    if snapshot.sync_status == SyncStatus.FAILED:
        raise typer.Exit(1)


@app.command("status")
def sync_status(
    jira_host: JiraHostArgument,
    installation_id: InstallationIdArgument,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Show an installation's sync progress.

    Examples:
        ghjira sync status https://acme.atlassian.net 1234
        ghjira sync status https://acme.atlassian.net 1234 --format json
    """
    snapshot = run_async_command(
        _load_or_exit(ProgressStore(), jira_host, installation_id),
        error_prefix="Status failed",
    )
    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(snapshot_to_dict(snapshot)))
    else:
        render_snapshot(snapshot)


@app.command("reset")
def sync_reset(
    jira_host: JiraHostArgument,
    installation_id: InstallationIdArgument,
    force: Annotated[
        bool,
        typer.Option("--force", help="Reset even if the installation has not failed"),
    ] = False,
) -> None:
    """Set a FAILED installation back to PENDING.

    Progress is kept, so the next sync resumes where the failed one stopped.
    """

    async def _reset() -> InstallationSnapshot:
        store = ProgressStore()
        snapshot = await _load_or_exit(store, jira_host, installation_id)
        if snapshot.sync_status != SyncStatus.FAILED and not force:
            console.print(
                f"[yellow]Installation is {snapshot.sync_status.value}, not FAILED. "
                "Use --force to reset anyway.[/yellow]"
            )
            raise typer.Exit(1)
        snapshot = snapshot.with_sync_status(SyncStatus.PENDING).with_sync_warning(None)
        await store.save(snapshot)
        return snapshot

    snapshot = run_async_command(_reset(), error_prefix="Reset failed")
    console.print(
        f"[green]Installation {snapshot.github_installation_id} reset to PENDING[/green]"
    )


@app.command("list")
def sync_list(
    status: Annotated[
        SyncStatus | None,
        typer.Option("--status", "-s", help="Only installations in this status"),
    ] = None,
) -> None:
    """List installations and their sync status.

    Examples:
        ghjira sync list
        ghjira sync list --status FAILED
    """
    snapshots = run_async_command(
        ProgressStore().list_installations(status), error_prefix="List failed"
    )
    if not snapshots:
        console.print("[dim]No installations[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Jira host")
    table.add_column("Installation", justify="right")
    table.add_column("Status")
    table.add_column("Synced", justify="right")
    for snapshot in snapshots:
        style = _STATUS_STYLES[snapshot.sync_status]
        table.add_row(
            snapshot.jira_host,
            str(snapshot.github_installation_id),
            f"[{style}]{snapshot.sync_status.value}[/{style}]",
            f"{snapshot.repo_sync_state.count_synced()}/{len(snapshot.repos)}",
        )
    console.print(table)
