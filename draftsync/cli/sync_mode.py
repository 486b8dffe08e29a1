"""Sync mode: one-shot inbox sync and thread inspection for a user."""

import asyncio

import typer
from rich.table import Table

from draftsync.db import init_db

from .shared import build_service, console, logger, print_result


def sync(
    uid: str = typer.Argument(..., help="User uid"),
    mock: bool = typer.Option(False, "--mock", help="Use the JSON mock mailbox instead of Gmail"),
) -> None:
    """Pull the latest inbox page for a user and reconcile it into the database."""
    init_db()
    log = logger.bind(command="sync", uid=uid, mock=mock)
    log.info("sync.start")
    service = build_service(mock=mock)
    result = asyncio.run(service.sync_user_emails(uid))
    if not result.success:
        print_result(result)
        raise typer.Exit(1)
    summary = result.data
    console.print(f"[green]Synced {summary.synced} new message(s)[/green], {summary.errors} error(s)")
    for err in summary.error_details:
        console.print(f"  [red]{err.remote_id}[/red]: {err.error}")


def threads(
    uid: str = typer.Argument(..., help="User uid"),
    limit: int = typer.Option(25, "--limit", "-n"),
) -> None:
    """List a user's threads, most recently updated first."""
    init_db()
    service = build_service(mock=True)
    result = asyncio.run(service.get_threads(uid, limit=limit))
    if not result.success:
        print_result(result)
        raise typer.Exit(1)
    table = Table("id", "subject", "updated", "latest from")
    for t in result.data:
        latest = t.latest_message
        table.add_row(t.id, t.subject, t.updated_at.isoformat(), latest.sender if latest else "")
    console.print(table)


def thread(
    uid: str = typer.Argument(..., help="User uid"),
    thread_id: str = typer.Argument(..., help="Local thread id"),
    mock: bool = typer.Option(False, "--mock", help="Use the JSON mock mailbox instead of Gmail"),
) -> None:
    """Refresh one thread from the mailbox and print it."""
    init_db()
    service = build_service(mock=mock)
    result = asyncio.run(service.get_thread(uid, thread_id))
    print_result(result)
    if not result.success and not result.is_partial:
        raise typer.Exit(1)
