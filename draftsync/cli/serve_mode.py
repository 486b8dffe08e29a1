"""Serve mode: run the HTTP API with the background poller."""

import asyncio
import sys

import typer
import uvicorn

from draftsync.api import create_app
from draftsync.auth import JwtIdentityVerifier
from draftsync.background import BackgroundSyncService
from draftsync.config import API_PORT, BACKGROUND_SYNC_ENABLED, BACKGROUND_SYNC_INTERVAL_SECONDS, JWT_SECRET
from draftsync.db import init_db
from draftsync.db.repositories import user_repo

from .shared import build_service, console, logger


async def _online_uids() -> list[str]:
    return await asyncio.to_thread(user_repo.list_online_uids)


def serve(
    port: int = typer.Option(API_PORT, "--port", "-p", help="Port for the API server"),
    host: str = typer.Option("0.0.0.0", "--host", "-h", help="Bind host"),
    mock: bool = typer.Option(False, "--mock", help="Use the JSON mock mailbox instead of Gmail"),
    background: bool = typer.Option(
        BACKGROUND_SYNC_ENABLED,
        "--background/--no-background",
        help="Periodically re-sync online users",
    ),
) -> None:
    """Start the mail API."""
    init_db()
    log = logger.bind(command="serve", port=port, mock=mock)
    log.info("serve.start")

    if not JWT_SECRET:
        console.print("[red]JWT_SECRET is not set; every request would be rejected.[/red]")
        log.warning("serve.missing_env", missing=["JWT_SECRET"])
        raise typer.Exit(1)

    service = build_service(mock=mock)
    poller = None
    if background:
        poller = BackgroundSyncService(
            sync_fn=service.sync_user_emails,
            list_online_users=_online_uids,
            interval=BACKGROUND_SYNC_INTERVAL_SECONDS,
        )
    app = create_app(service, JwtIdentityVerifier(), background=poller)

    console.print(f"[green]Starting API on http://{host}:{port}[/green]")
    console.print("[dim]Endpoints: /mail/*, PUT /auth/gmail/tokens, GET /health[/dim]")
    try:
        uvicorn.run(app, host=host, port=port, log_level="info", timeout_graceful_shutdown=15)
    except KeyboardInterrupt:
        console.print("\n[dim]Shutting down...[/dim]")
        sys.exit(0)
