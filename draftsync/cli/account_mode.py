"""Account commands: connect a mailbox, set a style profile, issue a dev token, create tables."""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer

from draftsync.auth import JwtIdentityVerifier
from draftsync.db import init_db as _init_db
from draftsync.db.repositories import user_repo
from draftsync.models.credentials import Credentials

from .shared import build_service, console, logger, print_result


def connect(
    uid: str = typer.Argument(..., help="User uid"),
    email: str = typer.Option(..., "--email", "-e"),
    access_token: Optional[str] = typer.Option(None, "--access-token"),
    refresh_token: Optional[str] = typer.Option(None, "--refresh-token"),
    name: Optional[str] = typer.Option(None, "--name"),
) -> None:
    """Create the user if needed and store Gmail tokens."""
    _init_db()
    service = build_service(mock=True)
    credentials = Credentials(access_token=access_token, refresh_token=refresh_token)
    result = asyncio.run(service.connect_mailbox(uid, email, credentials, name=name))
    print_result(result)
    if not result.success:
        raise typer.Exit(1)


def set_style_profile(
    uid: str = typer.Argument(..., help="User uid"),
    profile_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON style profile"),
) -> None:
    """Store a writing style profile used for draft generation."""
    _init_db()
    user = user_repo.find_by_uid(uid)
    if user is None:
        console.print(f"[red]Unknown user: {uid}[/red]")
        raise typer.Exit(1)
    with profile_path.open("r", encoding="utf-8") as f:
        profile = json.load(f)
    user_repo.store_style_profile(user.id, profile)
    logger.info("cli.style_profile.stored", uid=uid, keys=sorted(profile))
    console.print(f"[green]Style profile stored for {uid}[/green]")


def issue_token(
    uid: str = typer.Argument(..., help="User uid"),
    email: Optional[str] = typer.Option(None, "--email", "-e"),
) -> None:
    """Print a bearer token for local API testing (signed with JWT_SECRET)."""
    console.print(JwtIdentityVerifier().issue(uid, email=email))


def init_db() -> None:
    """Create database tables."""
    _init_db()
    console.print("[green]Database initialized[/green]")
