"""CLI commands: one module per mode (serve, sync, account)."""

from typer import Typer

from draftsync.cli import account_mode, serve_mode, sync_mode
from draftsync.utils.tracing import init_tracing

init_tracing()

app = Typer(help="Gmail sync and AI reply drafting backend")


def register_commands() -> None:
    """Register all CLI commands on the global app."""
    app.command()(serve_mode.serve)
    app.command()(sync_mode.sync)
    app.command()(sync_mode.threads)
    app.command()(sync_mode.thread)
    app.command()(account_mode.connect)
    app.command(name="set-style-profile")(account_mode.set_style_profile)
    app.command(name="issue-token")(account_mode.issue_token)
    app.command(name="init-db")(account_mode.init_db)


register_commands()
