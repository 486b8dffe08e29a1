"""Shared CLI helpers: console, logger, service wiring, result printing."""

import json
from pathlib import Path

from rich.console import Console

from draftsync.cache import create_reply_cache
from draftsync.config import MOCK_INBOX_PATH, OPENAI_API_KEY
from draftsync.drafting import PydanticAIDraftGenerator
from draftsync.mail_provider import GmailProvider, MailboxClient, MockMailboxProvider
from draftsync.models.results import ServiceResult
from draftsync.services.email_service import EmailService
from draftsync.utils.logger import get_logger

console = Console()
logger = get_logger("draftsync.cli")


def get_mailbox(mock: bool, inbox_path: Path | None = None) -> MailboxClient:
    if mock:
        return MockMailboxProvider(inbox_path=inbox_path or MOCK_INBOX_PATH)
    return GmailProvider()


def build_service(mock: bool = False, inbox_path: Path | None = None) -> EmailService:
    """EmailService wired to Gmail (or the JSON mock), the reply cache and, if configured, the draft model."""
    generator = PydanticAIDraftGenerator() if OPENAI_API_KEY else None
    if generator is None:
        logger.debug("cli.draft_generator.disabled", reason="OPENAI_API_KEY not set")
    return EmailService(
        mailbox=get_mailbox(mock, inbox_path),
        draft_generator=generator,
        reply_cache=create_reply_cache(),
    )


def print_result(result: ServiceResult) -> None:
    """Pretty-print a ServiceResult; failures in red."""
    payload = result.model_dump(mode="json")
    if result.success:
        console.print_json(json.dumps(payload, default=str))
        return
    style = "yellow" if result.is_partial else "red"
    console.print(f"[{style}]{result.error_code}: {result.error}[/{style}]")
    if result.data is not None:
        console.print_json(json.dumps(payload["data"], default=str))
