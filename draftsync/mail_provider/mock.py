"""Mock mailbox: in-memory messages, optionally loaded from inbox.json; sent mail is recorded."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from draftsync.mail_provider.gmail_models import RawMessage, ReplyPayload
from draftsync.mail_provider.parsing import parse_gmail_message
from draftsync.models.credentials import CredentialCheck, Credentials
from draftsync.utils.logger import get_logger

logger = get_logger("draftsync.mail_provider.mock")


class MockMailboxProvider:
    """MailboxClient backed by a list of RawMessage.

    inbox.json may hold either Gmail API messages (with ``payload``) or already
    normalized RawMessage dicts. ``fail_next`` queues an error for one operation;
    ``rotated_token`` makes validate_credentials report a refreshed access token.
    """

    def __init__(
        self,
        messages: Optional[list[RawMessage]] = None,
        inbox_path: Optional[Path] = None,
        rotated_token: Optional[str] = None,
        reject_credentials: bool = False,
    ):
        self.messages: list[RawMessage] = list(messages or [])
        self.sent: list[dict[str, Any]] = []
        self.calls: list[str] = []
        self.rotated_token = rotated_token
        self.reject_credentials = reject_credentials
        self._failures: dict[str, list[Exception]] = {}
        self._counter = 0
        if inbox_path is not None:
            self._load_inbox(inbox_path)

    def _load_inbox(self, inbox_path: Path) -> None:
        if not inbox_path.exists():
            logger.warning("mail_provider.inbox_missing", inbox_path=str(inbox_path))
            return
        with inbox_path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        items = data if isinstance(data, list) else data.get("messages", [])
        for item in items:
            if "payload" in item:
                self.messages.append(parse_gmail_message(item))
            else:
                self.messages.append(RawMessage.model_validate(item))
        logger.info("mail_provider.inbox_loaded", message_count=len(self.messages))

    def fail_next(self, operation: str, error: Exception) -> None:
        self._failures.setdefault(operation, []).append(error)

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        queued = self._failures.get(operation)
        if queued:
            raise queued.pop(0)

    async def list_recent_messages(self, credentials: Credentials, max_results: int = 25) -> list[RawMessage]:
        self._enter("list_recent_messages")
        return list(reversed(self.messages))[:max_results]

    async def list_thread_messages(self, credentials: Credentials, remote_thread_id: str) -> list[RawMessage]:
        self._enter("list_thread_messages")
        return [m for m in self.messages if m.thread_id == remote_thread_id]

    async def send_message(self, credentials: Credentials, to: str, subject: str, body: str) -> str:
        self._enter("send_message")
        remote_id = self._next_id()
        self.sent.append({"id": remote_id, "to": to, "subject": subject, "body": body})
        return remote_id

    async def send_reply(self, credentials: Credentials, reply: ReplyPayload) -> str:
        self._enter("send_reply")
        remote_id = self._next_id()
        self.sent.append({"id": remote_id, **reply.model_dump()})
        self.messages.append(
            RawMessage(
                id=remote_id,
                thread_id=reply.remote_thread_id,
                subject=reply.subject,
                from_="me",
                to=reply.to,
                date=datetime.now(timezone.utc).strftime("%a, %d %b %Y %H:%M:%S +0000"),
                body=reply.body,
                message_id_header=f"<{remote_id}@mock.local>",
                references=" ".join(reply.references) or None,
            )
        )
        logger.info("mail_provider.reply_sent", remote_id=remote_id, remote_thread_id=reply.remote_thread_id)
        return remote_id

    async def validate_credentials(self, credentials: Credentials) -> CredentialCheck:
        self._enter("validate_credentials")
        if self.reject_credentials or not credentials.is_connected:
            return CredentialCheck(valid=False)
        if self.rotated_token and self.rotated_token != credentials.access_token:
            return CredentialCheck(
                valid=True,
                refreshed_credentials=Credentials(
                    access_token=self.rotated_token,
                    refresh_token=credentials.refresh_token,
                ),
            )
        return CredentialCheck(valid=True)

    def _next_id(self) -> str:
        self._counter += 1
        return f"mock-sent-{self._counter}"
