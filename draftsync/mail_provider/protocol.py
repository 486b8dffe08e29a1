"""Mailbox client protocol (Gmail-like interface)."""

from typing import Protocol

from draftsync.mail_provider.gmail_models import RawMessage, ReplyPayload
from draftsync.models.credentials import CredentialCheck, Credentials


class MailboxClient(Protocol):
    """Remote mailbox operations. Failures raise RemoteServiceError with a RemoteErrorKind."""

    async def list_recent_messages(self, credentials: Credentials, max_results: int = 25) -> list[RawMessage]:
        """Most recent inbox messages, each resolved to full detail."""
        ...

    async def list_thread_messages(self, credentials: Credentials, remote_thread_id: str) -> list[RawMessage]:
        ...

    async def send_message(self, credentials: Credentials, to: str, subject: str, body: str) -> str:
        """Send a new message; returns the remote message id."""
        ...

    async def send_reply(self, credentials: Credentials, reply: ReplyPayload) -> str:
        """Send into an existing remote thread with In-Reply-To/References set; returns the remote message id."""
        ...

    async def validate_credentials(self, credentials: Credentials) -> CredentialCheck:
        """Cheap authenticated call. Rejected credentials give valid=False rather than raising."""
        ...
