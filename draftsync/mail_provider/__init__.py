"""Mail provider: Gmail mailbox client, mock implementation and payload parsing."""

from draftsync.mail_provider.gmail_models import MessagePart, RawMessage, ReplyPayload
from draftsync.mail_provider.gmail_real import GmailProvider, classify_error
from draftsync.mail_provider.mock import MockMailboxProvider
from draftsync.mail_provider.protocol import MailboxClient

__all__ = [
    "MessagePart",
    "RawMessage",
    "ReplyPayload",
    "MailboxClient",
    "GmailProvider",
    "MockMailboxProvider",
    "classify_error",
]
