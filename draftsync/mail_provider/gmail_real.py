"""Gmail mailbox client (google-api-python-client)."""

import asyncio
import base64
from email.message import EmailMessage as MimeMessage
from typing import Any, Callable, Optional

from google.auth.exceptions import RefreshError, TransportError
from google.oauth2.credentials import Credentials as GoogleCredentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from draftsync.config import GMAIL_SCOPES, GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_TOKEN_URI
from draftsync.errors import RemoteErrorKind, RemoteServiceError
from draftsync.mail_provider.gmail_models import RawMessage, ReplyPayload
from draftsync.mail_provider.parsing import parse_gmail_message
from draftsync.models.credentials import CredentialCheck, Credentials
from draftsync.utils.logger import get_logger

logger = get_logger("draftsync.mail_provider.gmail")

_RATE_LIMIT_REASONS = ("rateLimitExceeded", "userRateLimitExceeded", "quotaExceeded")


def _http_status(exc: HttpError) -> Optional[int]:
    status = getattr(exc, "status_code", None) or getattr(getattr(exc, "resp", None), "status", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def classify_error(exc: BaseException) -> RemoteErrorKind:
    """Map a google client exception to a RemoteErrorKind."""
    if isinstance(exc, HttpError):
        status = _http_status(exc)
        if status == 401:
            return RemoteErrorKind.AUTH_EXPIRED
        if status == 429:
            return RemoteErrorKind.RATE_LIMITED
        if status == 403:
            content = exc.content.decode("utf-8", errors="replace") if isinstance(exc.content, bytes) else str(exc.content)
            if any(reason in content for reason in _RATE_LIMIT_REASONS):
                return RemoteErrorKind.RATE_LIMITED
            return RemoteErrorKind.AUTH_EXPIRED
        return RemoteErrorKind.OTHER
    if isinstance(exc, RefreshError):
        return RemoteErrorKind.AUTH_EXPIRED
    if isinstance(exc, (TransportError, OSError)):
        return RemoteErrorKind.TRANSPORT
    return RemoteErrorKind.OTHER


def _to_remote_error(exc: Exception, operation: str) -> RemoteServiceError:
    kind = classify_error(exc)
    status = _http_status(exc) if isinstance(exc, HttpError) else None
    return RemoteServiceError(f"{operation} failed: {exc}", kind=kind, status=status)


class GmailProvider:
    """Gmail client. Each call builds its own google Credentials and service object.

    google-auth refreshes the access token transparently when a refresh token and
    client secrets are present; the rotated token is read back from the credentials
    object after the call.
    """

    def __init__(
        self,
        client_id: str = GOOGLE_CLIENT_ID,
        client_secret: str = GOOGLE_CLIENT_SECRET,
        token_uri: str = GOOGLE_TOKEN_URI,
        scopes: list[str] | None = None,
    ):
        self._client_id = client_id
        self._client_secret = client_secret
        self._token_uri = token_uri
        self._scopes = scopes or GMAIL_SCOPES

    def _google_credentials(self, credentials: Credentials) -> GoogleCredentials:
        return GoogleCredentials(
            token=credentials.access_token,
            refresh_token=credentials.refresh_token,
            token_uri=self._token_uri,
            client_id=self._client_id or None,
            client_secret=self._client_secret or None,
            scopes=self._scopes,
        )

    def _service(self, google_creds: GoogleCredentials):
        return build("gmail", "v1", credentials=google_creds, cache_discovery=False)

    async def _call(self, operation: str, credentials: Credentials, fn: Callable[[Any], Any]) -> Any:
        """Run fn(service) in a worker thread; translate failures to RemoteServiceError."""

        def run() -> Any:
            google_creds = self._google_credentials(credentials)
            return fn(self._service(google_creds))

        try:
            return await asyncio.to_thread(run)
        except (HttpError, RefreshError, TransportError, OSError) as e:
            err = _to_remote_error(e, operation)
            logger.warning("gmail.call.failed", operation=operation, kind=err.kind.value, status=err.status)
            raise err from e

    async def list_recent_messages(self, credentials: Credentials, max_results: int = 25) -> list[RawMessage]:
        """List the inbox, then fetch each message in full.

        A failed listing raises. A failed detail fetch (e.g. a message deleted in
        between) is logged and skipped, unless it is an auth failure.
        """

        def fetch(service) -> list[dict[str, Any]]:
            listing = service.users().messages().list(userId="me", maxResults=max_results, q="in:inbox").execute()
            details = []
            for ref in listing.get("messages", []) or []:
                try:
                    details.append(
                        service.users().messages().get(userId="me", id=ref["id"], format="full").execute()
                    )
                except HttpError as e:
                    if classify_error(e) is RemoteErrorKind.AUTH_EXPIRED:
                        raise
                    logger.warning("gmail.message.fetch_failed", message_id=ref["id"], status=_http_status(e))
            return details

        raw = await self._call("list_recent_messages", credentials, fetch)
        messages = [parse_gmail_message(item) for item in raw]
        logger.info("gmail.list_recent_messages", count=len(messages))
        return messages

    async def list_thread_messages(self, credentials: Credentials, remote_thread_id: str) -> list[RawMessage]:
        def fetch(service) -> dict[str, Any]:
            return service.users().threads().get(userId="me", id=remote_thread_id, format="full").execute()

        data = await self._call("list_thread_messages", credentials, fetch)
        messages = [parse_gmail_message(item) for item in data.get("messages", []) or []]
        logger.info("gmail.list_thread_messages", remote_thread_id=remote_thread_id, count=len(messages))
        return messages

    async def send_message(self, credentials: Credentials, to: str, subject: str, body: str) -> str:
        mime = MimeMessage()
        mime["To"] = to
        mime["Subject"] = subject
        mime.set_content(body)
        return await self._send("send_message", credentials, {"raw": _encode_mime(mime)})

    async def send_reply(self, credentials: Credentials, reply: ReplyPayload) -> str:
        mime = MimeMessage()
        mime["To"] = reply.to
        if reply.cc:
            mime["Cc"] = reply.cc
        if reply.bcc:
            mime["Bcc"] = reply.bcc
        mime["Subject"] = reply.subject
        if reply.in_reply_to:
            mime["In-Reply-To"] = reply.in_reply_to
        if reply.references:
            mime["References"] = " ".join(reply.references)
        mime.set_content(reply.body)
        return await self._send(
            "send_reply",
            credentials,
            {"raw": _encode_mime(mime), "threadId": reply.remote_thread_id},
        )

    async def _send(self, operation: str, credentials: Credentials, request_body: dict[str, Any]) -> str:
        def send(service) -> dict[str, Any]:
            return service.users().messages().send(userId="me", body=request_body).execute()

        sent = await self._call(operation, credentials, send)
        remote_id = sent.get("id", "")
        logger.info("gmail.sent", operation=operation, remote_id=remote_id, thread_id=sent.get("threadId"))
        return remote_id

    async def validate_credentials(self, credentials: Credentials) -> CredentialCheck:
        """users.getProfile; reports a rotated access token as refreshed credentials."""

        def probe() -> Optional[str]:
            google_creds = self._google_credentials(credentials)
            self._service(google_creds).users().getProfile(userId="me").execute()
            return google_creds.token

        try:
            token = await asyncio.to_thread(probe)
        except (HttpError, RefreshError, TransportError, OSError) as e:
            kind = classify_error(e)
            if kind is RemoteErrorKind.AUTH_EXPIRED:
                logger.info("gmail.validate_credentials.rejected", reason=type(e).__name__)
                return CredentialCheck(valid=False)
            raise _to_remote_error(e, "validate_credentials") from e

        if token and token != credentials.access_token:
            logger.info("gmail.validate_credentials.refreshed")
            return CredentialCheck(
                valid=True,
                refreshed_credentials=Credentials(access_token=token, refresh_token=credentials.refresh_token),
            )
        return CredentialCheck(valid=True)


def _encode_mime(mime: MimeMessage) -> str:
    return base64.urlsafe_b64encode(mime.as_bytes()).decode("ascii")
