"""EmailService: service-level entry points combining credentials, remote fetch, reconciliation and drafting.

Every public method returns a ServiceResult and never raises. Storage and
reconciliation are synchronous and run in worker threads.
"""

import asyncio
from types import ModuleType
from typing import Any, Awaitable, Callable, Optional

from draftsync.auth.token_validator import TokenValidator
from draftsync.cache import InMemoryReplyCache, ReplyCache
from draftsync.config import SYNC_PAGE_SIZE, THREAD_LIST_LIMIT
from draftsync.db.repositories import user_repo
from draftsync.db.repositories.email_repo import EmailRepository
from draftsync.drafting.generator import DraftGenerator
from draftsync.errors import (
    INTERNAL_ERROR,
    PARTIAL_UPSERT,
    AppError,
    AuthenticationError,
    NotFoundError,
    RemoteServiceError,
    ValidationError,
)
from draftsync.mail_provider.gmail_models import RawMessage, ReplyPayload
from draftsync.mail_provider.parsing import (
    build_references,
    extract_email_address,
    parse_message_date,
    reply_subject,
)
from draftsync.mail_provider.protocol import MailboxClient
from draftsync.models.credentials import CredentialPolicy, Credentials
from draftsync.models.email import DraftStatus, EmailThread, OnboardingStatus, UserProfile
from draftsync.models.results import DraftContext, ServiceResult, SyncSummary, ThreadPayload
from draftsync.sync.reconciler import Reconciler
from draftsync.utils.logger import get_logger, log_context
from draftsync.utils.tracing import get_tracer

logger = get_logger("draftsync.services.email_service")

UserAction = Callable[[UserProfile], Awaitable[ServiceResult]]


class EmailService:
    def __init__(
        self,
        mailbox: MailboxClient,
        repository: Optional[EmailRepository] = None,
        users: ModuleType = user_repo,
        validator: Optional[TokenValidator] = None,
        reconciler: Optional[Reconciler] = None,
        draft_generator: Optional[DraftGenerator] = None,
        reply_cache: Optional[ReplyCache] = None,
    ):
        self._mailbox = mailbox
        self._repo = repository or EmailRepository()
        self._users = users
        self._validator = validator or TokenValidator(mailbox, users)
        self._reconciler = reconciler or Reconciler(self._repo)
        self._generator = draft_generator
        self._cache = reply_cache or InMemoryReplyCache()
        self._tracer = get_tracer()

    # Plumbing

    async def _execute(self, operation: str, uid: str, action: Callable[[], Awaitable[ServiceResult]]) -> ServiceResult:
        with self._tracer.start_as_current_span(f"email_service.{operation}") as span, log_context(
            uid=uid, operation=operation
        ):
            span.set_attribute("user.uid", uid)
            try:
                result = await action()
            except AppError as e:
                logger.warning(
                    "email_service.failed",
                    operation=operation,
                    uid=uid,
                    code=e.code,
                    error=e.message,
                )
                span.set_attribute("error.code", e.code)
                return ServiceResult.fail(e.message, e.code)
            except Exception:
                logger.exception("email_service.unexpected_error", operation=operation, uid=uid)
                span.set_attribute("error.code", INTERNAL_ERROR)
                return ServiceResult.fail("Internal server error", INTERNAL_ERROR)
            span.set_attribute("result.success", result.success)
            return result

    async def _execute_with_user(self, operation: str, uid: str, action: UserAction) -> ServiceResult:
        async def run() -> ServiceResult:
            user = await asyncio.to_thread(self._users.find_by_uid, uid)
            if user is None:
                raise NotFoundError("User not found")
            return await action(user)

        return await self._execute(operation, uid, run)

    async def _require_credentials(self, user: UserProfile, policy: CredentialPolicy) -> Credentials:
        credentials = await self._validator.get_credentials(user.id, policy)
        if credentials is None:
            raise AuthenticationError("Gmail tokens not found")
        return credentials

    async def _owned_thread(self, user: UserProfile, thread_id: str) -> EmailThread:
        if not thread_id:
            raise ValidationError("Thread id is required")
        thread = await asyncio.to_thread(self._repo.find_thread_by_id, thread_id)
        if thread is None or thread.user_id != user.id:
            raise NotFoundError("Thread not found")
        return thread

    async def _reconcile(
        self,
        user: UserProfile,
        raw_messages: list[RawMessage],
        current_thread: Optional[EmailThread] = None,
    ):
        inputs = await asyncio.to_thread(
            self._reconciler.build_upsert_inputs, user.id, raw_messages, current_thread
        )
        return await asyncio.to_thread(self._reconciler.upsert_messages_batch, inputs)

    # Sync

    async def sync_user_emails(self, uid: str) -> ServiceResult[SyncSummary]:
        """Pull the most recent inbox page and reconcile it.

        Requires an access token. An expired-auth failure triggers one
        validate/refresh cycle and one retry.
        """

        async def action(user: UserProfile) -> ServiceResult:
            credentials = await self._require_credentials(user, CredentialPolicy.ACCESS)
            try:
                raw = await self._mailbox.list_recent_messages(credentials, SYNC_PAGE_SIZE)
            except RemoteServiceError as e:
                if not e.is_auth_error:
                    raise
                logger.info("email_service.sync.auth_retry", uid=uid)
                refreshed = await self._validator.ensure_valid_credentials(user.id, credentials)
                if refreshed is None:
                    raise AuthenticationError("Gmail authorization expired; reconnect the mailbox") from e
                raw = await self._mailbox.list_recent_messages(refreshed, SYNC_PAGE_SIZE)

            batch = await self._reconcile(user, raw)
            summary = SyncSummary(
                synced=batch.created_count,
                errors=len(batch.errors),
                error_details=batch.errors,
            )
            logger.info(
                "email_service.sync.complete",
                uid=uid,
                fetched=len(raw),
                synced=summary.synced,
                errors=summary.errors,
            )
            return ServiceResult.ok(summary)

        return await self._execute_with_user("sync_user_emails", uid, action)

    # Threads

    async def get_threads(self, uid: str, limit: int = THREAD_LIST_LIMIT) -> ServiceResult[list[EmailThread]]:
        async def action(user: UserProfile) -> ServiceResult:
            threads = await asyncio.to_thread(self._repo.find_threads_by_user, user.id, limit)
            return ServiceResult.ok(threads)

        return await self._execute_with_user("get_threads", uid, action)

    async def get_thread(self, uid: str, thread_id: str) -> ServiceResult[ThreadPayload]:
        """Refresh one thread from the remote mailbox and return the reconciled view.

        Locally-only threads are returned as stored. Per-message upsert failures
        yield success=False with error_code PARTIAL_UPSERT and the data still set.
        """

        async def action(user: UserProfile) -> ServiceResult:
            thread = await self._owned_thread(user, thread_id)
            if not thread.remote_id:
                return ServiceResult.ok(ThreadPayload(thread=thread))

            credentials = await self._require_credentials(user, CredentialPolicy.ANY)
            raw = await self._mailbox.list_thread_messages(credentials, thread.remote_id)
            batch = await self._reconcile(user, raw, current_thread=thread)

            refreshed = await asyncio.to_thread(self._repo.find_thread_by_id, thread_id)
            if refreshed is None:
                raise NotFoundError("Thread not found")
            payload = ThreadPayload(thread=refreshed, upsert_errors=batch.errors)
            if batch.errors:
                return ServiceResult.fail(
                    f"{len(batch.errors)} message(s) failed to sync",
                    PARTIAL_UPSERT,
                    data=payload,
                )
            return ServiceResult.ok(payload)

        return await self._execute_with_user("get_thread", uid, action)

    # Replies

    async def _send_into_thread(self, user: UserProfile, thread: EmailThread, body: str) -> str:
        """Validate credentials, address the reply to the latest message and send it."""
        if not thread.remote_id:
            raise ValidationError("Thread is missing Gmail metadata")
        stored = await self._require_credentials(user, CredentialPolicy.ANY)
        credentials = await self._validator.ensure_valid_credentials(user.id, stored)
        if credentials is None:
            raise AuthenticationError("Gmail authorization expired; reconnect the mailbox")

        remote = await self._mailbox.list_thread_messages(credentials, thread.remote_id)
        if not remote:
            raise ValidationError("No messages found in thread")
        latest = max(remote, key=lambda m: parse_message_date(m.date, m.internal_date))
        sender = latest.from_ or next((m.from_ for m in reversed(remote) if m.from_), "")
        if not sender:
            raise ValidationError("Unable to determine recipient")

        reply = ReplyPayload(
            remote_thread_id=thread.remote_id,
            to=extract_email_address(sender),
            subject=reply_subject(latest.subject or thread.subject),
            body=body,
            in_reply_to=latest.message_id_header,
            references=build_references(latest.references, latest.message_id_header),
        )
        remote_id = await self._mailbox.send_reply(credentials, reply)
        logger.info("email_service.reply.sent", thread_id=thread.id, remote_id=remote_id, to=reply.to)
        return remote_id

    async def reply_to_thread(self, uid: str, thread_id: str, body: str) -> ServiceResult[ThreadPayload]:
        """Send a reply, then return the refreshed thread.

        Once the reply is sent the result is never a plain failure: if the refresh
        fails, the stored thread comes back with ``refresh_error`` set.
        """

        async def action(user: UserProfile) -> ServiceResult:
            if not body or not body.strip():
                raise ValidationError("Reply body is required")
            thread = await self._owned_thread(user, thread_id)
            remote_id = await self._send_into_thread(user, thread, body)

            refreshed = await self.get_thread(uid, thread_id)
            if refreshed.success or refreshed.is_partial:
                return refreshed
            logger.warning(
                "email_service.reply.refresh_failed",
                thread_id=thread_id,
                remote_id=remote_id,
                code=refreshed.error_code,
                error=refreshed.error,
            )
            stored = await asyncio.to_thread(self._repo.find_thread_by_id, thread_id)
            return ServiceResult.ok(
                ThreadPayload(
                    thread=stored or thread,
                    sent_remote_id=remote_id,
                    refresh_error=refreshed.error,
                )
            )

        return await self._execute_with_user("reply_to_thread", uid, action)

    # Drafts

    async def generate_draft(
        self,
        uid: str,
        thread_id: str,
        tone: Optional[str] = None,
        recipient: Optional[str] = None,
    ):
        async def action(user: UserProfile) -> ServiceResult:
            if self._generator is None:
                raise AppError("Draft generator is not configured")
            style_profile = await asyncio.to_thread(self._users.get_style_profile, user.id)
            if not style_profile:
                raise ValidationError("User style profile not found. Complete onboarding first.")
            thread = await self._owned_thread(user, thread_id)
            latest = thread.latest_message
            context = DraftContext(
                original_email=latest.body if latest else "",
                thread_history=[m.body for m in thread.messages[:-1]],
                subject=thread.subject,
                tone=tone,
                recipient=recipient or (extract_email_address(latest.sender) if latest else None),
            )
            content = await self._generator.generate(style_profile, context)
            draft = await asyncio.to_thread(self._repo.create_draft, thread.id, user.id, content, tone)
            try:
                await self._cache.set_suggested_reply(
                    uid,
                    thread.id,
                    {"draft_id": draft.id, "content": draft.content, "tone": draft.tone},
                )
            except Exception as e:
                # The draft is already stored; a cache outage only loses the suggestion.
                logger.warning(
                    "email_service.draft.cache_failed",
                    draft_id=draft.id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
            logger.info("email_service.draft.created", thread_id=thread.id, draft_id=draft.id)
            return ServiceResult.ok(draft)

        return await self._execute_with_user("generate_draft", uid, action)

    async def get_suggested_reply(self, uid: str, thread_id: str) -> ServiceResult[dict[str, Any]]:
        async def action(user: UserProfile) -> ServiceResult:
            await self._owned_thread(user, thread_id)
            cached = await self._cache.get_suggested_reply(uid, thread_id)
            if cached is None:
                raise NotFoundError("No suggested reply for this thread")
            return ServiceResult.ok(cached)

        return await self._execute_with_user("get_suggested_reply", uid, action)

    async def get_drafts(self, uid: str):
        async def action(user: UserProfile) -> ServiceResult:
            drafts = await asyncio.to_thread(self._repo.find_drafts_by_user, user.id)
            return ServiceResult.ok(drafts)

        return await self._execute_with_user("get_drafts", uid, action)

    async def send_draft(self, uid: str, draft_id: str):
        """Send a PENDING draft as a reply on its thread; the draft ends SENT or FAILED."""

        async def action(user: UserProfile) -> ServiceResult:
            draft = await asyncio.to_thread(self._repo.find_draft_by_id, draft_id)
            if draft is None or draft.user_id != user.id:
                raise NotFoundError("Draft not found")
            if draft.status is not DraftStatus.PENDING:
                raise ValidationError(f"Draft is already {draft.status.value}")
            await self._require_credentials(user, CredentialPolicy.ACCESS)
            thread = await self._owned_thread(user, draft.thread_id)
            try:
                await self._send_into_thread(user, thread, draft.content)
            except RemoteServiceError:
                await asyncio.to_thread(self._repo.update_draft_status, draft.id, DraftStatus.FAILED)
                raise
            sent = await asyncio.to_thread(self._repo.update_draft_status, draft.id, DraftStatus.SENT)
            return ServiceResult.ok(sent)

        return await self._execute_with_user("send_draft", uid, action)

    # Accounts

    async def connect_mailbox(
        self,
        uid: str,
        email: str,
        credentials: Credentials,
        name: Optional[str] = None,
    ) -> ServiceResult[UserProfile]:
        """Create the user if needed, store its Gmail tokens and mark the mailbox connected."""

        async def action() -> ServiceResult:
            if not email:
                raise ValidationError("Email is required")
            if not credentials.is_connected:
                raise ValidationError("An access token or refresh token is required")
            user = await asyncio.to_thread(self._users.get_or_create, uid, email, name)
            await asyncio.to_thread(self._users.store_tokens, user.id, credentials)
            if user.onboarding_status is OnboardingStatus.NOT_STARTED:
                user = await asyncio.to_thread(
                    self._users.update_onboarding_status, user.id, OnboardingStatus.GMAIL_CONNECTED
                )
            logger.info("email_service.mailbox.connected", uid=uid, onboarding_status=user.onboarding_status.value)
            return ServiceResult.ok(user)

        return await self._execute("connect_mailbox", uid, action)
