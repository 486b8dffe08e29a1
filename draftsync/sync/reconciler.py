"""Thread/message reconciliation: merge remote mailbox state into local storage.

All methods are synchronous; async callers run them with asyncio.to_thread.
"""

from typing import Optional

from draftsync.db.repositories.email_repo import EmailRepository
from draftsync.mail_provider.gmail_models import RawMessage
from draftsync.mail_provider.parsing import parse_message_date
from draftsync.models.email import EmailThread
from draftsync.models.results import BatchUpsertResult, UpsertError, UpsertInput, UpsertResult
from draftsync.utils.logger import get_logger

logger = get_logger("draftsync.sync.reconciler")

ThreadCache = dict[str, EmailThread]


class Reconciler:
    def __init__(self, repository: Optional[EmailRepository] = None):
        self._repo = repository or EmailRepository()

    def ensure_thread(
        self,
        user_id: str,
        remote_thread_id: str,
        fallback_subject: str = "",
        cache: Optional[ThreadCache] = None,
    ) -> EmailThread:
        """Local thread for (user_id, remote_thread_id), created on first sight.

        ``cache`` memoizes lookups for the duration of one reconciliation pass.
        """
        if cache is not None and remote_thread_id in cache:
            return cache[remote_thread_id]
        thread = self._repo.ensure_thread(user_id, remote_thread_id, fallback_subject)
        if cache is not None:
            cache[remote_thread_id] = thread
        return thread

    def upsert_message(self, data: UpsertInput) -> UpsertResult:
        with self._repo.transaction() as repo:
            return self._upsert_one(repo, data)

    def upsert_messages_batch(self, inputs: list[UpsertInput]) -> BatchUpsertResult:
        """Upsert every input in one transaction; each item gets its own savepoint.

        A failing item is rolled back alone and reported in ``errors``.
        """
        batch = BatchUpsertResult()
        if not inputs:
            return batch
        with self._repo.transaction() as repo:
            for data in inputs:
                result = self._upsert_one(repo, data)
                batch.results.append(result)
                if not result.success:
                    batch.errors.append(UpsertError(remote_id=data.remote_id, error=result.error or "unknown error"))
                elif result.created:
                    batch.created_count += 1
        logger.info(
            "reconciler.batch.complete",
            total=len(inputs),
            created=batch.created_count,
            errors=len(batch.errors),
        )
        return batch

    def _upsert_one(self, repo: EmailRepository, data: UpsertInput) -> UpsertResult:
        try:
            with repo.savepoint() as scoped:
                message, created = scoped.upsert_message(data)
        except Exception as e:
            logger.warning(
                "reconciler.upsert.failed",
                remote_id=data.remote_id,
                thread_id=data.thread_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return UpsertResult(remote_id=data.remote_id, success=False, error=str(e))
        return UpsertResult(remote_id=data.remote_id, success=True, created=created, message_id=message.id)

    def build_upsert_inputs(
        self,
        user_id: str,
        raw_messages: list[RawMessage],
        current_thread: Optional[EmailThread] = None,
    ) -> list[UpsertInput]:
        """Map remote messages to upsert inputs, creating local threads as needed.

        Messages without an id or thread id are skipped. Each message is attached to
        the local thread of its own remote thread id, which may differ from
        ``current_thread``.
        """
        cache: ThreadCache = {}
        if current_thread is not None and current_thread.remote_id:
            cache[current_thread.remote_id] = current_thread
        current_subject = current_thread.subject if current_thread is not None else ""

        inputs: list[UpsertInput] = []
        for raw in raw_messages:
            if not raw.id or not raw.thread_id:
                logger.debug("reconciler.skip_message", remote_id=raw.id, remote_thread_id=raw.thread_id)
                continue
            thread = self.ensure_thread(user_id, raw.thread_id, raw.subject or current_subject, cache)
            inputs.append(
                UpsertInput(
                    remote_id=raw.id,
                    thread_id=thread.id,
                    user_id=user_id,
                    sender=raw.from_,
                    to=raw.to,
                    subject=raw.subject or thread.subject or current_subject or "",
                    body=raw.body,
                    html_body=raw.html_body,
                    timestamp=parse_message_date(raw.date, raw.internal_date),
                    is_unread=raw.is_unread,
                    message_id_header=raw.message_id_header,
                    references=raw.references,
                )
            )
        return inputs
