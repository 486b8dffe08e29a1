"""Email repository: threads, messages and drafts.

Every public method is atomic on its own (one session per call). Inside
``transaction()`` the repository is bound to a single session so a sequence of
calls commits or rolls back together; ``savepoint()`` scopes one item of such a
sequence so its failure does not poison the rest.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from draftsync.db import get_session
from draftsync.db.base import as_utc, utcnow
from draftsync.db.models.email import Draft, Message, Thread
from draftsync.errors import NotFoundError, ValidationError
from draftsync.models.email import DraftStatus, EmailDraft, EmailMessage, EmailThread
from draftsync.models.results import UpsertInput
from draftsync.utils.logger import get_logger

logger = get_logger("draftsync.db.email_repo")

_ALLOWED_DRAFT_TRANSITIONS = {
    DraftStatus.PENDING: {DraftStatus.SENT, DraftStatus.FAILED},
}


def _to_message(row: Message) -> EmailMessage:
    return EmailMessage(
        id=row.id,
        remote_id=row.remote_id,
        thread_id=row.thread_id,
        sender=row.sender,
        to=row.to,
        subject=row.subject,
        body=row.body,
        html_body=row.html_body,
        timestamp=as_utc(row.timestamp),
        is_unread=row.is_unread,
        message_id_header=row.message_id_header,
        references=row.references,
    )


def _to_thread(row: Thread, messages: Optional[list[Message]] = None) -> EmailThread:
    rows = row.messages if messages is None else messages
    mapped = sorted((_to_message(m) for m in rows), key=lambda m: m.timestamp)
    return EmailThread(
        id=row.id,
        remote_id=row.remote_id,
        user_id=row.user_id,
        subject=row.subject,
        messages=mapped,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


def _to_draft(row: Draft) -> EmailDraft:
    return EmailDraft(
        id=row.id,
        thread_id=row.thread_id,
        user_id=row.user_id,
        content=row.content,
        tone=row.tone,
        status=DraftStatus(row.status),
        sent_at=as_utc(row.sent_at) if row.sent_at else None,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


class EmailRepository:
    """Storage port for threads, messages and drafts."""

    def __init__(self, session: Session | None = None):
        self._session = session

    @contextmanager
    def _scope(self) -> Iterator[Session]:
        if self._session is not None:
            yield self._session
            return
        with get_session() as session:
            yield session

    @contextmanager
    def transaction(self) -> Iterator["EmailRepository"]:
        """Yield a repository bound to one session; commits on clean exit."""
        if self._session is not None:
            yield self
            return
        with get_session() as session:
            yield EmailRepository(session)

    @contextmanager
    def savepoint(self) -> Iterator["EmailRepository"]:
        """Run the block inside a SAVEPOINT; an exception rolls back only this block."""
        with self._scope() as session:
            with session.begin_nested():
                yield EmailRepository(session)

    # Threads

    def find_thread_by_id(self, thread_id: str) -> Optional[EmailThread]:
        with self._scope() as session:
            row = session.get(Thread, thread_id)
            return _to_thread(row) if row is not None else None

    def find_thread_by_remote_id(self, user_id: str, remote_id: str) -> Optional[EmailThread]:
        with self._scope() as session:
            row = self._thread_row_by_remote(session, user_id, remote_id)
            return _to_thread(row) if row is not None else None

    def create_thread(self, user_id: str, remote_id: Optional[str], subject: str) -> EmailThread:
        """Insert a thread; if (user_id, remote_id) already exists, return the existing row instead."""
        with self._scope() as session:
            row = Thread(user_id=user_id, remote_id=remote_id, subject=subject or "")
            try:
                with session.begin_nested():
                    session.add(row)
            except IntegrityError:
                if remote_id is None:
                    raise
                existing = self._thread_row_by_remote(session, user_id, remote_id)
                if existing is None:
                    raise
                logger.debug(
                    "email_repo.create_thread.lost_race",
                    user_id=user_id,
                    remote_id=remote_id,
                    thread_id=existing.id,
                )
                return _to_thread(existing)
            return _to_thread(row, messages=[])

    def ensure_thread(self, user_id: str, remote_id: str, subject: str) -> EmailThread:
        existing = self.find_thread_by_remote_id(user_id, remote_id)
        if existing is not None:
            return existing
        return self.create_thread(user_id, remote_id, subject)

    def find_threads_by_user(self, user_id: str, limit: int = 25) -> list[EmailThread]:
        """Most recently updated threads first; each carries only its latest message."""
        with self._scope() as session:
            rows = session.scalars(
                select(Thread)
                .where(Thread.user_id == user_id)
                .order_by(Thread.updated_at.desc())
                .limit(limit)
            ).all()
            threads = []
            for row in rows:
                latest = session.scalars(
                    select(Message)
                    .where(Message.thread_id == row.id)
                    .order_by(Message.timestamp.desc())
                    .limit(1)
                ).all()
                threads.append(_to_thread(row, messages=list(latest)))
            return threads

    # Messages

    def find_message_by_remote_id_and_user(self, remote_id: str, user_id: str) -> Optional[EmailMessage]:
        with self._scope() as session:
            row = self._message_row(session, remote_id, user_id)
            return _to_message(row) if row is not None else None

    def create_message(self, data: UpsertInput) -> EmailMessage:
        with self._scope() as session:
            thread = self._owned_thread(session, data.thread_id, data.user_id)
            row = Message(remote_id=data.remote_id, user_id=data.user_id, **self._message_values(data, thread))
            session.add(row)
            session.flush()
            self._touch_thread(session, thread)
            return _to_message(row)

    def update_message(self, message_id: str, data: UpsertInput) -> EmailMessage:
        with self._scope() as session:
            row = session.get(Message, message_id)
            if row is None:
                raise NotFoundError(f"Message not found: {message_id}")
            thread = self._owned_thread(session, data.thread_id, data.user_id)
            for key, value in self._message_values(data, thread).items():
                setattr(row, key, value)
            session.flush()
            self._touch_thread(session, thread)
            return _to_message(row)

    def upsert_message(self, data: UpsertInput) -> tuple[EmailMessage, bool]:
        """Create or update by (remote_id, user_id). Returns (message, created).

        A concurrent insert of the same message surfaces as an IntegrityError on
        our insert; that case is retried as an update.
        """
        with self._scope() as session:
            thread = self._owned_thread(session, data.thread_id, data.user_id)
            values = self._message_values(data, thread)
            row = self._message_row(session, data.remote_id, data.user_id)
            created = False
            if row is None:
                candidate = Message(remote_id=data.remote_id, user_id=data.user_id, **values)
                try:
                    with session.begin_nested():
                        session.add(candidate)
                    row = candidate
                    created = True
                except IntegrityError:
                    row = self._message_row(session, data.remote_id, data.user_id)
                    if row is None:
                        raise
                    logger.debug("email_repo.upsert_message.lost_race", remote_id=data.remote_id)
            if not created:
                for key, value in values.items():
                    setattr(row, key, value)
            session.flush()
            self._touch_thread(session, thread)
            return _to_message(row), created

    # Drafts

    def create_draft(self, thread_id: str, user_id: str, content: str, tone: Optional[str] = None) -> EmailDraft:
        with self._scope() as session:
            self._owned_thread(session, thread_id, user_id)
            row = Draft(
                thread_id=thread_id,
                user_id=user_id,
                content=content,
                tone=tone,
                status=DraftStatus.PENDING.value,
            )
            session.add(row)
            session.flush()
            return _to_draft(row)

    def find_draft_by_id(self, draft_id: str) -> Optional[EmailDraft]:
        with self._scope() as session:
            row = session.get(Draft, draft_id)
            return _to_draft(row) if row is not None else None

    def update_draft_status(self, draft_id: str, status: DraftStatus) -> EmailDraft:
        """Apply PENDING -> SENT|FAILED. SENT stamps sent_at."""
        with self._scope() as session:
            row = session.get(Draft, draft_id)
            if row is None:
                raise NotFoundError(f"Draft not found: {draft_id}")
            current = DraftStatus(row.status)
            if status not in _ALLOWED_DRAFT_TRANSITIONS.get(current, set()):
                raise ValidationError(f"Draft {draft_id} cannot move from {current.value} to {status.value}")
            row.status = status.value
            if status is DraftStatus.SENT:
                row.sent_at = utcnow()
            session.flush()
            return _to_draft(row)

    def find_drafts_by_user(self, user_id: str) -> list[EmailDraft]:
        with self._scope() as session:
            rows = session.scalars(
                select(Draft).where(Draft.user_id == user_id).order_by(Draft.created_at.desc())
            ).all()
            return [_to_draft(r) for r in rows]

    # Internals

    @staticmethod
    def _thread_row_by_remote(session: Session, user_id: str, remote_id: str) -> Optional[Thread]:
        return session.scalars(
            select(Thread).where(Thread.user_id == user_id).where(Thread.remote_id == remote_id)
        ).first()

    @staticmethod
    def _message_row(session: Session, remote_id: str, user_id: str) -> Optional[Message]:
        return session.scalars(
            select(Message).where(Message.remote_id == remote_id).where(Message.user_id == user_id)
        ).first()

    @staticmethod
    def _owned_thread(session: Session, thread_id: str, user_id: str) -> Thread:
        thread = session.get(Thread, thread_id)
        if thread is None:
            raise NotFoundError(f"Thread not found: {thread_id}")
        if thread.user_id != user_id:
            raise ValidationError(f"Thread {thread_id} belongs to a different user")
        return thread

    @staticmethod
    def _message_values(data: UpsertInput, thread: Thread) -> dict:
        return {
            "thread_id": thread.id,
            "sender": data.sender,
            "to": data.to,
            "subject": data.subject or thread.subject or "",
            "body": data.body,
            "html_body": data.html_body,
            "timestamp": data.timestamp,
            "is_unread": data.is_unread,
            "message_id_header": data.message_id_header,
            "references": data.references,
        }

    @staticmethod
    def _touch_thread(session: Session, thread: Thread) -> None:
        """Keep thread.updated_at equal to its newest message timestamp."""
        latest = session.scalar(select(func.max(Message.timestamp)).where(Message.thread_id == thread.id))
        if latest is not None:
            thread.updated_at = latest
