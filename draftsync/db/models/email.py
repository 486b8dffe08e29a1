"""ORM models for threads, messages and drafts."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from draftsync.db.base import Base, TimestampMixin, new_id


class Thread(Base, TimestampMixin):
    """Local mirror of a Gmail conversation. remote_id is NULL for locally-only threads."""

    __tablename__ = "threads"
    __table_args__ = (UniqueConstraint("user_id", "remote_id", name="uq_threads_user_remote"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    remote_id: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    subject: Mapped[str] = mapped_column(String(1024), nullable=False, default="")

    messages: Mapped[list["Message"]] = relationship(
        "Message",
        back_populates="thread",
        order_by="Message.timestamp",
    )
    drafts: Mapped[list["Draft"]] = relationship("Draft", back_populates="thread")


class Message(Base, TimestampMixin):
    """Stored message keyed by (user_id, remote_id); Gmail ids are only unique per mailbox."""

    __tablename__ = "messages"
    __table_args__ = (UniqueConstraint("user_id", "remote_id", name="uq_messages_user_remote"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    remote_id: Mapped[str] = mapped_column(String(256), nullable=False)
    thread_id: Mapped[str] = mapped_column(ForeignKey("threads.id"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    sender: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    to: Mapped[str] = mapped_column(Text, nullable=False, default="")
    subject: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    html_body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    is_unread: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    message_id_header: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    references: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    thread: Mapped["Thread"] = relationship("Thread", back_populates="messages")


class Draft(Base, TimestampMixin):
    """Generated reply text; status moves PENDING -> SENT or PENDING -> FAILED."""

    __tablename__ = "drafts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    thread_id: Mapped[str] = mapped_column(ForeignKey("threads.id"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    tone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="PENDING", index=True)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    thread: Mapped["Thread"] = relationship("Thread", back_populates="drafts")
