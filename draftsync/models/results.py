"""Reconciliation reports and service result envelopes."""

from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from draftsync.models.email import EmailThread

T = TypeVar("T")


class UpsertInput(BaseModel):
    """One remote message to merge into local storage."""

    remote_id: str
    thread_id: str
    user_id: str
    sender: str = ""
    to: str = ""
    subject: str = ""
    body: str = ""
    html_body: Optional[str] = None
    timestamp: datetime
    is_unread: bool = False
    message_id_header: Optional[str] = None
    references: Optional[str] = None


class UpsertResult(BaseModel):
    remote_id: str
    success: bool
    created: bool = False
    message_id: Optional[str] = None
    error: Optional[str] = None


class UpsertError(BaseModel):
    remote_id: str
    error: str


class BatchUpsertResult(BaseModel):
    results: list[UpsertResult] = Field(default_factory=list)
    created_count: int = 0
    errors: list[UpsertError] = Field(default_factory=list)


class SyncSummary(BaseModel):
    """Outcome of one inbox sync: new messages stored plus per-message failures."""

    synced: int
    errors: int
    error_details: list[UpsertError] = Field(default_factory=list)


class ThreadPayload(BaseModel):
    """A thread view. After a reply, ``refresh_error`` is set when the post-send refetch failed."""

    thread: EmailThread
    upsert_errors: list[UpsertError] = Field(default_factory=list)
    sent_remote_id: Optional[str] = None
    refresh_error: Optional[str] = None


class DraftContext(BaseModel):
    """Input handed to the draft generator."""

    original_email: str
    thread_history: list[str] = Field(default_factory=list)
    subject: str = ""
    tone: Optional[str] = None
    recipient: Optional[str] = None


class ServiceResult(BaseModel, Generic[T]):
    """Tagged result returned by every service operation.

    ``success=False`` with ``data`` set signals partial success (multi-status).
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "ServiceResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, error_code: str, data: Any = None) -> "ServiceResult":
        return cls(success=False, error=error, error_code=error_code, data=data)

    @property
    def is_partial(self) -> bool:
        return not self.success and self.data is not None
