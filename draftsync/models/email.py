"""Thread, message and draft models as exposed by the service layer."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class DraftStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class OnboardingStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    GMAIL_CONNECTED = "GMAIL_CONNECTED"
    QUESTIONNAIRE_IN_PROGRESS = "QUESTIONNAIRE_IN_PROGRESS"
    QUESTIONNAIRE_COMPLETED = "QUESTIONNAIRE_COMPLETED"
    PROFILE_GENERATING = "PROFILE_GENERATING"
    PROFILE_ERROR = "PROFILE_ERROR"
    COMPLETED_INIT_PROFILE = "COMPLETED_INIT_PROFILE"
    ACTIVE = "ACTIVE"


class EmailMessage(BaseModel):
    """Single stored message."""

    id: str
    remote_id: str
    thread_id: str
    sender: str = ""
    to: str = ""
    subject: str = ""
    body: str = ""
    html_body: Optional[str] = None
    timestamp: datetime
    is_unread: bool = False
    message_id_header: Optional[str] = None
    references: Optional[str] = None


class EmailThread(BaseModel):
    """Thread of messages, oldest to newest."""

    id: str
    remote_id: Optional[str] = None
    user_id: str
    subject: str = ""
    messages: list[EmailMessage] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @property
    def latest_message(self) -> Optional[EmailMessage]:
        return self.messages[-1] if self.messages else None


class EmailDraft(BaseModel):
    """AI-generated draft for a thread."""

    id: str
    thread_id: str
    user_id: str
    content: str
    tone: Optional[str] = None
    status: DraftStatus = DraftStatus.PENDING
    sent_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class UserProfile(BaseModel):
    """Service-level view of a user (no secrets)."""

    id: str
    uid: str
    email: str
    name: Optional[str] = None
    onboarding_status: OnboardingStatus = OnboardingStatus.NOT_STARTED
    is_online: bool = False
    last_active: Optional[datetime] = None
