"""Pydantic models for mailbox sync and drafting."""

from draftsync.models.credentials import CredentialCheck, CredentialPolicy, Credentials
from draftsync.models.email import (
    DraftStatus,
    EmailDraft,
    EmailMessage,
    EmailThread,
    OnboardingStatus,
    UserProfile,
)
from draftsync.models.results import (
    BatchUpsertResult,
    DraftContext,
    ServiceResult,
    SyncSummary,
    ThreadPayload,
    UpsertError,
    UpsertInput,
    UpsertResult,
)

__all__ = [
    "CredentialCheck",
    "CredentialPolicy",
    "Credentials",
    "DraftStatus",
    "EmailDraft",
    "EmailMessage",
    "EmailThread",
    "OnboardingStatus",
    "UserProfile",
    "BatchUpsertResult",
    "DraftContext",
    "ServiceResult",
    "SyncSummary",
    "ThreadPayload",
    "UpsertError",
    "UpsertInput",
    "UpsertResult",
]
