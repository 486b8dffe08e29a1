"""User repository: identity lookup, encrypted mailbox tokens, style profile, onboarding and presence."""

from datetime import timedelta
from typing import Any, Optional

from sqlalchemy import select

from draftsync.auth.encryption import TokenCipher, get_cipher
from draftsync.config import PRESENCE_WINDOW_SECONDS
from draftsync.db import get_session
from draftsync.db.base import as_utc, utcnow
from draftsync.db.models.user import User
from draftsync.errors import NotFoundError
from draftsync.models.credentials import Credentials
from draftsync.models.email import OnboardingStatus, UserProfile


def _to_profile(row: User) -> UserProfile:
    return UserProfile(
        id=row.id,
        uid=row.uid,
        email=row.email,
        name=row.name,
        onboarding_status=OnboardingStatus(row.onboarding_status),
        is_online=row.is_online,
        last_active=as_utc(row.last_active) if row.last_active else None,
    )


def _require(session, user_id: str) -> User:
    row = session.get(User, user_id)
    if row is None:
        raise NotFoundError(f"User not found: {user_id}")
    return row


def find_by_uid(uid: str) -> Optional[UserProfile]:
    with get_session() as session:
        row = session.scalars(select(User).where(User.uid == uid)).first()
        return _to_profile(row) if row is not None else None


def find_by_id(user_id: str) -> Optional[UserProfile]:
    with get_session() as session:
        row = session.get(User, user_id)
        return _to_profile(row) if row is not None else None


def get_or_create(uid: str, email: str, name: Optional[str] = None) -> UserProfile:
    """Return the user for uid, creating it on first sight."""
    with get_session() as session:
        row = session.scalars(select(User).where(User.uid == uid)).first()
        if row is None:
            row = User(uid=uid, email=email, name=name)
            session.add(row)
            session.flush()
        return _to_profile(row)


def get_tokens(user_id: str, cipher: TokenCipher | None = None) -> Optional[Credentials]:
    """Decrypted credential pair, or None if the user does not exist."""
    cipher = cipher or get_cipher()
    with get_session() as session:
        row = session.get(User, user_id)
        if row is None:
            return None
        return Credentials(
            access_token=cipher.decrypt(row.access_token),
            refresh_token=cipher.decrypt(row.refresh_token),
        )


def store_tokens(user_id: str, credentials: Credentials, cipher: TokenCipher | None = None) -> None:
    """Persist tokens. A missing field leaves the stored value in place."""
    cipher = cipher or get_cipher()
    with get_session() as session:
        row = _require(session, user_id)
        if credentials.access_token:
            row.access_token = cipher.encrypt(credentials.access_token)
        if credentials.refresh_token:
            row.refresh_token = cipher.encrypt(credentials.refresh_token)


def clear_tokens(user_id: str) -> None:
    with get_session() as session:
        row = _require(session, user_id)
        row.access_token = None
        row.refresh_token = None


def get_style_profile(user_id: str) -> Optional[dict[str, Any]]:
    with get_session() as session:
        row = _require(session, user_id)
        return dict(row.style_profile) if row.style_profile else None


def store_style_profile(user_id: str, profile: dict[str, Any]) -> None:
    with get_session() as session:
        row = _require(session, user_id)
        row.style_profile = profile


def update_onboarding_status(user_id: str, status: OnboardingStatus) -> UserProfile:
    with get_session() as session:
        row = _require(session, user_id)
        row.onboarding_status = status.value
        session.flush()
        return _to_profile(row)


def touch_presence(uid: str) -> None:
    """Mark the user online as of now. Unknown uids are ignored."""
    with get_session() as session:
        row = session.scalars(select(User).where(User.uid == uid)).first()
        if row is None:
            return
        row.is_online = True
        row.last_active = utcnow()


def list_online_uids(window_seconds: int = PRESENCE_WINDOW_SECONDS) -> list[str]:
    """Uids of users marked online and active within the window."""
    cutoff = utcnow() - timedelta(seconds=window_seconds)
    with get_session() as session:
        rows = session.scalars(select(User).where(User.is_online.is_(True))).all()
        return [r.uid for r in rows if r.last_active is not None and as_utc(r.last_active) >= cutoff]
