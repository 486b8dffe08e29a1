"""ORM model for users: identity, onboarding state, style profile and encrypted mailbox tokens."""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from draftsync.db.base import Base, TimestampMixin, new_id


class User(Base, TimestampMixin):
    """One row per identity-verifier uid."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    uid: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    onboarding_status: Mapped[str] = mapped_column(String(32), nullable=False, default="NOT_STARTED")
    style_profile: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    # Stored through TokenCipher; never read these columns directly.
    access_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    refresh_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_active: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
