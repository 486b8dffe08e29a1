"""DB repositories: EmailRepository for mail storage, user_repo functions for accounts."""

from draftsync.db.repositories import user_repo
from draftsync.db.repositories.email_repo import EmailRepository

__all__ = [
    "EmailRepository",
    "user_repo",
]
