"""Re-export all ORM models so Base.metadata has all tables."""

from draftsync.db.models.email import Draft, Message, Thread
from draftsync.db.models.user import User

__all__ = [
    "User",
    "Thread",
    "Message",
    "Draft",
]
