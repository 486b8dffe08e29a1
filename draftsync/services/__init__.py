"""Service layer."""

from draftsync.services.email_service import EmailService

__all__ = ["EmailService"]
