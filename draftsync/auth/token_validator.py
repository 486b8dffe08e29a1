"""Credential loading, policy checks and refresh persistence."""

import asyncio
from types import ModuleType
from typing import Optional

from draftsync.db.repositories import user_repo
from draftsync.mail_provider.protocol import MailboxClient
from draftsync.models.credentials import CredentialPolicy, Credentials
from draftsync.utils.logger import get_logger

logger = get_logger("draftsync.auth.token_validator")


class TokenValidator:
    """Applies credential policies and persists rotated tokens through ``users`` (a user repository module)."""

    def __init__(self, mailbox: MailboxClient, users: ModuleType = user_repo):
        self._mailbox = mailbox
        self._users = users

    async def get_credentials(self, user_id: str, policy: CredentialPolicy) -> Optional[Credentials]:
        """Stored credentials if they satisfy the policy, else None."""
        stored = await asyncio.to_thread(self._users.get_tokens, user_id)
        if stored is None or not stored.satisfies(policy):
            logger.info("token_validator.insufficient", user_id=user_id, policy=policy.value)
            return None
        return stored

    async def ensure_valid_credentials(self, user_id: str, stored: Credentials) -> Optional[Credentials]:
        """Validate against the provider. A rotated token is persisted before returning.

        Returns None when the provider rejects the credentials.
        """
        check = await self._mailbox.validate_credentials(stored)
        if not check.valid:
            logger.info("token_validator.invalid", user_id=user_id)
            return None
        if check.refreshed_credentials is None:
            return stored
        merged = Credentials(
            access_token=check.refreshed_credentials.access_token or stored.access_token,
            refresh_token=check.refreshed_credentials.refresh_token or stored.refresh_token,
        )
        await asyncio.to_thread(self._users.store_tokens, user_id, merged)
        logger.info("token_validator.refreshed", user_id=user_id)
        return merged
