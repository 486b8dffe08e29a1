"""Mailbox credential pair and the sufficiency policies applied before remote calls."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class CredentialPolicy(str, Enum):
    """ACCESS: an access token must be present. ANY: access or refresh token."""

    ACCESS = "access"
    ANY = "any"


class Credentials(BaseModel):
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return bool(self.access_token or self.refresh_token)

    def satisfies(self, policy: CredentialPolicy) -> bool:
        if policy is CredentialPolicy.ACCESS:
            return bool(self.access_token)
        return self.is_connected


class CredentialCheck(BaseModel):
    """Outcome of validate_credentials; refreshed_credentials is set when the provider rotated the token."""

    valid: bool
    refreshed_credentials: Optional[Credentials] = None
