"""Auth: token encryption at rest and API caller identity.

TokenValidator lives in draftsync.auth.token_validator (imported directly to
avoid a cycle with the user repository).
"""

from draftsync.auth.encryption import TokenCipher, get_cipher
from draftsync.auth.identity import IdentityVerifier, JwtIdentityVerifier

__all__ = [
    "TokenCipher",
    "get_cipher",
    "IdentityVerifier",
    "JwtIdentityVerifier",
]
