"""Fernet encryption for mailbox tokens at rest."""

from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from draftsync.config import IS_PRODUCTION, TOKEN_ENCRYPTION_KEY
from draftsync.utils.logger import get_logger

logger = get_logger("draftsync.auth.encryption")


class TokenEncryptionError(RuntimeError):
    """Raised when tokens cannot be encrypted under the current configuration."""


class TokenCipher:
    """Encrypts tokens with Fernet.

    Without a key, tokens are stored as plaintext outside production (a warning
    is logged once). In production a missing key is a hard error.
    Decrypt accepts values written before encryption was enabled.
    """

    def __init__(self, key: Optional[str] = None, allow_plaintext: Optional[bool] = None):
        key = TOKEN_ENCRYPTION_KEY if key is None else key
        self._fernet = Fernet(key.encode()) if key else None
        self._allow_plaintext = (not IS_PRODUCTION) if allow_plaintext is None else allow_plaintext
        self._warned = False

    @property
    def enabled(self) -> bool:
        return self._fernet is not None

    def encrypt(self, plain: Optional[str]) -> Optional[str]:
        if plain is None:
            return None
        if self._fernet is None:
            if not self._allow_plaintext:
                raise TokenEncryptionError("TOKEN_ENCRYPTION_KEY is not set; refusing to store tokens in plaintext")
            if not self._warned:
                logger.warning("token_cipher.plaintext", reason="TOKEN_ENCRYPTION_KEY not set")
                self._warned = True
            return plain
        return self._fernet.encrypt(plain.encode()).decode()

    def decrypt(self, stored: Optional[str]) -> Optional[str]:
        if stored is None or self._fernet is None:
            return stored
        try:
            return self._fernet.decrypt(stored.encode()).decode()
        except InvalidToken:
            # Legacy row written before encryption was enabled
            logger.debug("token_cipher.legacy_plaintext")
            return stored


_default_cipher: TokenCipher | None = None


def get_cipher() -> TokenCipher:
    global _default_cipher
    if _default_cipher is None:
        _default_cipher = TokenCipher()
    return _default_cipher
