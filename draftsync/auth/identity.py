"""Identity verification for API callers (bearer JWT -> uid)."""

from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

import jwt

from draftsync.config import JWT_ALGORITHM, JWT_SECRET
from draftsync.errors import AuthenticationError


class IdentityVerifier(Protocol):
    def verify(self, token: str) -> str:
        """Return the caller's uid or raise AuthenticationError."""
        ...


class JwtIdentityVerifier:
    """HS256 JWTs; the ``sub`` claim is the uid."""

    def __init__(self, secret: Optional[str] = None, algorithm: str = JWT_ALGORITHM):
        self._secret = secret if secret is not None else JWT_SECRET
        self._algorithm = algorithm

    def issue(self, uid: str, email: Optional[str] = None, ttl: timedelta = timedelta(days=7)) -> str:
        now = datetime.now(timezone.utc)
        payload = {"sub": uid, "iat": now, "exp": now + ttl}
        if email:
            payload["email"] = email
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> str:
        if not self._secret:
            raise AuthenticationError("JWT_SECRET is not configured")
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationError("Token expired") from e
        except jwt.InvalidTokenError as e:
            raise AuthenticationError("Invalid token") from e
        uid = payload.get("sub")
        if not uid:
            raise AuthenticationError("Token has no subject")
        return str(uid)
