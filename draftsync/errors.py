"""Application error taxonomy.

Each error carries an HTTP-analogous status code and a stable ``code`` string so
service results can be mapped to responses without inspecting message text.
"""

from enum import Enum


class AppError(Exception):
    """Base class for errors surfaced to service callers."""

    def __init__(self, message: str, status_code: int = 500, code: str = "INTERNAL_ERROR"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class ValidationError(AppError):
    def __init__(self, message: str):
        super().__init__(message, 400, "VALIDATION_ERROR")


class AuthenticationError(AppError):
    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, 401, "AUTHENTICATION_ERROR")


class AuthorizationError(AppError):
    def __init__(self, message: str = "Authorization failed"):
        super().__init__(message, 403, "AUTHORIZATION_ERROR")


class NotFoundError(AppError):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, 404, "NOT_FOUND_ERROR")


class ExternalServiceError(AppError):
    """Failure of a remote collaborator; the message is prefixed with the service name."""

    def __init__(self, service: str, message: str):
        super().__init__(f"{service} error: {message}", 502, "EXTERNAL_SERVICE_ERROR")
        self.service = service


class RemoteErrorKind(str, Enum):
    """Classification assigned by the mailbox client when a remote call fails."""

    AUTH_EXPIRED = "auth_expired"
    TRANSPORT = "transport"
    RATE_LIMITED = "rate_limited"
    OTHER = "other"


class RemoteServiceError(ExternalServiceError):
    """Remote mailbox failure with a machine-checkable kind."""

    def __init__(
        self,
        message: str,
        kind: RemoteErrorKind = RemoteErrorKind.OTHER,
        service: str = "Gmail",
        status: int | None = None,
    ):
        super().__init__(service, message)
        self.kind = kind
        self.status = status

    @property
    def is_auth_error(self) -> bool:
        return self.kind is RemoteErrorKind.AUTH_EXPIRED


PARTIAL_UPSERT = "PARTIAL_UPSERT"
INTERNAL_ERROR = "INTERNAL_ERROR"
