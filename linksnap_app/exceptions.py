"""
Error types shared by the service layer and the routers.

``ShortenerError`` subclasses carry the message shown to the user and the
HTTP status the routers answer with. ``BackendError`` wraps every failure
coming from the hosted backend (HTTP errors, network errors, constraint
violations) together with the backend's error code.
"""

from typing import Optional


# Error codes reported by the hosted backend (Postgres / PostgREST)
UNIQUE_VIOLATION = "23505"
NO_SINGLE_ROW = "PGRST116"
UNKNOWN_FUNCTION = "PGRST202"
INTEGRITY_VIOLATION = "23000"


class BackendError(Exception):
    """A call to the hosted backend failed."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code

    @property
    def is_unique_violation(self) -> bool:
        return self.code == UNIQUE_VIOLATION

    def __repr__(self) -> str:
        return f"BackendError(code={self.code!r}, status_code={self.status_code!r}, message={self.message!r})"


class ShortenerError(Exception):
    """Base class for errors that are reported to the user as-is."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidURLError(ShortenerError):
    status_code = 400


class InvalidShortCodeError(ShortenerError):
    status_code = 400


class URLLimitReachedError(ShortenerError):
    """The user already owns a short URL."""

    status_code = 409


class ShortCodeTakenError(ShortenerError):
    status_code = 409


class URLNotFoundError(ShortenerError):
    status_code = 404
