"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so code can inspect it without parsing
    # str(exception). DON'T raise this directly - use a subclass so callers can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class ConfigurationError(DomainException):
    """Required configuration is missing.

    Raised by Settings.require() before any I/O happens. The CLI prints
    every name in `missing` and exits non-zero.
    """

    def __init__(self, missing: list[str]) -> None:
        super().__init__(
            "Missing required environment variables: " + ", ".join(missing)
        )
        self.missing = list(missing)


class MissingColumnError(DomainException):
    """A CSV header has no column for a required role (artist, track, timestamp)."""

    def __init__(self, headers: list[str], missing_roles: list[str] | None = None) -> None:
        super().__init__(
            "Could not detect required columns. Found headers: " + ", ".join(headers)
        )
        self.headers = list(headers)
        self.missing_roles = list(missing_roles or [])


class ExternalServiceError(DomainException):
    """An external service answered with an error or not at all.

    HTTP Status: 502
    """

    def __init__(
        self,
        service: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(f"{service} request failed: {message}")
        self.service = service
        self.status_code = status_code


class LastfmApiError(ExternalServiceError):
    """Last.fm returned an error document (`{"error": 6, "message": ...}`)."""

    def __init__(
        self,
        message: str,
        error_code: int | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__("Last.fm", message, status_code=status_code)
        self.error_code = error_code


class StoreQueryError(DomainException):
    """The scrobble store rejected or failed a query."""

    def __init__(self, message: str, sql: str | None = None) -> None:
        super().__init__(message)
        self.sql = sql


class InvalidStateException(DomainException):
    """An operation was requested while the system is in the wrong state."""

    pass


class SyncAlreadyRunningError(InvalidStateException):
    """Another sync/import run still holds the in_progress status."""

    def __init__(self, updated_at: int | None = None) -> None:
        super().__init__(
            "A sync is already in progress; pass --force if the previous run crashed"
        )
        self.updated_at = updated_at


__all__ = [
    "ConfigurationError",
    "DomainException",
    "ExternalServiceError",
    "InvalidStateException",
    "LastfmApiError",
    "MissingColumnError",
    "StoreQueryError",
    "SyncAlreadyRunningError",
]
