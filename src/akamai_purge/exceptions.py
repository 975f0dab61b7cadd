"""
Exception classes for the Akamai purge client.

All exceptions inherit from AkamaiPurgeError and provide structured
error information with codes, messages, and optional details.
"""

from typing import Optional


class AkamaiPurgeError(Exception):
    """Base exception for all purge client errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidArgumentError(AkamaiPurgeError):
    """Raised when a setter receives a value outside its allowed set."""

    pass


class InvalidPathError(AkamaiPurgeError):
    """Raised when a path is malformed or does not resolve to a known route."""

    pass


class UnreachableError(AkamaiPurgeError):
    """Raised when the CCU API could not be reached at all."""

    pass


class ApiRejectedError(AkamaiPurgeError):
    """Raised when the CCU API answered with a non-2xx status."""

    pass


class ConfigurationError(AkamaiPurgeError):
    """Raised for missing or inconsistent configuration."""

    pass


class PersistenceError(AkamaiPurgeError):
    """Raised when persistence operations fail (file I/O, HMAC validation)."""

    pass


class TamperingError(PersistenceError):
    """Raised when HMAC validation fails, indicating data tampering."""

    pass
