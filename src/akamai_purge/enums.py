"""
Enumeration types for the Akamai purge client.

These enums provide type-safe constants for purge request fields, error
kinds, and logging levels throughout the system.
"""

from enum import Enum


class PurgeAction(Enum):
    """How the edge treats purged objects."""

    REMOVE = "remove"
    INVALIDATE = "invalidate"


class PurgeDomain(Enum):
    """Akamai network a purge is applied to."""

    PRODUCTION = "production"
    STAGING = "staging"


class PurgeType(Enum):
    """How purge objects are addressed (by URL or by CP code)."""

    ARL = "arl"
    CPCODE = "cpcode"


class ErrorKind(Enum):
    """Classification of client failures."""

    INVALID_ARGUMENT = "invalid_argument"
    INVALID_PATH = "invalid_path"
    UNREACHABLE = "unreachable"
    API_REJECTED = "api_rejected"


class UrlErrorCode(Enum):
    """Error codes for URL normalization failures."""

    EMPTY_INPUT = "empty_input"
    MALFORMED_URL = "malformed_url"
    UNKNOWN_ROUTE = "unknown_route"
    MISSING_BASE_URL = "missing_base_url"
    INVALID_CP_CODE = "invalid_cp_code"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class Severity(Enum):
    """Severity of a diagnostic result."""

    OK = "ok"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
