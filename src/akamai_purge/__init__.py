"""
Akamai Purge - client for the Akamai CCU v2 content purge API.

This package normalizes site paths into purgeable URLs, submits signed purge
requests, and keeps a history of purge status responses.
"""

__version__ = "0.1.0"
__author__ = "Akamai Purge Team"

from akamai_purge.exceptions import (
    AkamaiPurgeError,
    InvalidArgumentError,
    InvalidPathError,
    UnreachableError,
    ApiRejectedError,
    ConfigurationError,
    PersistenceError,
    TamperingError,
)
from akamai_purge.enums import (
    PurgeAction,
    PurgeDomain,
    PurgeType,
    ErrorKind,
    UrlErrorCode,
    LogLevel,
    Severity,
)
from akamai_purge.config import (
    CredentialsConfig,
    EndpointConfig,
    PurgeDefaultsConfig,
    PersistenceConfig,
    LoggingConfig,
    AkamaiSettings,
    load_settings_from_file,
    save_settings_to_file,
    apply_env_overrides,
    load_credentials_from_edgerc,
)
from akamai_purge.models import (
    PurgeRequest,
    PurgeResponse,
    StatusSnapshot,
    PurgeStatus,
    ApiError,
    ApiResult,
    UrlValidationError,
    NormalizationResult,
    PurgeResult,
)
from akamai_purge.url_normalizer import (
    SiteRouter,
    PatternRouter,
    UrlNormalizer,
    normalize_cp_codes,
)
from akamai_purge.request_builder import (
    ClientSessionState,
    PurgeRequestBuilder,
)
from akamai_purge.signer import (
    Signer,
    EdgeGridSigner,
)
from akamai_purge.http_sender import (
    SignedHttpSender,
)
from akamai_purge.kv_store import (
    KeyValueStore,
    MemoryKeyValueStore,
    JsonFileKeyValueStore,
)
from akamai_purge.status_store import (
    PurgeStatusStore,
)
from akamai_purge.audit_logger import (
    AuditLogger,
    LogEntry,
)
from akamai_purge.client import (
    PurgeClient,
)
from akamai_purge.diagnostics import (
    DiagnosticResult,
    ConfigValidationResult,
    QueueLengthCheck,
    CredentialsValidator,
    validate_settings,
)
from akamai_purge.status_log import (
    fetch_status,
    refresh_status,
    format_status_rows,
)
from akamai_purge.cli import (
    main as cli_main,
    create_parser,
)

__all__ = [
    # Exceptions
    "AkamaiPurgeError",
    "InvalidArgumentError",
    "InvalidPathError",
    "UnreachableError",
    "ApiRejectedError",
    "ConfigurationError",
    "PersistenceError",
    "TamperingError",
    # Enums
    "PurgeAction",
    "PurgeDomain",
    "PurgeType",
    "ErrorKind",
    "UrlErrorCode",
    "LogLevel",
    "Severity",
    # Configuration
    "CredentialsConfig",
    "EndpointConfig",
    "PurgeDefaultsConfig",
    "PersistenceConfig",
    "LoggingConfig",
    "AkamaiSettings",
    "load_settings_from_file",
    "save_settings_to_file",
    "apply_env_overrides",
    "load_credentials_from_edgerc",
    # Models
    "PurgeRequest",
    "PurgeResponse",
    "StatusSnapshot",
    "PurgeStatus",
    "ApiError",
    "ApiResult",
    "UrlValidationError",
    "NormalizationResult",
    "PurgeResult",
    # URL Normalizer
    "SiteRouter",
    "PatternRouter",
    "UrlNormalizer",
    "normalize_cp_codes",
    # Request Builder
    "ClientSessionState",
    "PurgeRequestBuilder",
    # Signing and transport
    "Signer",
    "EdgeGridSigner",
    "SignedHttpSender",
    # Persistence
    "KeyValueStore",
    "MemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "PurgeStatusStore",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # Client
    "PurgeClient",
    # Diagnostics
    "DiagnosticResult",
    "ConfigValidationResult",
    "QueueLengthCheck",
    "CredentialsValidator",
    "validate_settings",
    # Status log
    "fetch_status",
    "refresh_status",
    "format_status_rows",
    # CLI
    "cli_main",
    "create_parser",
]
