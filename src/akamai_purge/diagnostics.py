"""
Diagnostics for the Akamai purge client.

Provides a purge queue health check, the stored credential check that is
refreshed whenever credential settings change, and validation of the
configuration before the client is used.
"""

from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlparse

from .config import AkamaiSettings, credentials_changed
from .enums import PurgeAction, PurgeDomain, PurgeType, Severity
from .exceptions import ConfigurationError
from .kv_store import KeyValueStore


@dataclass
class DiagnosticResult:
    """Result of a single diagnostic check."""

    title: str
    severity: Severity
    recommendation: str
    queue_length: Optional[int] = None


@dataclass
class ConfigValidationResult:
    """Result of configuration validation."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class QueueLengthCheck:
    """Reports how many purge requests are waiting in the client's queue."""

    TITLE = "Akamai purge queue"

    def __init__(self, client) -> None:
        """
        Args:
            client: PurgeClient used to query the queue
        """
        self._client = client

    def run(self) -> DiagnosticResult:
        count = self._client.get_queue_length()
        if count is None:
            return DiagnosticResult(
                title=self.TITLE,
                severity=Severity.ERROR,
                recommendation="Unable to read the purge queue. Check the API credentials and endpoint.",
            )
        if count == 0:
            return DiagnosticResult(
                title=self.TITLE,
                severity=Severity.OK,
                recommendation="Purging queue is empty.",
                queue_length=0,
            )
        noun = "item" if count == 1 else "items"
        return DiagnosticResult(
            title=self.TITLE,
            severity=Severity.INFO,
            recommendation=f"{count} {noun} in the queue",
            queue_length=count,
        )


class CredentialsValidator:
    """
    Keeps the result of the last authorization check.

    The result is stored under ``akamai.valid_credentials`` and refreshed
    only when a setting that affects authorization changes.
    """

    VALID_CREDENTIALS_KEY = "akamai.valid_credentials"

    def __init__(self, kv_store: KeyValueStore) -> None:
        self._kv_store = kv_store

    def on_settings_saved(self, old: AkamaiSettings, new: AkamaiSettings, client) -> Optional[bool]:
        """
        Re-check authorization after settings were saved.

        Args:
            old: Settings before the save
            new: Settings after the save
            client: PurgeClient built from the new settings

        Returns:
            The new authorization state, or None if nothing relevant changed
        """
        if not credentials_changed(old, new):
            return None
        return self.check(client)

    def check(self, client) -> bool:
        """Run the authorization check now and store the result."""
        authorized = bool(client.is_authorized())
        self._kv_store.set(self.VALID_CREDENTIALS_KEY, authorized)
        return authorized

    def invalidate(self) -> None:
        self._kv_store.set(self.VALID_CREDENTIALS_KEY, False)

    def is_valid(self) -> bool:
        return bool(self._kv_store.get(self.VALID_CREDENTIALS_KEY, False))


def validate_settings(settings: AkamaiSettings) -> ConfigValidationResult:
    """
    Validate settings before building a client.

    Checks:
    - EdgeGrid credentials are present
    - An API origin can be resolved and uses HTTPS outside devel mode
    - Purge defaults are valid action/domain/type values
    - HMAC secret is not the default value

    Returns:
        ConfigValidationResult with validation status
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not settings.credentials.complete:
        errors.append("EdgeGrid credentials are incomplete (client_token, client_secret, access_token)")

    try:
        base_uri = settings.base_uri
    except ConfigurationError as e:
        errors.append(e.message)
    else:
        if not settings.endpoint.devel_mode and urlparse(base_uri).scheme.lower() != "https":
            errors.append(f"API endpoint must use HTTPS: {base_uri}")

    for label, enum_class, value in (
        ("action", PurgeAction, settings.defaults.action),
        ("domain", PurgeDomain, settings.defaults.domain),
        ("type", PurgeType, settings.defaults.type),
    ):
        options = [member.value for member in enum_class]
        if str(value).lower() not in options:
            errors.append(f"Default {label} must be one of: {', '.join(options)}")

    if not settings.defaults.basepath:
        warnings.append("No basepath configured - relative paths will be rejected, only absolute URLs can be purged")

    if settings.endpoint.timeout <= 0:
        errors.append("Timeout must be positive")

    if not settings.persistence.hmac_secret:
        errors.append("HMAC secret is not configured")
    elif settings.persistence.hmac_secret == "default-secret-change-me":
        warnings.append("HMAC secret is using default value - please change for production")

    return ConfigValidationResult(
        valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )
