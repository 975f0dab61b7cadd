"""
Configuration dataclasses for the Akamai purge client.

This module defines all configuration structures used throughout the system,
including API credentials, endpoint selection, purge defaults, persistence,
and logging configuration, together with helpers to read and write them
from JSON files, environment variables and ``.edgerc`` files.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from akamai.edgegrid import EdgeRc
from dotenv import find_dotenv, load_dotenv

from .exceptions import ConfigurationError


DEFAULT_API_BASE_PATH = "/ccu/v2"
DEFAULT_STATUS_EXPIRE_SECONDS = 7 * 24 * 60 * 60
DEFAULT_STATE_FILE = Path.home() / ".akamai_purge" / "state.json"
DEFAULT_CONFIG_FILE = Path.home() / ".akamai_purge" / "config.json"

# Keys whose change invalidates the stored credential check
CREDENTIAL_KEYS = ("rest_api_url", "client_token", "client_secret", "access_token")


@dataclass
class CredentialsConfig:
    """EdgeGrid API client credentials."""

    client_token: str = ""
    client_secret: str = ""
    access_token: str = ""
    host: str = ""  # e.g. 'akab-xxxx.purge.akamaiapis.net'

    @property
    def complete(self) -> bool:
        return bool(self.client_token and self.client_secret and self.access_token)


@dataclass
class EndpointConfig:
    """Where API requests are sent."""

    rest_api_url: str = ""
    devel_mode: bool = False
    mock_endpoint: Optional[str] = None
    api_base_path: str = DEFAULT_API_BASE_PATH
    timeout: float = 20.0


@dataclass
class PurgeDefaultsConfig:
    """Defaults applied to new client sessions."""

    action: str = "remove"
    domain: str = "production"
    type: str = "arl"
    queue: str = "default"
    basepath: str = ""  # Site origin used to qualify relative paths
    strict: bool = True  # Reject a whole batch when one path is invalid


@dataclass
class PersistenceConfig:
    """Persistence and status storage configuration."""

    state_file_path: Path = DEFAULT_STATE_FILE
    hmac_secret: str = "default-secret-change-me"
    status_expire: int = DEFAULT_STATUS_EXPIRE_SECONDS


@dataclass
class LoggingConfig:
    """Logging and audit configuration."""

    level: str = "info"
    audit_mode: bool = False
    audit_signing_key: Optional[str] = None
    output_format: str = "text"  # 'json', 'text', 'both'
    log_requests: bool = False


@dataclass
class AkamaiSettings:
    """Main configuration combining all sub-configurations."""

    credentials: CredentialsConfig = field(default_factory=CredentialsConfig)
    endpoint: EndpointConfig = field(default_factory=EndpointConfig)
    defaults: PurgeDefaultsConfig = field(default_factory=PurgeDefaultsConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    known_routes: list[str] = field(default_factory=list)

    @property
    def base_uri(self) -> str:
        """
        Resolve the API origin.

        Devel mode sends everything to the mock endpoint; otherwise the
        configured REST API URL wins over the credential host.

        Raises:
            ConfigurationError: If no origin can be determined
        """
        if self.endpoint.devel_mode:
            if not self.endpoint.mock_endpoint:
                raise ConfigurationError(
                    code="missing_mock_endpoint",
                    message="Devel mode is enabled but no mock endpoint is configured",
                )
            return self.endpoint.mock_endpoint.rstrip("/")
        if self.endpoint.rest_api_url:
            return self.endpoint.rest_api_url.rstrip("/")
        if self.credentials.host:
            host = self.credentials.host
            if "://" not in host:
                host = f"https://{host}"
            return host.rstrip("/")
        raise ConfigurationError(
            code="missing_endpoint",
            message="No REST API URL or EdgeGrid host is configured",
        )

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a setting by its flat key name.

        Args:
            key: One of the keys in FLAT_KEYS
            default: Returned for unknown keys

        Returns:
            The configured value
        """
        path = FLAT_KEYS.get(key)
        if path is None:
            return default
        section, attribute = path
        return getattr(getattr(self, section), attribute)

    def set(self, key: str, value: Any) -> None:
        """
        Update a setting by its flat key name.

        String values are converted to the type of the current value.

        Raises:
            ConfigurationError: If the key is unknown or the value cannot be converted
        """
        path = FLAT_KEYS.get(key)
        if path is None:
            raise ConfigurationError(
                code="unknown_key",
                message=f"Unknown setting: {key}",
                details={"key": key, "options": sorted(FLAT_KEYS)},
            )
        section, attribute = path
        current = getattr(getattr(self, section), attribute)
        if isinstance(value, str):
            try:
                if isinstance(current, bool):
                    value = value.strip().lower() in ("1", "true", "yes", "on")
                elif isinstance(current, int):
                    value = int(value)
                elif isinstance(current, float):
                    value = float(value)
            except ValueError:
                raise ConfigurationError(
                    code="invalid_value",
                    message=f"Invalid value for {key}: {value}",
                    details={"key": key, "value": value},
                )
        setattr(getattr(self, section), attribute, value)


FLAT_KEYS = {
    "client_token": ("credentials", "client_token"),
    "client_secret": ("credentials", "client_secret"),
    "access_token": ("credentials", "access_token"),
    "host": ("credentials", "host"),
    "rest_api_url": ("endpoint", "rest_api_url"),
    "devel_mode": ("endpoint", "devel_mode"),
    "mock_endpoint": ("endpoint", "mock_endpoint"),
    "api_base_path": ("endpoint", "api_base_path"),
    "timeout": ("endpoint", "timeout"),
    "action": ("defaults", "action"),
    "domain": ("defaults", "domain"),
    "type": ("defaults", "type"),
    "queue": ("defaults", "queue"),
    "basepath": ("defaults", "basepath"),
    "strict": ("defaults", "strict"),
    "status_expire": ("persistence", "status_expire"),
    "log_requests": ("logging", "log_requests"),
}


def credentials_changed(old: AkamaiSettings, new: AkamaiSettings) -> bool:
    """True if any setting that affects authorization differs."""
    return any(old.get(key) != new.get(key) for key in CREDENTIAL_KEYS)


def settings_from_dict(data: dict) -> AkamaiSettings:
    """
    Build settings from a parsed JSON document.

    Missing sections and keys fall back to their defaults.
    """
    credentials_data = data.get("credentials", {})
    endpoint_data = data.get("endpoint", {})
    defaults_data = data.get("defaults", {})
    persistence_data = data.get("persistence", {})
    logging_data = data.get("logging", {})

    state_file_path = persistence_data.get("state_file_path")

    return AkamaiSettings(
        credentials=CredentialsConfig(
            client_token=credentials_data.get("client_token", ""),
            client_secret=credentials_data.get("client_secret", ""),
            access_token=credentials_data.get("access_token", ""),
            host=credentials_data.get("host", ""),
        ),
        endpoint=EndpointConfig(
            rest_api_url=endpoint_data.get("rest_api_url", ""),
            devel_mode=endpoint_data.get("devel_mode", False),
            mock_endpoint=endpoint_data.get("mock_endpoint"),
            api_base_path=endpoint_data.get("api_base_path", DEFAULT_API_BASE_PATH),
            timeout=float(endpoint_data.get("timeout", 20.0)),
        ),
        defaults=PurgeDefaultsConfig(
            action=defaults_data.get("action", "remove"),
            domain=defaults_data.get("domain", "production"),
            type=defaults_data.get("type", "arl"),
            queue=defaults_data.get("queue", "default"),
            basepath=defaults_data.get("basepath", ""),
            strict=defaults_data.get("strict", True),
        ),
        persistence=PersistenceConfig(
            state_file_path=Path(state_file_path) if state_file_path else DEFAULT_STATE_FILE,
            hmac_secret=persistence_data.get("hmac_secret", "default-secret-change-me"),
            status_expire=int(persistence_data.get("status_expire", DEFAULT_STATUS_EXPIRE_SECONDS)),
        ),
        logging=LoggingConfig(
            level=logging_data.get("level", "info"),
            audit_mode=logging_data.get("audit_mode", False),
            audit_signing_key=logging_data.get("audit_signing_key"),
            output_format=logging_data.get("output_format", "text"),
            log_requests=logging_data.get("log_requests", False),
        ),
        known_routes=list(data.get("known_routes", [])),
    )


def settings_to_dict(settings: AkamaiSettings) -> dict:
    """Convert settings into a JSON-serializable document."""
    return {
        "credentials": {
            "client_token": settings.credentials.client_token,
            "client_secret": settings.credentials.client_secret,
            "access_token": settings.credentials.access_token,
            "host": settings.credentials.host,
        },
        "endpoint": {
            "rest_api_url": settings.endpoint.rest_api_url,
            "devel_mode": settings.endpoint.devel_mode,
            "mock_endpoint": settings.endpoint.mock_endpoint,
            "api_base_path": settings.endpoint.api_base_path,
            "timeout": settings.endpoint.timeout,
        },
        "defaults": {
            "action": settings.defaults.action,
            "domain": settings.defaults.domain,
            "type": settings.defaults.type,
            "queue": settings.defaults.queue,
            "basepath": settings.defaults.basepath,
            "strict": settings.defaults.strict,
        },
        "persistence": {
            "state_file_path": str(settings.persistence.state_file_path),
            "hmac_secret": settings.persistence.hmac_secret,
            "status_expire": settings.persistence.status_expire,
        },
        "logging": {
            "level": settings.logging.level,
            "audit_mode": settings.logging.audit_mode,
            "audit_signing_key": settings.logging.audit_signing_key,
            "output_format": settings.logging.output_format,
            "log_requests": settings.logging.log_requests,
        },
        "known_routes": list(settings.known_routes),
    }


def load_settings_from_file(config_path: Path) -> Optional[AkamaiSettings]:
    """
    Load settings from a JSON file.

    Args:
        config_path: Path to the configuration file

    Returns:
        AkamaiSettings if the file exists, None otherwise

    Raises:
        ConfigurationError: If the file cannot be parsed
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            code="parse_error",
            message=f"Failed to parse config file: {e}",
            details={"file_path": str(config_path)},
        )

    try:
        return settings_from_dict(data)
    except (AttributeError, TypeError, ValueError) as e:
        raise ConfigurationError(
            code="invalid_config",
            message=f"Invalid configuration: {e}",
            details={"file_path": str(config_path)},
        )


def save_settings_to_file(settings: AkamaiSettings, config_path: Path) -> None:
    """
    Save settings to a JSON file.

    Raises:
        ConfigurationError: If the file cannot be written
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(settings_to_dict(settings), f, indent=2, ensure_ascii=False)
    except OSError as e:
        raise ConfigurationError(
            code="io_error",
            message=f"Failed to write config file: {e}",
            details={"file_path": str(config_path)},
        )


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def apply_env_overrides(settings: AkamaiSettings, dotenv_path: Optional[Path] = None) -> AkamaiSettings:
    """
    Override settings from ``AKAMAI_*`` environment variables.

    A ``.env`` file is loaded first; variables already present in the
    environment take precedence over it.

    Args:
        settings: Settings to update in place
        dotenv_path: Optional explicit .env file

    Returns:
        The same settings object
    """
    load_dotenv(dotenv_path or find_dotenv(usecwd=True))

    credentials = settings.credentials
    credentials.client_token = os.getenv("AKAMAI_CLIENT_TOKEN", credentials.client_token)
    credentials.client_secret = os.getenv("AKAMAI_CLIENT_SECRET", credentials.client_secret)
    credentials.access_token = os.getenv("AKAMAI_ACCESS_TOKEN", credentials.access_token)
    credentials.host = os.getenv("AKAMAI_HOST", credentials.host)

    endpoint = settings.endpoint
    endpoint.rest_api_url = os.getenv("AKAMAI_REST_API_URL", endpoint.rest_api_url)
    endpoint.devel_mode = _bool_env("AKAMAI_DEVEL_MODE", endpoint.devel_mode)
    endpoint.mock_endpoint = os.getenv("AKAMAI_MOCK_ENDPOINT", endpoint.mock_endpoint)
    endpoint.timeout = _float_env("AKAMAI_TIMEOUT", endpoint.timeout)

    settings.defaults.basepath = os.getenv("AKAMAI_BASEPATH", settings.defaults.basepath)
    settings.logging.log_requests = _bool_env("AKAMAI_LOG_REQUESTS", settings.logging.log_requests)

    return settings


def load_credentials_from_edgerc(
    edgerc_path: Path,
    section: str = "default",
) -> CredentialsConfig:
    """
    Read EdgeGrid credentials from an ``.edgerc`` file.

    Raises:
        ConfigurationError: If the file or section is missing
    """
    path = Path(edgerc_path).expanduser()
    if not path.exists():
        raise ConfigurationError(
            code="missing_edgerc",
            message=f"EdgeGrid resource file not found: {path}",
            details={"file_path": str(path)},
        )

    edgerc = EdgeRc(str(path))
    if not edgerc.has_section(section):
        raise ConfigurationError(
            code="missing_edgerc_section",
            message=f"Section '{section}' not found in {path}",
            details={"file_path": str(path), "section": section},
        )

    return CredentialsConfig(
        client_token=edgerc.get(section, "client_token"),
        client_secret=edgerc.get(section, "client_secret"),
        access_token=edgerc.get(section, "access_token"),
        host=edgerc.get(section, "host", fallback=""),
    )
