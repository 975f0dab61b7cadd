"""
Request and error logging for the Akamai purge client.

Entries go to a stream as JSON lines, plain text, or both. In audit mode each
entry carries an HMAC-SHA256 signature so an exported log can be checked for
edits. EdgeGrid tokens, secrets and Authorization headers are replaced before
an entry is stored or written.
"""

import hashlib
import hmac
import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

from .config import LoggingConfig
from .enums import LogLevel


OUTPUT_FORMATS = ("json", "text", "both")

_SEVERITY = {
    LogLevel.DEBUG: 10,
    LogLevel.INFO: 20,
    LogLevel.WARN: 30,
    LogLevel.ERROR: 40,
}

# Substrings of a key that mark its value as a credential
_CREDENTIAL_MARKERS = (
    "client_token",
    "client_secret",
    "access_token",
    "authorization",
    "hmac_secret",
    "signing_key",
    "credential",
    "password",
    "secret",
    "token",
)


def _is_credential_key(key: Any) -> bool:
    lowered = str(key).lower()
    return any(marker in lowered for marker in _CREDENTIAL_MARKERS)


def _redact(value: Any, replacement: str) -> Any:
    if isinstance(value, dict):
        return {
            key: replacement if _is_credential_key(key) else _redact(item, replacement)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_redact(item, replacement) for item in value]
    return value


@dataclass
class LogEntry:
    """One logged event."""

    timestamp: str
    level: LogLevel
    component: str
    message: str
    data: dict = field(default_factory=dict)
    signature: Optional[str] = None

    def payload(self) -> dict:
        """Signed fields, without the signature itself."""
        return {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "component": self.component,
            "message": self.message,
            "data": self.data,
        }

    def to_json(self) -> str:
        record = self.payload()
        if self.signature:
            record["signature"] = self.signature
        return json.dumps(record, ensure_ascii=False, default=str)

    def to_text(self) -> str:
        line = f"[{self.timestamp}] {self.level.value.upper()} [{self.component}] {self.message}"
        if self.data:
            line = f"{line} {json.dumps(self.data, ensure_ascii=False, default=str)}"
        if self.signature:
            line = f"{line} [sig:{self.signature[:16]}...]"
        return line


class AuditLogger:
    """
    Structured logger used by the sender and the client.

    Entries below ``min_level`` are discarded. Accepted entries are kept in
    memory (see ``entries``) and written to the output stream.
    """

    MASK_VALUE = "***MASKED***"

    def __init__(
        self,
        output_format: str = "text",
        output_stream: Optional[TextIO] = None,
        min_level: LogLevel = LogLevel.DEBUG,
    ):
        """
        Args:
            output_format: 'json', 'text' or 'both'
            output_stream: Where entries are written (sys.stderr by default)
            min_level: Lowest level that is recorded
        """
        if output_format not in OUTPUT_FORMATS:
            raise ValueError(f"Invalid output_format: {output_format}")

        self._format = output_format
        self._stream = output_stream or sys.stderr
        self._min_level = min_level
        self._key: Optional[bytes] = None
        self._entries: list[LogEntry] = []

    @classmethod
    def from_config(
        cls,
        config: LoggingConfig,
        output_stream: Optional[TextIO] = None,
    ) -> "AuditLogger":
        try:
            min_level = LogLevel(config.level.lower())
        except ValueError:
            min_level = LogLevel.INFO

        logger = cls(config.output_format, output_stream, min_level)
        if config.audit_mode and config.audit_signing_key:
            logger.enable_audit_mode(config.audit_signing_key)
        return logger

    @property
    def audit_mode(self) -> bool:
        return self._key is not None

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def enable_audit_mode(self, signing_key: str) -> None:
        """Sign every following entry with HMAC-SHA256 under signing_key."""
        if not signing_key:
            raise ValueError("Signing key cannot be empty")
        self._key = signing_key.encode("utf-8")

    def disable_audit_mode(self) -> None:
        self._key = None

    def log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        data: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """
        Record and write an entry.

        Returns:
            The entry, or None if its level is below the minimum
        """
        if _SEVERITY[level] < _SEVERITY[self._min_level]:
            return None

        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            component=component,
            message=message,
            data=self.mask_sensitive_data(data or {}),
        )
        if self._key is not None:
            entry.signature = self._sign(entry)

        self._entries.append(entry)
        self._write(entry)
        return entry

    def debug(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.DEBUG, component, message, data)

    def info(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.INFO, component, message, data)

    def warn(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.WARN, component, message, data)

    def error(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.ERROR, component, message, data)

    def log_error(
        self,
        component: str,
        message: str,
        error: Optional[Exception] = None,
        request_url: Optional[str] = None,
        response_status_code: Optional[int] = None,
        additional_data: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """
        Log a failed API call.

        The exception type and text, the request URL and the response status
        are added to ``additional_data`` when given.
        """
        context = dict(additional_data or {})
        if error is not None:
            context.update(error_message=str(error), error_type=type(error).__name__)
        context.update({
            key: value
            for key, value in (
                ("request_url", request_url),
                ("response_status_code", response_status_code),
            )
            if value is not None
        })
        return self.log(LogLevel.ERROR, component, message, context)

    def mask_sensitive_data(self, data: dict) -> dict:
        """Copy of data with credential values replaced by MASK_VALUE, at any depth."""
        if not isinstance(data, dict):
            return data
        return _redact(data, self.MASK_VALUE)

    def verify_signature(self, entry: LogEntry) -> bool:
        """False for unsigned entries, when audit mode is off, or when the entry was edited."""
        if not entry.signature or self._key is None:
            return False
        return hmac.compare_digest(entry.signature, self._sign(entry))

    def _sign(self, entry: LogEntry) -> str:
        content = json.dumps(entry.payload(), sort_keys=True, ensure_ascii=False, default=str)
        return hmac.new(self._key, content.encode("utf-8"), hashlib.sha256).hexdigest()

    def _write(self, entry: LogEntry) -> None:
        lines = []
        if self._format in ("json", "both"):
            lines.append(entry.to_json())
        if self._format in ("text", "both"):
            lines.append(entry.to_text())
        self._stream.write("".join(f"{line}\n" for line in lines))
        self._stream.flush()
