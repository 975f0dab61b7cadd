"""
Data models for the Akamai purge client.

This module defines the purge request and response structures, the
persisted status snapshots, and the result objects returned by network
operations.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from .enums import ErrorKind, PurgeAction, PurgeDomain, PurgeType, UrlErrorCode
from .exceptions import (
    ApiRejectedError,
    InvalidArgumentError,
    InvalidPathError,
    UnreachableError,
)


# Description reported by the CCU API once a purge has finished
PURGE_COMPLETE_STATUS = "Done"


@dataclass
class PurgeRequest:
    """A single purge submission."""

    objects: list[str]
    action: PurgeAction = PurgeAction.REMOVE
    domain: PurgeDomain = PurgeDomain.PRODUCTION
    type: PurgeType = PurgeType.ARL
    queue: str = "default"

    def __post_init__(self) -> None:
        if not self.objects:
            raise ValueError("A purge request needs at least one object")

    def to_body(self) -> dict:
        """
        Build the JSON body expected by the queues endpoint.

        All four fields are always present, defaults included.
        """
        return {
            "objects": list(self.objects),
            "action": self.action.value,
            "domain": self.domain.value,
            "type": self.type.value,
        }


@dataclass
class PurgeResponse:
    """Response of an accepted purge submission."""

    purge_id: str
    support_id: str
    http_status: int
    detail: str
    estimated_seconds: Optional[int] = None
    ping_after_seconds: Optional[int] = None
    progress_uri: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "PurgeResponse":
        return cls(
            purge_id=data.get("purgeId", ""),
            support_id=data.get("supportId", ""),
            http_status=int(data.get("httpStatus", 0) or 0),
            detail=data.get("detail", ""),
            estimated_seconds=data.get("estimatedSeconds"),
            ping_after_seconds=data.get("pingAfterSeconds"),
            progress_uri=data.get("progressUri"),
        )


@dataclass
class StatusSnapshot:
    """
    One stored status entry for a purge.

    The upstream map is kept in ``raw``; ``description`` is resolved from
    ``purgeStatus`` (status checks) or ``detail`` (submissions).
    """

    purge_id: str
    support_id: str
    http_status: int
    description: str
    request_made_at: float
    urls_queued: Optional[list[str]] = None
    raw: dict = field(default_factory=dict)

    @staticmethod
    def resolve_description(data: dict) -> str:
        if "purgeStatus" in data:
            return str(data["purgeStatus"])
        if "detail" in data:
            return str(data["detail"])
        return ""

    @classmethod
    def from_dict(cls, data: dict) -> "StatusSnapshot":
        """Rebuild a snapshot from its stored map."""
        raw = {
            key: value
            for key, value in data.items()
            if key not in ("request_made_at", "urls_queued")
        }
        urls = data.get("urls_queued")
        return cls(
            purge_id=data.get("purgeId", ""),
            support_id=data.get("supportId", ""),
            http_status=int(data.get("httpStatus", 0) or 0),
            description=cls.resolve_description(data),
            request_made_at=float(data.get("request_made_at", 0.0)),
            urls_queued=list(urls) if urls is not None else None,
            raw=raw,
        )

    def to_dict(self) -> dict:
        """Convert to the stored map (upstream keys plus local additions)."""
        data = dict(self.raw)
        data.setdefault("purgeId", self.purge_id)
        data["request_made_at"] = self.request_made_at
        if self.urls_queued is not None:
            data["urls_queued"] = list(self.urls_queued)
        return data


class PurgeStatus:
    """Read view over the snapshot history of one purge."""

    def __init__(self, snapshots: list[StatusSnapshot]) -> None:
        if not snapshots:
            raise ValueError("A purge status needs at least one snapshot")
        self._snapshots = list(snapshots)

        urls: list[str] = []
        for snapshot in self._snapshots:
            if snapshot.urls_queued:
                urls.extend(snapshot.urls_queued)
        self._urls = urls

    @property
    def most_recent_request(self) -> StatusSnapshot:
        return self._snapshots[-1]

    @property
    def purge_id(self) -> str:
        return self.most_recent_request.purge_id

    @property
    def support_id(self) -> str:
        return self.most_recent_request.support_id

    @property
    def description(self) -> str:
        return self.most_recent_request.description

    @property
    def http_code(self) -> int:
        return self.most_recent_request.http_status

    @property
    def last_checked_time(self) -> float:
        return self.most_recent_request.request_made_at

    @property
    def urls(self) -> list[str]:
        """All URLs queued across every submission sharing this purge id."""
        return list(self._urls)

    @property
    def snapshots(self) -> list[StatusSnapshot]:
        return list(self._snapshots)

    @property
    def is_complete(self) -> bool:
        return self.description == PURGE_COMPLETE_STATUS


@dataclass
class ApiError:
    """Error information from a CCU API call."""

    kind: ErrorKind
    message: str
    details: dict = field(default_factory=dict)
    http_status_code: Optional[int] = None


@dataclass
class ApiResult:
    """Outcome of a single signed request."""

    success: bool
    http_status_code: int
    body: Optional[Any]
    error: Optional[ApiError]
    response_time_ms: float = 0.0

    def raise_for_error(self) -> None:
        """
        Turn a failed result into an exception.

        Raises:
            UnreachableError: If the API could not be reached
            ApiRejectedError: If the API answered with a non-2xx status
            InvalidPathError: If the request was never sent because of bad paths
            InvalidArgumentError: For any other local rejection
        """
        if self.error is None:
            return
        if self.error.kind == ErrorKind.UNREACHABLE:
            exc_class = UnreachableError
        elif self.error.kind == ErrorKind.API_REJECTED:
            exc_class = ApiRejectedError
        elif self.error.kind == ErrorKind.INVALID_PATH:
            exc_class = InvalidPathError
        else:
            exc_class = InvalidArgumentError
        raise exc_class(
            code=self.error.kind.value,
            message=self.error.message,
            details=self.error.details,
        )


@dataclass
class UrlValidationError:
    """Why a single path was rejected."""

    path: str
    code: UrlErrorCode
    message: str


@dataclass
class NormalizationResult:
    """Outcome of normalizing a batch of paths."""

    urls: list[str] = field(default_factory=list)
    errors: list[UrlValidationError] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


@dataclass
class PurgeResult:
    """Outcome of a purge submission."""

    success: bool
    urls_queued: list[str]
    rejected: list[UrlValidationError] = field(default_factory=list)
    response: Optional[PurgeResponse] = None
    api_result: Optional[ApiResult] = None
    recorded: bool = False  # Response stored in the status store
    record_error: Optional[str] = None

    @property
    def error(self) -> Optional[ApiError]:
        if self.api_result is None:
            return None
        return self.api_result.error
