"""
Akamai CCU purge client.

Ties together URL normalization, request building, signed transport and
status persistence. Setters fail fast with InvalidArgumentError; network
operations never raise for expected failures and report them through
PurgeResult / ApiResult instead.
"""

import re
from typing import Iterable, Optional

import httpx

from .audit_logger import AuditLogger
from .config import AkamaiSettings
from .enums import ErrorKind, PurgeAction, PurgeDomain, PurgeType
from .exceptions import InvalidArgumentError, PersistenceError
from .http_sender import SignedHttpSender
from .kv_store import JsonFileKeyValueStore
from .models import (
    ApiError,
    ApiResult,
    NormalizationResult,
    PurgeResponse,
    PurgeResult,
)
from .request_builder import ClientSessionState, PurgeRequestBuilder
from .signer import EdgeGridSigner, Signer
from .status_store import PurgeStatusStore
from .url_normalizer import PatternRouter, SiteRouter, UrlNormalizer, normalize_cp_codes


# Queue names end up in the endpoint path
QUEUE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def _parse_enum(enum_class, value, label: str):
    """Resolve a setter value to an enum member or raise InvalidArgumentError."""
    if isinstance(value, enum_class):
        return value
    for member in enum_class:
        if isinstance(value, str) and value.lower() == member.value:
            return member
    options = ", ".join(member.value for member in enum_class)
    raise InvalidArgumentError(
        code=ErrorKind.INVALID_ARGUMENT.value,
        message=f"{label} must be one of: {options}",
        details={"value": value, "options": [m.value for m in enum_class]},
    )


class PurgeClient:
    """
    Client for the Akamai CCU v2 purge API.

    Holds the session defaults (action, domain, type, queue) applied to
    every purge it submits. Setters return the client so calls can be
    chained.
    """

    COMPONENT = "purge_client"

    def __init__(
        self,
        sender: SignedHttpSender,
        session: Optional[ClientSessionState] = None,
        router: Optional[SiteRouter] = None,
        status_store: Optional[PurgeStatusStore] = None,
        logger: Optional[AuditLogger] = None,
        strict: bool = True,
    ) -> None:
        """
        Initialize the client.

        Args:
            sender: Signed transport to the CCU API
            session: Initial session defaults
            router: Site router used to validate relative paths
            status_store: Where submission responses are recorded
            logger: Optional audit logger
            strict: Reject a whole batch if any path is invalid
        """
        self._sender = sender
        self._session = session or ClientSessionState()
        self._router = router or PatternRouter()
        self._status_store = status_store
        self._logger = logger
        self._strict = strict
        self._builder = PurgeRequestBuilder()

    @classmethod
    def from_settings(
        cls,
        settings: AkamaiSettings,
        signer: Optional[Signer] = None,
        router: Optional[SiteRouter] = None,
        status_store: Optional[PurgeStatusStore] = None,
        logger: Optional[AuditLogger] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> "PurgeClient":
        """
        Build a client from settings.

        Missing collaborators are created from the settings: an EdgeGrid
        signer from the credentials, a pattern router from known_routes and
        a file-backed status store from the persistence section.

        Raises:
            ConfigurationError: If credentials or endpoint are missing
            InvalidArgumentError: If configured defaults are invalid
        """
        sender = SignedHttpSender(
            base_uri=settings.base_uri,
            signer=signer or EdgeGridSigner.from_credentials(settings.credentials),
            timeout=settings.endpoint.timeout,
            client=http_client,
            logger=logger,
            log_requests=settings.logging.log_requests,
        )
        if status_store is None:
            status_store = PurgeStatusStore(JsonFileKeyValueStore(
                settings.persistence.state_file_path,
                settings.persistence.hmac_secret,
            ))

        client = cls(
            sender=sender,
            session=ClientSessionState(
                base_url=settings.defaults.basepath,
                api_base_url=settings.endpoint.api_base_path,
            ),
            router=router or PatternRouter(settings.known_routes),
            status_store=status_store,
            logger=logger,
            strict=settings.defaults.strict,
        )
        return (
            client.set_action(settings.defaults.action)
            .set_domain(settings.defaults.domain)
            .set_type(settings.defaults.type)
            .set_queue(settings.defaults.queue)
        )

    def __enter__(self) -> "PurgeClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self._sender.close()

    @property
    def session(self) -> ClientSessionState:
        return self._session

    @property
    def status_store(self) -> Optional[PurgeStatusStore]:
        return self._status_store

    # Session setters

    def set_action(self, action) -> "PurgeClient":
        """
        Set the purge action.

        Raises:
            InvalidArgumentError: If action is not 'remove' or 'invalidate'
        """
        self._session = self._session.with_changes(
            action=_parse_enum(PurgeAction, action, "Action"),
        )
        return self

    def set_domain(self, domain) -> "PurgeClient":
        self._session = self._session.with_changes(
            domain=_parse_enum(PurgeDomain, domain, "Domain"),
        )
        return self

    def set_type(self, purge_type) -> "PurgeClient":
        self._session = self._session.with_changes(
            type=_parse_enum(PurgeType, purge_type, "Type"),
        )
        return self

    def set_queue(self, queue: str) -> "PurgeClient":
        """
        Set the submission queue.

        Raises:
            InvalidArgumentError: If the name is empty or not path-safe
        """
        if not isinstance(queue, str) or not QUEUE_NAME_PATTERN.match(queue):
            raise InvalidArgumentError(
                code=ErrorKind.INVALID_ARGUMENT.value,
                message="Queue must be a non-empty name of letters, digits, '.', '_' or '-'",
                details={"value": queue},
            )
        self._session = self._session.with_changes(queue=queue)
        return self

    # URL handling

    def _normalizer(self) -> UrlNormalizer:
        return UrlNormalizer(self._session.base_url, self._router)

    def normalize_urls(self, paths: Iterable[str]) -> NormalizationResult:
        """Qualify and route-check paths, or validate CP codes for the cpcode type."""
        if self._session.type is PurgeType.CPCODE:
            return normalize_cp_codes(paths)
        return self._normalizer().normalize_many(paths)

    def is_managed_url(self, url: str) -> bool:
        return self._normalizer().is_managed_url(url)

    def create_purge_body(self, urls: Iterable[str]) -> dict:
        return self._builder.create_purge_body(urls, self._session)

    # Network operations

    def purge_url(self, url: str) -> PurgeResult:
        return self.purge_urls([url])

    def purge_urls(self, urls: Iterable[str], strict: Optional[bool] = None) -> PurgeResult:
        """
        Submit a purge for a batch of paths or URLs.

        Args:
            urls: Relative paths or absolute URLs, or CP codes for the cpcode type
            strict: Override the client's batch policy. Strict rejects the
                whole batch when any path is invalid; lenient submits the
                valid subset and reports the rest in ``rejected``.

        Returns:
            PurgeResult; on success the response is also recorded in the
            status store together with the submitted URLs. A storage failure
            leaves ``recorded`` false and sets ``record_error``.
        """
        strict = self._strict if strict is None else strict
        normalized = self.normalize_urls(urls)

        if normalized.errors and (strict or not normalized.urls):
            return self._invalid_batch(normalized)
        if not normalized.urls:
            return self._invalid_batch(normalized, "No URLs to purge")

        request = self._builder.build(normalized.urls, self._session)
        result = self._sender.send(
            "POST",
            self._builder.queue_path(self._session, request.queue),
            request.to_body(),
        )

        if not result.success:
            if self._logger:
                self._logger.log_error(
                    self.COMPONENT,
                    "Purge request failed",
                    response_status_code=result.http_status_code or None,
                    additional_data={
                        "urls": normalized.urls,
                        "error_kind": result.error.kind.value if result.error else None,
                        "error_message": result.error.message if result.error else None,
                    },
                )
            return PurgeResult(
                success=False,
                urls_queued=[],
                rejected=normalized.errors,
                api_result=result,
            )

        response = PurgeResponse.from_dict(result.body if isinstance(result.body, dict) else {})
        recorded, record_error = self._record(result, normalized.urls)

        if self._logger:
            self._logger.info(
                self.COMPONENT,
                f"Queued {len(normalized.urls)} URL(s) for purging",
                {"purge_id": response.purge_id, "support_id": response.support_id},
            )

        return PurgeResult(
            success=True,
            urls_queued=normalized.urls,
            rejected=normalized.errors,
            response=response,
            api_result=result,
            recorded=recorded,
            record_error=record_error,
        )

    def _record(self, result: ApiResult, urls: list[str]) -> tuple[bool, Optional[str]]:
        """
        Store an accepted submission.

        The purge is already queued upstream, so a storage failure is logged
        and reported on the result instead of raised.
        """
        if self._status_store is None:
            return False, None
        try:
            self._status_store.save_response(result, urls)
        except PersistenceError as e:
            if self._logger:
                self._logger.log_error(
                    self.COMPONENT,
                    "Purge accepted but its status could not be stored",
                    error=e,
                    additional_data={"error_code": e.code, "urls": urls},
                )
            return False, e.message
        return True, None

    def get_queue(self, queue: Optional[str] = None) -> ApiResult:
        """Fetch the raw queue resource."""
        return self._sender.send("GET", self._builder.queue_path(self._session, queue))

    def get_queue_length(self, queue: Optional[str] = None) -> Optional[int]:
        """
        Get the number of items waiting in a purge queue.

        Returns:
            The queue length, or None if it could not be determined
        """
        result = self.get_queue(queue)
        if not result.success or not isinstance(result.body, dict):
            return None
        length = result.body.get("queueLength")
        try:
            return int(length)
        except (TypeError, ValueError):
            if self._logger:
                self._logger.warn(
                    self.COMPONENT,
                    "Queue response has no numeric queueLength field",
                    {"body": result.body},
                )
            return None

    def is_authorized(self) -> bool:
        """True if the credentials can read the queue (HTTP 200 with queueLength)."""
        result = self.get_queue()
        return (
            result.success
            and result.http_status_code == 200
            and isinstance(result.body, dict)
            and "queueLength" in result.body
        )

    def get_purge_status(self, purge_id: str) -> ApiResult:
        """
        Fetch the current status of a purge.

        The result is not persisted; callers feed it to the status store.
        """
        return self._sender.send(
            "GET",
            self._builder.purge_status_path(purge_id, self._session),
        )

    def _invalid_batch(
        self,
        normalized: NormalizationResult,
        message: Optional[str] = None,
    ) -> PurgeResult:
        paths = [error.path for error in normalized.errors]
        message = message or f"{len(paths)} invalid path(s): {', '.join(paths)}"
        if self._logger:
            self._logger.warn(self.COMPONENT, message, {"paths": paths})
        return PurgeResult(
            success=False,
            urls_queued=[],
            rejected=normalized.errors,
            api_result=ApiResult(
                success=False,
                http_status_code=0,
                body=None,
                error=ApiError(
                    kind=ErrorKind.INVALID_PATH,
                    message=message,
                    details={
                        "paths": paths,
                        "errors": {e.path: e.message for e in normalized.errors},
                    },
                ),
            ),
        )
