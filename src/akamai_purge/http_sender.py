"""
Signed HTTP transport for the CCU API.

Builds requests against the API origin, has them signed, sends them and
classifies the outcome. Expected failures come back as ApiResult values
instead of exceptions.
"""

import json
import time
from typing import Any, Optional

import httpx

from .audit_logger import AuditLogger
from .enums import ErrorKind
from .models import ApiError, ApiResult
from .signer import Signer


def flatten_error_body(data: Any, prefix: str = "") -> dict:
    """
    Flatten a JSON error body into dotted key/value pairs.

    ``{"detail": "x", "errors": {"code": 1}}`` becomes
    ``{"detail": "x", "errors.code": 1}``.
    """
    flat: dict = {}
    if isinstance(data, dict):
        for key, value in data.items():
            name = f"{prefix}.{key}" if prefix else str(key)
            if isinstance(value, (dict, list)):
                flat.update(flatten_error_body(value, name))
            else:
                flat[name] = value
    elif isinstance(data, list):
        for index, value in enumerate(data):
            name = f"{prefix}.{index}" if prefix else str(index)
            if isinstance(value, (dict, list)):
                flat.update(flatten_error_body(value, name))
            else:
                flat[name] = value
    else:
        flat[prefix or "message"] = data
    return flat


class SignedHttpSender:
    """
    Sends signed JSON requests to the CCU API.

    Outcomes:
    - transport failure (DNS, connect, timeout) -> UNREACHABLE
    - non-2xx response -> API_REJECTED with the flattened error body
    - 2xx response -> success with the parsed JSON body
    """

    COMPONENT = "http_sender"

    def __init__(
        self,
        base_uri: str,
        signer: Signer,
        timeout: float = 20.0,
        client: Optional[httpx.Client] = None,
        logger: Optional[AuditLogger] = None,
        log_requests: bool = False,
    ) -> None:
        """
        Initialize the sender.

        Args:
            base_uri: API origin, e.g. 'https://akab-xxx.purge.akamaiapis.net'
            signer: Request signing capability
            timeout: Per-request timeout in seconds
            client: Optional httpx client (tests inject a MockTransport here)
            logger: Optional audit logger
            log_requests: Log every request and response at info level
        """
        self._base_uri = base_uri.rstrip("/")
        self._signer = signer
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(
            timeout=httpx.Timeout(timeout),
        )
        self._logger = logger
        self._log_requests = log_requests

    def __enter__(self) -> "SignedHttpSender":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def base_uri(self) -> str:
        return self._base_uri

    def url_for(self, path: str) -> str:
        return f"{self._base_uri}/{path.lstrip('/')}"

    def send(self, method: str, path: str, body: Optional[dict] = None) -> ApiResult:
        """
        Send a signed request.

        Args:
            method: HTTP method
            path: Path below the API origin, e.g. '/ccu/v2/queues/default'
            body: Optional JSON body

        Returns:
            ApiResult describing the outcome
        """
        start_time = time.perf_counter()
        url = self.url_for(path)

        headers = {"Accept": "application/json"}
        if body is not None:
            request = self._client.build_request(
                method, url, json=body, headers=headers, timeout=self._timeout,
            )
        else:
            request = self._client.build_request(
                method, url, headers=headers, timeout=self._timeout,
            )
        request = self._signer.sign(request)

        if self._log_requests and self._logger:
            self._logger.info(
                self.COMPONENT,
                f"{method} {url}",
                {"body": body} if body is not None else None,
            )

        try:
            response = self._client.send(request)
        except httpx.TransportError as e:
            return self._unreachable(method, url, e, start_time)

        response_time_ms = self._elapsed_ms(start_time)

        if self._log_requests and self._logger:
            self._logger.info(
                self.COMPONENT,
                f"{method} {url} -> {response.status_code}",
                {"response_time_ms": round(response_time_ms, 2)},
            )

        if response.is_success:
            return ApiResult(
                success=True,
                http_status_code=response.status_code,
                body=self._parse_body(response),
                error=None,
                response_time_ms=response_time_ms,
            )

        return self._rejected(method, url, response, response_time_ms)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return {}

    def _rejected(
        self,
        method: str,
        url: str,
        response: httpx.Response,
        response_time_ms: float,
    ) -> ApiResult:
        try:
            error_body = response.json()
            details = flatten_error_body(error_body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            error_body = None
            details = {"message": response.text or response.reason_phrase}

        message = f"CCU API rejected {method} request with HTTP {response.status_code}"
        if isinstance(error_body, dict) and error_body.get("detail"):
            message = f"{message}: {error_body['detail']}"

        if self._logger:
            self._logger.log_error(
                self.COMPONENT,
                message,
                request_url=url,
                response_status_code=response.status_code,
                additional_data={"details": details},
            )

        return ApiResult(
            success=False,
            http_status_code=response.status_code,
            body=error_body,
            error=ApiError(
                kind=ErrorKind.API_REJECTED,
                message=message,
                details=details,
                http_status_code=response.status_code,
            ),
            response_time_ms=response_time_ms,
        )

    def _unreachable(
        self,
        method: str,
        url: str,
        error: httpx.TransportError,
        start_time: float,
    ) -> ApiResult:
        if isinstance(error, httpx.TimeoutException):
            message = f"CCU API request timed out after {self._timeout}s"
        else:
            message = f"CCU API unreachable: {error}"

        if self._logger:
            self._logger.log_error(
                self.COMPONENT,
                message,
                error=error,
                request_url=url,
                additional_data={"method": method},
            )

        return ApiResult(
            success=False,
            http_status_code=0,
            body=None,
            error=ApiError(
                kind=ErrorKind.UNREACHABLE,
                message=message,
                details={"error_type": type(error).__name__},
            ),
            response_time_ms=self._elapsed_ms(start_time),
        )

    def _elapsed_ms(self, start_time: float) -> float:
        return (time.perf_counter() - start_time) * 1000
