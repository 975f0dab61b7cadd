"""
URL normalization module.

Turns user-supplied paths and URLs into the fully-qualified, deduplicated
form the CCU API expects, rejecting malformed URLs and paths the site does
not route.
"""

import fnmatch
import re
from typing import Iterable, Optional, Protocol, runtime_checkable
from urllib.parse import urlsplit, urlunsplit

import idna

from .enums import UrlErrorCode
from .exceptions import InvalidPathError
from .models import NormalizationResult, UrlValidationError


# scheme:// prefix marking an absolute URL
ABSOLUTE_URL_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


@runtime_checkable
class SiteRouter(Protocol):
    """Answers whether the host site serves a path."""

    def is_known_route(self, path: str) -> bool:
        ...


class PatternRouter:
    """
    Router backed by shell-style path patterns.

    An empty pattern list accepts every path.
    """

    def __init__(self, patterns: Optional[Iterable[str]] = None) -> None:
        self._patterns = [p.strip("/") for p in (patterns or [])]

    def is_known_route(self, path: str) -> bool:
        if not self._patterns:
            return True
        candidate = path.split("?", 1)[0].split("#", 1)[0].strip("/")
        return any(fnmatch.fnmatchcase(candidate, pattern) for pattern in self._patterns)


class UrlNormalizer:
    """
    Normalizes paths against a site base URL.

    Handles:
    - Pass-through of absolute http(s) URLs (host IDNA-encoded)
    - Qualification of relative paths against the base URL
    - Route validation through the site router
    - Batch normalization with per-path error reporting
    """

    ALLOWED_SCHEMES = ("http", "https")

    def __init__(self, base_url: str, router: Optional[SiteRouter] = None) -> None:
        """
        Initialize the normalizer.

        Args:
            base_url: Fully-qualified site origin (e.g. 'http://example.com')
            router: Route lookup; defaults to accepting every path
        """
        self._base_url = base_url
        self._router = router or PatternRouter()

    @property
    def base_url(self) -> str:
        return self._base_url

    def normalize(self, raw_path: str) -> str:
        """
        Normalize a single path or URL.

        Args:
            raw_path: A relative path ('node/1') or absolute URL

        Returns:
            The fully-qualified URL

        Raises:
            InvalidPathError: If the URL is malformed or the path is not routed
        """
        outcome = self._check(raw_path)
        if isinstance(outcome, UrlValidationError):
            raise InvalidPathError(
                code=outcome.code.value,
                message=outcome.message,
                details={"path": raw_path},
            )
        return outcome

    def normalize_many(self, raw_paths: Iterable[str]) -> NormalizationResult:
        """
        Normalize a batch of paths, collecting every failure.

        Blank entries are skipped and duplicates keep their first position.

        Args:
            raw_paths: Paths or URLs, typically one per input line

        Returns:
            NormalizationResult with the valid URLs and per-path errors
        """
        result = NormalizationResult()
        seen = set()
        for raw_path in raw_paths:
            if raw_path is None or not raw_path.strip():
                continue
            outcome = self._check(raw_path)
            if isinstance(outcome, UrlValidationError):
                result.errors.append(outcome)
            elif outcome not in seen:
                seen.add(outcome)
                result.urls.append(outcome)
        return result

    def is_managed_url(self, url: str, base_url: Optional[str] = None) -> bool:
        """
        Check whether a URL lives under the base URL.

        This is a prefix comparison, not an authority parse.
        """
        base = (base_url if base_url is not None else self._base_url).strip().rstrip("/")
        if not base:
            return False
        return url.strip().startswith(base)

    def has_site_origin(self) -> bool:
        """True if the base URL has an http(s) scheme and a host."""
        try:
            parts = urlsplit(self._base_url.strip())
        except ValueError:
            return False
        return parts.scheme.lower() in self.ALLOWED_SCHEMES and bool(parts.hostname)

    def _check(self, raw_path: str):
        """Return the normalized URL or a UrlValidationError."""
        if raw_path is None:
            return UrlValidationError(
                path="",
                code=UrlErrorCode.EMPTY_INPUT,
                message="Path is empty",
            )

        path = raw_path.strip()

        if ABSOLUTE_URL_PATTERN.match(path):
            return self._check_absolute(raw_path, path)

        path = path.lstrip("/")
        if path and not self._router.is_known_route(path):
            return UrlValidationError(
                path=raw_path,
                code=UrlErrorCode.UNKNOWN_ROUTE,
                message=f"The path '{path}' is not a valid path on this site",
            )

        if not self.has_site_origin():
            return UrlValidationError(
                path=raw_path,
                code=UrlErrorCode.MISSING_BASE_URL,
                message=f"Cannot qualify '{path}': no http(s) base URL is configured",
            )

        return self._base_url.rstrip("/") + "/" + path

    def _check_absolute(self, raw_path: str, url: str):
        try:
            parts = urlsplit(url)
            host = parts.hostname
            port = parts.port
        except ValueError as e:
            return UrlValidationError(
                path=raw_path,
                code=UrlErrorCode.MALFORMED_URL,
                message=f"'{url}' is not a well-formed URL: {e}",
            )

        if parts.scheme.lower() not in self.ALLOWED_SCHEMES or not host:
            return UrlValidationError(
                path=raw_path,
                code=UrlErrorCode.MALFORMED_URL,
                message=f"'{url}' is not a well-formed http(s) URL",
            )
        if any(c.isspace() for c in url):
            return UrlValidationError(
                path=raw_path,
                code=UrlErrorCode.MALFORMED_URL,
                message=f"'{url}' contains whitespace",
            )

        if all(ord(c) < 128 for c in host):
            return url

        # Non-ASCII hosts are sent in their IDNA form
        try:
            ascii_host = idna.encode(host, uts46=True).decode("ascii")
        except idna.IDNAError as e:
            return UrlValidationError(
                path=raw_path,
                code=UrlErrorCode.MALFORMED_URL,
                message=f"IDNA encoding failed: {e}",
            )
        netloc = parts.netloc.rpartition("@")
        userinfo = netloc[0] + netloc[1]
        if port is not None:
            ascii_host = f"{ascii_host}:{port}"
        return urlunsplit((
            parts.scheme,
            userinfo + ascii_host,
            parts.path,
            parts.query,
            parts.fragment,
        ))


def normalize_cp_codes(raw_codes: Iterable[str]) -> NormalizationResult:
    """
    Validate a batch of CP codes.

    CP codes are sent as they are, without qualification or route checks.
    Blank entries are skipped and duplicates keep their first position.

    Returns:
        NormalizationResult with the valid codes and per-entry errors
    """
    result = NormalizationResult()
    seen = set()
    for raw_code in raw_codes:
        if raw_code is None or not str(raw_code).strip():
            continue
        code = str(raw_code).strip()
        if not (code.isascii() and code.isdigit()):
            result.errors.append(UrlValidationError(
                path=str(raw_code),
                code=UrlErrorCode.INVALID_CP_CODE,
                message=f"'{code}' is not a CP code (expected digits only)",
            ))
        elif code not in seen:
            seen.add(code)
            result.urls.append(code)
    return result
