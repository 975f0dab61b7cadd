"""
Request signing for the CCU API.

The EdgeGrid algorithm is provided by ``edgegrid-python``, which signs
``requests`` objects. EdgeGridSigner re-expresses an httpx request in that
form, signs it and copies the resulting Authorization header back.
"""

from pathlib import Path
from typing import Protocol, runtime_checkable

import httpx
import requests
from akamai.edgegrid import EdgeGridAuth

from .config import CredentialsConfig, load_credentials_from_edgerc
from .exceptions import ConfigurationError


@runtime_checkable
class Signer(Protocol):
    """Attaches authentication headers to an outgoing request."""

    def sign(self, request: httpx.Request) -> httpx.Request:
        ...


class EdgeGridSigner:
    """Signs requests with EdgeGrid client credentials."""

    DEFAULT_MAX_BODY = 131072

    def __init__(
        self,
        client_token: str,
        client_secret: str,
        access_token: str,
        max_body: int = DEFAULT_MAX_BODY,
    ) -> None:
        """
        Initialize the signer.

        Args:
            client_token: EdgeGrid client token
            client_secret: EdgeGrid client secret
            access_token: EdgeGrid access token
            max_body: Maximum number of body bytes covered by the signature

        Raises:
            ConfigurationError: If any credential is missing
        """
        if not (client_token and client_secret and access_token):
            raise ConfigurationError(
                code="missing_credentials",
                message="client_token, client_secret and access_token are all required",
            )
        self._auth = EdgeGridAuth(
            client_token=client_token,
            client_secret=client_secret,
            access_token=access_token,
            max_body=max_body,
        )

    @classmethod
    def from_credentials(cls, credentials: CredentialsConfig) -> "EdgeGridSigner":
        return cls(
            client_token=credentials.client_token,
            client_secret=credentials.client_secret,
            access_token=credentials.access_token,
        )

    @classmethod
    def from_edgerc(cls, edgerc_path: Path, section: str = "default") -> "EdgeGridSigner":
        return cls.from_credentials(load_credentials_from_edgerc(edgerc_path, section))

    def sign(self, request: httpx.Request) -> httpx.Request:
        prepared = requests.Request(
            method=request.method,
            url=str(request.url),
            headers=dict(request.headers),
            data=request.content or None,
        ).prepare()
        self._auth(prepared)
        request.headers["Authorization"] = prepared.headers["Authorization"]
        return request
