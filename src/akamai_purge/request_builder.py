"""
Purge request construction.

Holds the per-client session state (action, domain, type, queue) and turns
a list of URLs into the payload and endpoint paths of the CCU API.
"""

import dataclasses
from dataclasses import dataclass
from typing import Iterable, Optional

from .config import DEFAULT_API_BASE_PATH
from .enums import PurgeAction, PurgeDomain, PurgeType
from .models import PurgeRequest


@dataclass(frozen=True)
class ClientSessionState:
    """Defaults applied to purges made by one client."""

    action: PurgeAction = PurgeAction.REMOVE
    domain: PurgeDomain = PurgeDomain.PRODUCTION
    type: PurgeType = PurgeType.ARL
    queue: str = "default"
    base_url: str = ""
    api_base_url: str = DEFAULT_API_BASE_PATH

    def with_changes(self, **changes) -> "ClientSessionState":
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)


class PurgeRequestBuilder:
    """Builds purge payloads from session state. Performs no I/O."""

    def build(self, urls: Iterable[str], session: ClientSessionState) -> PurgeRequest:
        """
        Assemble a purge request.

        Args:
            urls: Fully-qualified URLs (or CP codes for the cpcode type)
            session: Current session defaults

        Returns:
            PurgeRequest carrying every field explicitly

        Raises:
            ValueError: If no URLs are given
        """
        return PurgeRequest(
            objects=list(urls),
            action=session.action,
            domain=session.domain,
            type=session.type,
            queue=session.queue,
        )

    def create_purge_body(self, urls: Iterable[str], session: ClientSessionState) -> dict:
        return self.build(urls, session).to_body()

    @staticmethod
    def queue_path(session: ClientSessionState, queue: Optional[str] = None) -> str:
        """Path of the queue endpoint, used for both submission and length checks."""
        return f"{session.api_base_url.rstrip('/')}/queues/{queue or session.queue}"

    @staticmethod
    def purge_status_path(purge_id: str, session: ClientSessionState) -> str:
        return f"{session.api_base_url.rstrip('/')}/purges/{purge_id}"
