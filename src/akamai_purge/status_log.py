"""
Purge status log.

Refreshes stored purge statuses from the API and renders the stored
history as table rows.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from .enums import ErrorKind
from .models import ApiError, PurgeStatus
from .status_store import PurgeStatusStore


STATUS_LOG_HEADERS = ("Request made", "URLs", "Purge ID", "Support ID", "Status")


def fetch_status(
    client,
    store: PurgeStatusStore,
    purge_id: str,
) -> tuple[Optional[PurgeStatus], Optional[ApiError]]:
    """
    Fetch the current status of a purge and persist it.

    Args:
        client: PurgeClient used for the status call
        store: Store the fetched status is appended to
        purge_id: Purge to refresh

    Returns:
        (status, error). On success error is None and status is the
        refreshed view. On failure error describes the failed call and
        status is the stale stored view, or None for an unknown purge.
    """
    result = client.get_purge_status(purge_id)
    if not result.success or not isinstance(result.body, dict):
        error = result.error or ApiError(
            kind=ErrorKind.API_REJECTED,
            message="Purge status response is not a JSON object",
            http_status_code=result.http_status_code,
        )
        return store.status(purge_id), error

    body = dict(result.body)
    body.setdefault("purgeId", purge_id)
    store.save(body)
    return store.status(purge_id), None


def refresh_status(client, store: PurgeStatusStore, purge_id: str) -> Optional[PurgeStatus]:
    """
    Like fetch_status, without the error.

    Returns:
        The refreshed status view, or the stored view if the API call
        failed; None if the purge is unknown and could not be fetched
    """
    status, _ = fetch_status(client, store, purge_id)
    return status


def format_timestamp(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def format_status_rows(
    statuses: Iterable[PurgeStatus],
    url_separator: str = "\n",
) -> list[tuple[str, str, str, str, str]]:
    """
    Render statuses as rows matching STATUS_LOG_HEADERS.

    The request time is the time of the most recent snapshot.
    """
    rows = []
    for status in statuses:
        rows.append((
            format_timestamp(status.last_checked_time),
            url_separator.join(status.urls),
            status.purge_id,
            status.support_id,
            status.description,
        ))
    return rows
