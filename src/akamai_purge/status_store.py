"""
Purge status store.

Keeps every status response keyed by its purge id. One purge id collects a
chronological history of snapshots: the submission response(s) and every
status check persisted later.
"""

import time
from typing import Callable, Iterable, Optional, Union

from .kv_store import KeyValueStore, MemoryKeyValueStore
from .models import ApiResult, PurgeStatus, StatusSnapshot


class PurgeStatusStore:
    """
    Snapshot history per purge id on top of a key-value store.

    All histories live under one key as ``{purge_id: [snapshot, ...]}``;
    each write is a single atomic update of that key.
    """

    PURGE_STATUS_KEY = "akamai.purge_status"

    def __init__(
        self,
        kv_store: Optional[KeyValueStore] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the status store.

        Args:
            kv_store: Backing store; defaults to an in-memory store
            clock: Source of unix timestamps for request_made_at
        """
        self._kv_store = kv_store if kv_store is not None else MemoryKeyValueStore()
        self._clock = clock

    def save(
        self,
        status: Union[dict, StatusSnapshot],
        urls_queued: Optional[Iterable[str]] = None,
    ) -> StatusSnapshot:
        """
        Append a status snapshot to the history of its purge id.

        Args:
            status: Upstream status map (must carry ``purgeId``) or snapshot
            urls_queued: URLs submitted with this request, if any

        Returns:
            The stored snapshot, stamped with request_made_at

        Raises:
            ValueError: If the status has no purge id
        """
        data = status.to_dict() if isinstance(status, StatusSnapshot) else dict(status)
        purge_id = data.get("purgeId")
        if not purge_id:
            raise ValueError("Status has no purgeId")

        data["request_made_at"] = self._clock()
        if urls_queued is not None:
            data["urls_queued"] = list(urls_queued)

        def append(statuses: Optional[dict]) -> dict:
            statuses = dict(statuses or {})
            statuses[purge_id] = list(statuses.get(purge_id, [])) + [data]
            return statuses

        self._kv_store.update(self.PURGE_STATUS_KEY, append, default={})
        return StatusSnapshot.from_dict(data)

    def save_response(
        self,
        result: ApiResult,
        urls_queued: Optional[Iterable[str]] = None,
    ) -> Optional[StatusSnapshot]:
        """Save the body of a successful API result; failed results are ignored."""
        if not result.success or not isinstance(result.body, dict):
            return None
        if not result.body.get("purgeId"):
            return None
        return self.save(result.body, urls_queued)

    def get(self, purge_id: str) -> Optional[list[StatusSnapshot]]:
        """
        Get the snapshot history of a purge.

        Returns:
            Snapshots oldest first, or None if the purge id is unknown
        """
        history = self._load().get(purge_id)
        if history is None:
            return None
        return [StatusSnapshot.from_dict(item) for item in history]

    def get_all(self) -> dict[str, list[StatusSnapshot]]:
        return {
            purge_id: [StatusSnapshot.from_dict(item) for item in history]
            for purge_id, history in self._load().items()
        }

    def delete(self, purge_id: str) -> None:
        """Remove a purge history. Unknown ids are ignored."""

        def remove(statuses: Optional[dict]) -> dict:
            statuses = dict(statuses or {})
            statuses.pop(purge_id, None)
            return statuses

        self._kv_store.update(self.PURGE_STATUS_KEY, remove, default={})

    def expire(self, max_age_seconds: float) -> list[str]:
        """
        Drop every purge whose newest snapshot is older than max_age_seconds.

        Histories are kept or dropped whole.

        Returns:
            The purge ids that were removed
        """
        cutoff = self._clock() - max_age_seconds
        expired: list[str] = []

        def sweep(statuses: Optional[dict]) -> dict:
            expired.clear()
            kept = {}
            for purge_id, history in (statuses or {}).items():
                newest = max(
                    (float(item.get("request_made_at", 0.0)) for item in history),
                    default=0.0,
                )
                if newest < cutoff:
                    expired.append(purge_id)
                else:
                    kept[purge_id] = history
            return kept

        self._kv_store.update(self.PURGE_STATUS_KEY, sweep, default={})
        return expired

    def status(self, purge_id: str) -> Optional[PurgeStatus]:
        history = self.get(purge_id)
        if not history:
            return None
        return PurgeStatus(history)

    def statuses(self) -> list[PurgeStatus]:
        return [PurgeStatus(history) for history in self.get_all().values() if history]

    def _load(self) -> dict:
        return self._kv_store.get(self.PURGE_STATUS_KEY, {}) or {}
