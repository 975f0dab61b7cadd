"""
Key-value persistence backing the purge status store.

Stores expose get/set plus an atomic read-modify-write, so concurrent
writers appending to the same purge history do not lose updates.
"""

import copy
import hashlib
import hmac
import json
import os
import tempfile
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from filelock import FileLock, Timeout

from .exceptions import PersistenceError, TamperingError


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal persistent key-value interface."""

    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def update(self, key: str, fn: Callable[[Any], Any], default: Any = None) -> Any:
        """Atomically replace the value under key with fn(current)."""
        ...


class MemoryKeyValueStore:
    """In-process store guarded by a lock. Values are deep-copied on the way in and out."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._lock = threading.RLock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def update(self, key: str, fn: Callable[[Any], Any], default: Any = None) -> Any:
        with self._lock:
            new_value = fn(self.get(key, default))
            self.set(key, new_value)
            return copy.deepcopy(new_value)


class JsonFileKeyValueStore:
    """
    JSON file store with HMAC protection.

    The whole key space lives in one file:
    ``{"version", "data", "updated_at", "hmac"}`` where the HMAC covers
    ``version``, ``data`` and ``updated_at``. Every read-modify-write holds
    an OS-level lock on a sidecar ``.lock`` file, so separate processes
    sharing the state file serialize their updates. Writes go to a uniquely
    named temporary file that replaces the original.
    """

    VERSION = 1

    def __init__(self, file_path: Path, hmac_secret: str, lock_timeout: float = 10.0) -> None:
        """
        Initialize the file store.

        Args:
            file_path: Path to the JSON state file
            hmac_secret: Secret key for HMAC computation
            lock_timeout: Seconds to wait for another process to release the file
        """
        self._file_path = Path(file_path)
        self._hmac_secret = hmac_secret.encode("utf-8")
        self._lock_timeout = lock_timeout
        self._lock = threading.RLock()
        self._file_lock: Optional[FileLock] = None

    @property
    def file_path(self) -> Path:
        return self._file_path

    @property
    def lock_path(self) -> Path:
        return self._file_path.with_name(self._file_path.name + ".lock")

    def get(self, key: str, default: Any = None) -> Any:
        with self._locked():
            return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._locked():
            data = self._load()
            data[key] = value
            self._write(data)

    def update(self, key: str, fn: Callable[[Any], Any], default: Any = None) -> Any:
        with self._locked():
            data = self._load()
            data[key] = fn(data.get(key, default))
            self._write(data)
            return data[key]

    @contextmanager
    def _locked(self):
        """Hold the in-process lock and the cross-process file lock."""
        with self._lock:
            try:
                if self._file_lock is None:
                    self.lock_path.parent.mkdir(parents=True, exist_ok=True)
                    self._file_lock = FileLock(str(self.lock_path), timeout=self._lock_timeout)
                self._file_lock.acquire()
            except Timeout:
                raise PersistenceError(
                    code="lock_timeout",
                    message=f"Timed out waiting for lock on state file after {self._lock_timeout}s",
                    details={"file_path": str(self._file_path), "lock_path": str(self.lock_path)},
                )
            except OSError as e:
                raise PersistenceError(
                    code="io_error",
                    message=f"Failed to lock state file: {e}",
                    details={"file_path": str(self._file_path), "lock_path": str(self.lock_path)},
                )
            try:
                yield
            finally:
                self._file_lock.release()

    def compute_hmac(self, payload: dict) -> str:
        """Compute HMAC-SHA256 over the canonical JSON form of payload."""
        serialized = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hmac.new(
            self._hmac_secret,
            serialized.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def _load(self) -> dict:
        """
        Read and verify the state file.

        Raises:
            TamperingError: If HMAC validation fails
            PersistenceError: If the file cannot be read or parsed
        """
        if not self._file_path.exists():
            return {}

        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceError(
                code="parse_error",
                message=f"Failed to parse state file: {e}",
                details={"file_path": str(self._file_path)},
            )
        except OSError as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to read state file: {e}",
                details={"file_path": str(self._file_path)},
            )

        payload = {
            "version": raw.get("version"),
            "data": raw.get("data", {}),
            "updated_at": raw.get("updated_at"),
        }
        if not hmac.compare_digest(str(raw.get("hmac", "")), self.compute_hmac(payload)):
            raise TamperingError(
                code="hmac_mismatch",
                message="HMAC validation failed - data may have been tampered with",
                details={"file_path": str(self._file_path)},
            )

        return payload["data"]

    def _write(self, data: dict) -> None:
        payload = {
            "version": self.VERSION,
            "data": data,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        payload["hmac"] = self.compute_hmac(payload)

        tmp_name = None
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._file_path.parent,
                prefix=self._file_path.name + ".",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                json.dump(payload, f, indent=2)
            os.replace(tmp_name, self._file_path)
        except (OSError, TypeError) as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise PersistenceError(
                code="io_error",
                message=f"Failed to write state file: {e}",
                details={"file_path": str(self._file_path)},
            )
