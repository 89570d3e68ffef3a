from __future__ import annotations

import copy
import threading
import time
from typing import Any, Callable, Protocol, runtime_checkable

from authkit.core.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class SessionStore(Protocol):
    """Durable per-client storage behind a session handle, keyed by session ID."""

    def get(self, session_id: str) -> dict[str, Any] | None: ...

    def save(self, session_id: str, data: dict[str, Any], ttl: int) -> None: ...

    def delete(self, session_id: str) -> None: ...

    def exists(self, session_id: str) -> bool: ...


class MemorySessionStore:
    """Process-local session store with per-record TTL.

    Records are copied in and out so a handle never shares mutable state with
    the store. Expired records are dropped lazily on access.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._records: dict[str, tuple[dict[str, Any], float]] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> dict[str, Any] | None:
        with self._lock:
            record = self._records.get(session_id)
            if record is None:
                return None
            data, expires_at = record
            if expires_at <= self._clock():
                del self._records[session_id]
                logger.debug("session_record_expired", session_id=session_id[:8])
                return None
            return copy.deepcopy(data)

    def save(self, session_id: str, data: dict[str, Any], ttl: int) -> None:
        with self._lock:
            self._records[session_id] = (copy.deepcopy(data), self._clock() + ttl)

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._records.pop(session_id, None)

    def exists(self, session_id: str) -> bool:
        return self.get(session_id) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
