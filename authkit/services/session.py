"""Request-scoped handle to a durable per-client key-value session.

A handle is bound to one session ID for the lifetime of a request. It opens
lazily on first access, runs one flash-counter sweep per open, and flushes its
data back to the store on ``close()``.

Flash counters live under the flash key as ``{name: counter}``:

* ``-1`` remove after the value has been read once
* ``0`` remove on the next request cycle
* ``1`` remove on the coming sweep
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterator, TypeVar

from authkit.clients.session_store import SessionStore
from authkit.core.exceptions import SessionUnavailableError
from authkit.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

SESSION_ID_BYTES = 32


@dataclass
class CookieParams:
    lifetime: int = 0
    path: str = "/"
    domain: str | None = None
    secure: bool = True
    http_only: bool = True
    samesite: str | None = "lax"


class KeyValueSession:
    def __init__(
        self,
        store: SessionStore,
        session_id: str | None = None,
        *,
        cookie_params: CookieParams | None = None,
        timeout: int = 1440,
        flash_param: str = "__flash",
    ) -> None:
        self._store = store
        self._requested_id = session_id or None
        self._id = self._requested_id
        self._cookie_params = cookie_params or CookieParams()
        self._timeout = timeout
        self._flash_param = flash_param
        self._data: dict[str, Any] = {}
        self._active = False
        # set by destroy() so the next open reuses the ID without a store record
        self._adopt_id = False

    # -- lifecycle ---------------------------------------------------------

    @property
    def id(self) -> str | None:
        return self._id

    @property
    def has_session_id(self) -> bool:
        """Whether the client presented a session ID with the request."""
        return self._requested_id is not None

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def cookie_params(self) -> CookieParams:
        return replace(self._cookie_params)

    @property
    def timeout(self) -> int:
        return self._timeout

    def open(self) -> None:
        if self._active:
            return
        self._start()
        logger.debug("session_started", session_id=self._short_id)
        self._update_flash_counters()

    def close(self) -> None:
        if not self._active:
            return
        self._call(self._store.save, self._id, self._data, self._timeout)
        self._active = False

    def destroy(self) -> None:
        """Drop every entry of the current session but keep its ID."""
        if not self._active:
            return
        session_id = self._id
        self.close()
        self._id = session_id
        self.open()
        self._data.clear()
        self._call(self._store.delete, session_id)
        self._active = False
        self._id = session_id
        self._adopt_id = True
        logger.info("session_destroyed", session_id=self._short_id)

    def regenerate_id(self, delete_old_session: bool = False) -> None:
        self.open()
        old_id = self._id
        self._id = self._new_id()
        if delete_old_session and old_id is not None:
            self._call(self._store.delete, old_id)
        logger.info(
            "session_regenerated",
            old_session_id=old_id[:8] if old_id else None,
            session_id=self._short_id,
            deleted_old=delete_old_session,
        )

    def reconfigure(
        self,
        *,
        cookie_params: CookieParams | None = None,
        timeout: int | None = None,
    ) -> None:
        """Change cookie or storage parameters.

        The handle is closed while the parameters change and reopened with
        the same data afterwards; no flash sweep runs on reopen.
        """
        frozen: dict[str, Any] | None = None
        if self._active:
            frozen = dict(self._data)
            self.close()
            logger.debug("session_frozen", session_id=self._short_id)

        if cookie_params is not None:
            self._cookie_params = replace(cookie_params)
        if timeout is not None:
            self._timeout = timeout

        if frozen is not None:
            self._start()
            self._data = frozen
            logger.debug("session_unfrozen", session_id=self._short_id)

    # -- key/value access --------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        self.open()
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.open()
        self._data[key] = value

    def remove(self, key: str) -> Any:
        self.open()
        return self._data.pop(key, None)

    def has(self, key: str) -> bool:
        self.open()
        return key in self._data

    def remove_all(self) -> None:
        self.open()
        self._data.clear()

    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        self.remove(key)

    def __contains__(self, key: object) -> bool:
        self.open()
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        self.open()
        return iter(list(self._data))

    def __len__(self) -> int:
        self.open()
        return len(self._data)

    # -- flash entries -----------------------------------------------------

    def set_flash(self, key: str, value: Any = True, remove_after_access: bool = True) -> None:
        counters = self._flash_counters()
        counters[key] = -1 if remove_after_access else 0
        self._data[key] = value
        self._data[self._flash_param] = counters

    def add_flash(self, key: str, value: Any = True, remove_after_access: bool = True) -> None:
        counters = self._flash_counters()
        counters[key] = -1 if remove_after_access else 0
        self._data[self._flash_param] = counters
        current = self._data.get(key)
        if not current:
            self._data[key] = [value]
        elif isinstance(current, list):
            current.append(value)
        else:
            self._data[key] = [current, value]

    def get_flash(self, key: str, default: Any = None, delete: bool = False) -> Any:
        counters = self._flash_counters()
        if key not in counters:
            return default
        value = self._data.get(key, default)
        if delete or counters[key] == 1:
            self.remove_flash(key)
        elif counters[key] < 0:
            counters[key] = 1
            self._data[self._flash_param] = counters
        return value

    def get_all_flashes(self, delete: bool = False) -> dict[str, Any]:
        counters = self._flash_counters()
        flashes: dict[str, Any] = {}
        for key in list(counters):
            if key not in self._data:
                del counters[key]
                continue
            flashes[key] = self._data[key]
            if delete:
                del counters[key]
                del self._data[key]
            elif counters[key] < 0:
                counters[key] = 1
        self._data[self._flash_param] = counters
        return flashes

    def has_flash(self, key: str) -> bool:
        return self.get_flash(key) is not None

    def remove_flash(self, key: str) -> Any:
        counters = self._flash_counters()
        value = self._data.get(key) if key in counters else None
        counters.pop(key, None)
        self._data.pop(key, None)
        self._data[self._flash_param] = counters
        return value

    def remove_all_flashes(self) -> None:
        for key in self._flash_counters():
            self._data.pop(key, None)
        self._data.pop(self._flash_param, None)

    # -- internals ---------------------------------------------------------

    def _start(self) -> None:
        session_id = self._id
        data = self._call(self._store.get, session_id) if session_id else None
        if data is None and session_id is not None and self._adopt_id:
            data = {}
        elif data is None:
            if session_id is not None:
                # Unknown IDs are never adopted; the client gets a fresh one.
                logger.info("session_id_unknown", session_id=session_id[:8])
            session_id = self._new_id()
            data = {}
        self._id = session_id
        self._data = data
        self._active = True
        self._adopt_id = False

    def _update_flash_counters(self) -> None:
        if self._flash_param not in self._data:
            return
        counters = self._data[self._flash_param]
        if not isinstance(counters, dict):
            self._data.pop(self._flash_param, None)
            return
        for key, count in list(counters.items()):
            if count > 0:
                del counters[key]
                self._data.pop(key, None)
            elif count == 0:
                counters[key] = 1
        self._data[self._flash_param] = counters

    def _flash_counters(self) -> dict[str, int]:
        counters = self.get(self._flash_param, {})
        return dict(counters) if isinstance(counters, dict) else {}

    def _call(self, operation: Callable[..., T], *args: Any) -> T:
        try:
            return operation(*args)
        except SessionUnavailableError:
            raise
        except Exception as exc:
            name = getattr(operation, "__name__", "store")
            logger.error("session_store_failed", operation=name, exc_info=True)
            raise SessionUnavailableError(
                message="Session store unavailable",
                detail=f"{name}: {exc}",
            ) from exc

    @property
    def _short_id(self) -> str | None:
        return self._id[:8] if self._id else None

    @staticmethod
    def _new_id() -> str:
        return secrets.token_urlsafe(SESSION_ID_BYTES)
