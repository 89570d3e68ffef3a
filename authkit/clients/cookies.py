from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Mapping

from fastapi import Response


@dataclass
class Cookie:
    name: str
    value: str = ""
    expire: int = 0  # unix timestamp, 0 keeps it a browser-session cookie
    path: str = "/"
    domain: str | None = None
    secure: bool = True
    http_only: bool = True
    samesite: str | None = "lax"


class CookieJar:
    """Request cookie reader and pending response cookie writer for one request."""

    def __init__(
        self,
        request_cookies: Mapping[str, str],
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._request_cookies = dict(request_cookies)
        self._clock = clock
        self._added: dict[str, Cookie] = {}
        self._removed: dict[str, Cookie] = {}

    def get(self, name: str) -> str | None:
        value = self._request_cookies.get(name)
        return value if value else None

    def add(self, cookie: Cookie) -> None:
        self._removed.pop(cookie.name, None)
        self._added[cookie.name] = cookie

    def remove(self, cookie: Cookie) -> None:
        self._added.pop(cookie.name, None)
        self._removed[cookie.name] = cookie

    def added(self, name: str) -> Cookie | None:
        return self._added.get(name)

    def is_removed(self, name: str) -> bool:
        return name in self._removed

    @property
    def has_changes(self) -> bool:
        return bool(self._added or self._removed)

    def apply(self, response: Response) -> None:
        now = int(self._clock())
        for cookie in self._removed.values():
            response.delete_cookie(
                key=cookie.name,
                path=cookie.path,
                domain=cookie.domain,
                secure=cookie.secure,
                httponly=cookie.http_only,
                samesite=cookie.samesite,
            )
        for cookie in self._added.values():
            max_age = max(cookie.expire - now, 0) if cookie.expire else None
            response.set_cookie(
                key=cookie.name,
                value=cookie.value,
                max_age=max_age,
                path=cookie.path,
                domain=cookie.domain,
                secure=cookie.secure,
                httponly=cookie.http_only,
                samesite=cookie.samesite,
            )
