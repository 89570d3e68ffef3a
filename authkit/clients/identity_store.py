from __future__ import annotations

import hmac
import secrets
import threading
from dataclasses import dataclass, field
from typing import Any


@dataclass
class UserIdentity:
    """Reference identity record used by the in-memory store."""

    id: str
    auth_key: str = field(default_factory=lambda: secrets.token_urlsafe(24))
    # access token -> token type (None accepts any type)
    access_tokens: dict[str, str | None] = field(default_factory=dict)

    def get_id(self) -> str:
        return self.id

    def get_auth_key(self) -> str:
        return self.auth_key

    def validate_auth_key(self, auth_key: str) -> bool:
        if not isinstance(auth_key, str):
            return False
        return hmac.compare_digest(self.auth_key.encode(), auth_key.encode())


class InMemoryIdentityStore:
    def __init__(self, identities: list[UserIdentity] | None = None) -> None:
        self._by_id: dict[str, UserIdentity] = {}
        self._lock = threading.Lock()
        for identity in identities or []:
            self.add(identity)

    def add(self, identity: UserIdentity) -> UserIdentity:
        with self._lock:
            self._by_id[identity.id] = identity
        return identity

    def remove(self, identity_id: str) -> None:
        with self._lock:
            self._by_id.pop(identity_id, None)

    def find_by_id(self, identity_id: str) -> UserIdentity | None:
        with self._lock:
            return self._by_id.get(str(identity_id))

    def find_by_token(self, token: str, token_type: str | None = None) -> UserIdentity | None:
        with self._lock:
            for identity in self._by_id.values():
                if token not in identity.access_tokens:
                    continue
                expected_type = identity.access_tokens[token]
                if expected_type is None or token_type is None or expected_type == token_type:
                    return identity
        return None


class PermissionMapAccessChecker:
    """Grants permissions from a static user -> permissions mapping."""

    def __init__(self, permissions: dict[str, set[str]] | None = None) -> None:
        self._permissions = permissions or {}

    def grant(self, user_id: str, permission: str) -> None:
        self._permissions.setdefault(user_id, set()).add(permission)

    def check_access(self, user_id: str | None, permission: str, params: dict[str, Any]) -> bool:
        if user_id is None:
            return False
        return permission in self._permissions.get(user_id, set())
