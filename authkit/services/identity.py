"""Contracts for the collaborators the identity core depends on."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Identity(Protocol):
    """An authenticated subject, referenced by ID and a long-lived auth key."""

    def get_id(self) -> str: ...

    def get_auth_key(self) -> str: ...

    def validate_auth_key(self, auth_key: str) -> bool: ...


@runtime_checkable
class IdentityStore(Protocol):
    def find_by_id(self, identity_id: str) -> Identity | None: ...

    def find_by_token(self, token: str, token_type: str | None = None) -> Identity | None: ...


@runtime_checkable
class AccessChecker(Protocol):
    def check_access(self, user_id: str | None, permission: str, params: dict[str, Any]) -> bool: ...
