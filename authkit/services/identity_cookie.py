"""Remember-me cookie payload.

The cookie carries ``[version, subject_id, auth_key, duration]`` as compact
JSON. Payloads written before the version field existed are plain
``[subject_id, auth_key, duration]`` triples and are still accepted.
"""

from __future__ import annotations

import json
from typing import Any, NamedTuple

from pydantic import StrictInt, TypeAdapter, ValidationError

from authkit.core.exceptions import TokenDecodeError
from authkit.services.identity import Identity

TOKEN_VERSION = 1

_legacy_payload = TypeAdapter(tuple[str | int, str, StrictInt])
_versioned_payload = TypeAdapter(tuple[StrictInt, str | int, str, StrictInt])


class PersistentLoginToken(NamedTuple):
    subject_id: str
    auth_key: str
    duration: int


def encode(identity: Identity, duration: int) -> str:
    payload = [TOKEN_VERSION, identity.get_id(), identity.get_auth_key(), int(duration)]
    return json.dumps(payload, separators=(",", ":"))


def decode(raw: str | bytes) -> PersistentLoginToken:
    try:
        data: Any = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise TokenDecodeError(message="Malformed login token", detail=str(exc)) from exc

    if not isinstance(data, list):
        raise TokenDecodeError(message="Malformed login token", detail="payload is not a list")

    try:
        if len(data) == 3:
            subject_id, auth_key, duration = _legacy_payload.validate_python(data)
        elif len(data) == 4:
            version, subject_id, auth_key, duration = _versioned_payload.validate_python(data)
            if version != TOKEN_VERSION:
                raise TokenDecodeError(
                    message="Unsupported login token version", detail=f"version={version}"
                )
        else:
            raise TokenDecodeError(message="Malformed login token", detail=f"arity={len(data)}")
    except ValidationError as exc:
        raise TokenDecodeError(message="Malformed login token", detail=str(exc)) from exc

    if duration < 0:
        raise TokenDecodeError(message="Malformed login token", detail="negative duration")
    return PersistentLoginToken(str(subject_id), auth_key, duration)
