from __future__ import annotations

import time
from typing import Callable, NamedTuple

from authkit.config import Settings
from authkit.core.exceptions import TokenDecodeError
from authkit.core.logging import get_logger
from authkit.services import identity_cookie
from authkit.services.identity import Identity, IdentityStore
from authkit.services.session import KeyValueSession

logger = get_logger(__name__)


class SessionResolution(NamedTuple):
    identity: Identity | None
    expired: Identity | None = None


class TokenResolution(NamedTuple):
    identity: Identity | None
    duration: int = 0
    invalidate: bool = False


class IdentityResolver:
    """Turns session state or a remember-me payload into an identity."""

    def __init__(
        self,
        identity_store: IdentityStore,
        settings: Settings,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = identity_store
        self._settings = settings
        self._clock = clock

    def resolve_from_session(self, session: KeyValueSession) -> SessionResolution:
        """Read the subject from the session and enforce both timeouts.

        An elapsed timeout clears the auth keys from the session (other
        entries survive) and reports the identity as expired.
        """
        if not session.has_session_id and not session.is_active:
            return SessionResolution(None)

        s = self._settings
        subject_id = session.get(s.ID_PARAM)
        if subject_id is None:
            return SessionResolution(None)

        identity = self._store.find_by_id(str(subject_id))
        if identity is None:
            logger.info("session_identity_missing", identity_id=subject_id)
            return SessionResolution(None)

        if s.AUTH_TIMEOUT is None and s.ABSOLUTE_AUTH_TIMEOUT is None:
            return SessionResolution(identity)

        now = int(self._clock())
        expire = session.get(s.AUTH_TIMEOUT_PARAM) if s.AUTH_TIMEOUT is not None else None
        absolute = (
            session.get(s.ABSOLUTE_AUTH_TIMEOUT_PARAM)
            if s.ABSOLUTE_AUTH_TIMEOUT is not None
            else None
        )
        if (expire is not None and expire < now) or (absolute is not None and absolute < now):
            session.remove(s.ID_PARAM)
            session.remove(s.AUTH_TIMEOUT_PARAM)
            session.remove(s.ABSOLUTE_AUTH_TIMEOUT_PARAM)
            logger.info(
                "session_expired",
                identity_id=identity.get_id(),
                sliding=expire is not None and expire < now,
                absolute=absolute is not None and absolute < now,
            )
            return SessionResolution(None, expired=identity)

        if s.AUTH_TIMEOUT is not None:
            session.set(s.AUTH_TIMEOUT_PARAM, now + s.AUTH_TIMEOUT)
        return SessionResolution(identity)

    def resolve_from_token(self, raw: str | bytes) -> TokenResolution:
        try:
            token = identity_cookie.decode(raw)
        except TokenDecodeError as exc:
            logger.debug("login_token_malformed", detail=exc.detail)
            return TokenResolution(None)

        identity = self._store.find_by_id(token.subject_id)
        if identity is None:
            logger.info("login_token_identity_missing", identity_id=token.subject_id)
            return TokenResolution(None, invalidate=True)

        if not identity.validate_auth_key(token.auth_key):
            logger.warning(
                "invalid_auth_key",
                identity_id=token.subject_id,
                auth_key=token.auth_key,
            )
            return TokenResolution(None, invalidate=True)

        return TokenResolution(identity, duration=token.duration)
