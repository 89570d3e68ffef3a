from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable

from authkit.clients.cookies import Cookie, CookieJar
from authkit.config import Settings
from authkit.core.exceptions import (
    ConfigurationError,
    ForbiddenError,
    LoginRedirect,
    TokenDecodeError,
)
from authkit.core.logging import get_logger
from authkit.services import identity_cookie
from authkit.services.events import EventChain, EventHandler, UserEvent, UserEventName, Verdict
from authkit.services.identity import AccessChecker, Identity, IdentityStore
from authkit.services.identity_resolver import IdentityResolver
from authkit.services.session import KeyValueSession

logger = get_logger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """The parts of the inbound request the login flow cares about."""

    method: str = "GET"
    url: str = "/"
    path: str = "/"
    is_ajax: bool = False
    accept: tuple[str, ...] = ()
    client_ip: str | None = None

    @property
    def is_get(self) -> bool:
        return self.method.upper() == "GET"


def parse_accept_header(header: str | None) -> tuple[str, ...]:
    if not header:
        return ()
    types = (part.split(";", 1)[0].strip().lower() for part in header.split(","))
    return tuple(t for t in types if t)


def check_identity_config(settings: Settings, identity_store: IdentityStore | None) -> None:
    if identity_store is None:
        raise ConfigurationError(
            message="Identity store is not configured",
            detail="An IdentityStore is required to resolve users",
        )
    if settings.ENABLE_AUTO_LOGIN and not settings.IDENTITY_COOKIE_NAME:
        raise ConfigurationError(
            message="Identity cookie name is not configured",
            detail="IDENTITY_COOKIE_NAME is required when ENABLE_AUTO_LOGIN is set",
        )


class AuthSessionManager:
    """Per-request view of who the user is.

    Resolves the identity from the session or the remember-me cookie on first
    use and memoizes it. ``login``/``logout`` are the only state transitions;
    both can be vetoed by BEFORE_* event handlers.
    """

    def __init__(
        self,
        settings: Settings,
        identity_store: IdentityStore,
        session: KeyValueSession,
        cookies: CookieJar,
        *,
        request: RequestContext | None = None,
        access_checker: AccessChecker | None = None,
        csrf_regenerator: Callable[[], None] | None = None,
        events: EventChain | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        check_identity_config(settings, identity_store)
        self._settings = settings
        self._identity_store = identity_store
        self._session = session
        self._cookies = cookies
        self._request = request or RequestContext()
        self._access_checker = access_checker
        self._csrf_regenerator = csrf_regenerator or self._drop_csrf_token
        self._events = events or EventChain()
        self._clock = clock
        self._resolver = IdentityResolver(identity_store, settings, clock)

        self._identity: Identity | None = None
        self._resolved = False
        self._access: dict[str, bool] = {}

    @property
    def session(self) -> KeyValueSession:
        return self._session

    @property
    def events(self) -> EventChain:
        return self._events

    def on(self, name: UserEventName, handler: EventHandler) -> None:
        self._events.on(name, handler)

    def off(self, name: UserEventName, handler: EventHandler | None = None) -> bool:
        return self._events.off(name, handler)

    # -- identity ----------------------------------------------------------

    def current(self) -> Identity | None:
        if not self._resolved:
            if not self._settings.ENABLE_SESSION:
                return None
            # Handlers fired while resolving may call back into current().
            self._resolved = True
            try:
                self._renew_auth_status()
            except Exception:
                self._resolved = False
                self._identity = None
                raise
        return self._identity

    @property
    def is_guest(self) -> bool:
        return self.current() is None

    @property
    def id(self) -> str | None:
        identity = self.current()
        return identity.get_id() if identity is not None else None

    def login(self, identity: Identity, duration: int = 0) -> bool:
        if self._before_login(identity, False, duration):
            self._switch_identity(identity, duration)
            logger.info(
                "user_logged_in",
                identity_id=identity.get_id(),
                duration=duration,
                client_ip=self._request.client_ip,
                session_enabled=self._settings.ENABLE_SESSION,
            )
            self._after_login(identity, False, duration)
        return not self.is_guest

    def login_by_token(self, token: str, token_type: str | None = None) -> Identity | None:
        identity = self._identity_store.find_by_token(token, token_type)
        if identity is None:
            logger.info("access_token_rejected", token_type=token_type)
            return None
        if self.login(identity) and self._identity is identity:
            return identity
        return None

    def logout(self, destroy_session: bool = True) -> bool:
        identity = self.current()
        if identity is not None and self._before_logout(identity):
            self._switch_identity(None)
            logger.info(
                "user_logged_out",
                identity_id=identity.get_id(),
                client_ip=self._request.client_ip,
            )
            if destroy_session and self._settings.ENABLE_SESSION:
                self._session.destroy()
            self._after_logout(identity)
        return self.is_guest

    def require_login(self, check_ajax: bool = True, check_accept_header: bool = True) -> Identity:
        """Return the current identity or send the guest to the login page.

        Raises LoginRedirect when a login URL is configured and the client
        accepts a redirect, ForbiddenError otherwise.
        """
        identity = self.current()
        if identity is not None:
            return identity

        s = self._settings
        request = self._request
        can_redirect = not check_accept_header or self._redirect_acceptable()
        if (
            s.ENABLE_SESSION
            and request.is_get
            and (not check_ajax or not request.is_ajax)
            and can_redirect
        ):
            self.set_return_url(request.url)

        if s.LOGIN_URL and can_redirect and request.path != s.LOGIN_URL:
            logger.info("login_required_redirect", path=request.path, login_url=s.LOGIN_URL)
            raise LoginRedirect(s.LOGIN_URL)

        raise ForbiddenError(message="Login Required", detail=f"path={request.path}")

    def get_return_url(self, default: str | None = None) -> str:
        url = self._session.get(self._settings.RETURN_URL_PARAM, default)
        return self._settings.HOME_URL if url is None else url

    def set_return_url(self, url: str) -> None:
        self._session.set(self._settings.RETURN_URL_PARAM, url)

    def can(self, permission: str, params: dict[str, Any] | None = None, allow_caching: bool = True) -> bool:
        cacheable = allow_caching and not params
        if cacheable and permission in self._access:
            return self._access[permission]
        if self._access_checker is None:
            return False
        access = self._access_checker.check_access(self.id, permission, params or {})
        if cacheable:
            self._access[permission] = access
        return access

    # -- transitions -------------------------------------------------------

    def _renew_auth_status(self) -> None:
        resolution = self._resolver.resolve_from_session(self._session)
        self._set_identity(resolution.identity)
        if resolution.expired is not None:
            self._expire(resolution.expired)

        if self._settings.ENABLE_AUTO_LOGIN:
            if self._identity is None:
                self._login_by_cookie()
            elif self._settings.AUTO_RENEW_COOKIE:
                self._renew_identity_cookie()

    def _expire(self, identity: Identity) -> None:
        self._switch_identity(None)
        logger.info("user_logged_out", identity_id=identity.get_id(), reason="timeout")
        self._after_logout(identity)

    def _login_by_cookie(self) -> None:
        raw = self._cookies.get(self._settings.IDENTITY_COOKIE_NAME)
        if raw is None:
            return
        result = self._resolver.resolve_from_token(raw)
        if result.identity is None:
            if result.invalidate:
                self._remove_identity_cookie()
            return

        identity, duration = result.identity, result.duration
        if self._before_login(identity, True, duration):
            self._switch_identity(identity, duration if self._settings.AUTO_RENEW_COOKIE else 0)
            logger.info(
                "user_logged_in",
                identity_id=identity.get_id(),
                via="cookie",
                client_ip=self._request.client_ip,
            )
            self._after_login(identity, True, duration)

    def _switch_identity(self, identity: Identity | None, duration: int = 0) -> None:
        s = self._settings
        self._set_identity(identity)
        self._resolved = True
        if not s.ENABLE_SESSION:
            return

        if s.ENABLE_AUTO_LOGIN and (s.AUTO_RENEW_COOKIE or identity is None):
            self._remove_identity_cookie()

        if s.ENVIRONMENT != "test":
            self._session.regenerate_id(delete_old_session=True)

        self._session.remove(s.ID_PARAM)
        self._session.remove(s.AUTH_TIMEOUT_PARAM)
        self._session.remove(s.ABSOLUTE_AUTH_TIMEOUT_PARAM)

        if identity is not None:
            now = int(self._clock())
            self._session.set(s.ID_PARAM, identity.get_id())
            if s.AUTH_TIMEOUT is not None:
                self._session.set(s.AUTH_TIMEOUT_PARAM, now + s.AUTH_TIMEOUT)
            if s.ABSOLUTE_AUTH_TIMEOUT is not None:
                self._session.set(s.ABSOLUTE_AUTH_TIMEOUT_PARAM, now + s.ABSOLUTE_AUTH_TIMEOUT)
            if s.ENABLE_AUTO_LOGIN and duration > 0:
                self._send_identity_cookie(identity, duration)

        self._csrf_regenerator()

    def _set_identity(self, identity: Identity | None) -> None:
        self._identity = identity
        self._access = {}

    # -- events ------------------------------------------------------------

    def _before_login(self, identity: Identity, cookie_based: bool, duration: int) -> bool:
        event = UserEvent(UserEventName.BEFORE_LOGIN, identity, cookie_based, duration)
        return self._events.trigger(event) is Verdict.PROCEED

    def _after_login(self, identity: Identity, cookie_based: bool, duration: int) -> None:
        self._events.trigger(UserEvent(UserEventName.AFTER_LOGIN, identity, cookie_based, duration))

    def _before_logout(self, identity: Identity) -> bool:
        event = UserEvent(UserEventName.BEFORE_LOGOUT, identity)
        return self._events.trigger(event) is Verdict.PROCEED

    def _after_logout(self, identity: Identity) -> None:
        self._events.trigger(UserEvent(UserEventName.AFTER_LOGOUT, identity))

    # -- cookies -----------------------------------------------------------

    def _identity_cookie(self, value: str = "", expire: int = 0) -> Cookie:
        s = self._settings
        return Cookie(
            name=s.IDENTITY_COOKIE_NAME,
            value=value,
            expire=expire,
            path=s.IDENTITY_COOKIE_PATH,
            domain=s.IDENTITY_COOKIE_DOMAIN,
            secure=s.IDENTITY_COOKIE_SECURE,
            http_only=s.IDENTITY_COOKIE_HTTPONLY,
            samesite=s.IDENTITY_COOKIE_SAMESITE,
        )

    def _send_identity_cookie(self, identity: Identity, duration: int) -> None:
        value = identity_cookie.encode(identity, duration)
        self._cookies.add(self._identity_cookie(value, int(self._clock()) + duration))

    def _renew_identity_cookie(self) -> None:
        raw = self._cookies.get(self._settings.IDENTITY_COOKIE_NAME)
        if raw is None:
            return
        try:
            token = identity_cookie.decode(raw)
        except TokenDecodeError:
            return
        self._cookies.add(self._identity_cookie(raw, int(self._clock()) + token.duration))

    def _remove_identity_cookie(self) -> None:
        self._cookies.remove(self._identity_cookie())

    def _drop_csrf_token(self) -> None:
        self._session.remove(self._settings.CSRF_PARAM)

    def _redirect_acceptable(self) -> bool:
        accept = self._request.accept
        if not accept or accept == ("*/*",):
            return True
        return any(media in self._settings.ACCEPTABLE_REDIRECT_TYPES for media in accept)
