from __future__ import annotations

from fastapi import Depends, Request

from authkit.clients.cookies import CookieJar
from authkit.config import Settings
from authkit.services.auth_session import AuthSessionManager, RequestContext, parse_accept_header
from authkit.services.identity import Identity, IdentityStore
from authkit.services.session import KeyValueSession


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_identity_store(request: Request) -> IdentityStore:
    return request.app.state.identity_store


def get_session(request: Request) -> KeyValueSession:
    return request.state.session


def get_cookie_jar(request: Request) -> CookieJar:
    return request.state.cookies


def get_request_context(request: Request) -> RequestContext:
    # Relative URL only: the host part comes from the client-controlled Host header.
    url = request.url.path
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return RequestContext(
        method=request.method,
        url=url,
        path=request.url.path,
        is_ajax=request.headers.get("x-requested-with", "").lower() == "xmlhttprequest",
        accept=parse_accept_header(request.headers.get("accept")),
        client_ip=request.client.host if request.client else None,
    )


def get_auth_session(
    request: Request,
    settings: Settings = Depends(get_settings),
    identity_store: IdentityStore = Depends(get_identity_store),
    session: KeyValueSession = Depends(get_session),
    cookies: CookieJar = Depends(get_cookie_jar),
    context: RequestContext = Depends(get_request_context),
) -> AuthSessionManager:
    # One manager per request so current() stays memoized across dependencies.
    manager = getattr(request.state, "auth_session", None)
    if manager is None:
        manager = AuthSessionManager(
            settings,
            identity_store,
            session,
            cookies,
            request=context,
            access_checker=request.app.state.access_checker,
            clock=request.app.state.clock,
        )
        request.state.auth_session = manager
    return manager


def require_identity(auth: AuthSessionManager = Depends(get_auth_session)) -> Identity:
    return auth.require_login()
