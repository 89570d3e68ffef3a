from __future__ import annotations

from typing import Awaitable, Callable

from fastapi import Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, RedirectResponse

from authkit.clients.cookies import Cookie, CookieJar
from authkit.config import Settings
from authkit.core.exceptions import AuthKitError, LoginRedirect
from authkit.core.logging import bind_request_context, clear_request_context, get_logger
from authkit.schemas.responses import ErrorResponse
from authkit.services.session import CookieParams, KeyValueSession

logger = get_logger(__name__)


async def authkit_exception_handler(request: Request, exc: AuthKitError) -> JSONResponse:
    logger.error(
        "authkit_error",
        error_code=exc.error_code,
        message=exc.message,
        detail=exc.detail,
        path=request.url.path,
    )
    body = ErrorResponse(
        error_code=exc.error_code,
        message=exc.message,
        detail=exc.detail,
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


async def login_redirect_handler(request: Request, exc: LoginRedirect) -> RedirectResponse:
    return RedirectResponse(url=exc.location, status_code=exc.status_code)


def session_cookie_params(settings: Settings) -> CookieParams:
    return CookieParams(
        lifetime=settings.SESSION_COOKIE_LIFETIME,
        path=settings.SESSION_COOKIE_PATH,
        domain=settings.SESSION_COOKIE_DOMAIN,
        secure=settings.SESSION_COOKIE_SECURE,
        http_only=settings.SESSION_COOKIE_HTTPONLY,
        samesite=settings.SESSION_COOKIE_SAMESITE,
    )


async def session_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Give each request its own session handle and cookie jar.

    After the endpoint runs the session is flushed to the store and any
    pending cookies, including a new or regenerated session ID, are written
    to the response.
    """
    settings: Settings = request.app.state.settings
    clock = request.app.state.clock
    client_ip = request.client.host if request.client else None
    bind_request_context(request.method, request.url.path, client_ip)

    incoming_id = request.cookies.get(settings.SESSION_COOKIE_NAME)
    session = KeyValueSession(
        store=request.app.state.session_store,
        session_id=incoming_id,
        cookie_params=session_cookie_params(settings),
        timeout=settings.SESSION_TIMEOUT,
        flash_param=settings.FLASH_PARAM,
    )
    cookies = CookieJar(request.cookies, clock=clock)
    request.state.session = session
    request.state.cookies = cookies

    try:
        response = await call_next(request)
        await run_in_threadpool(session.close)
        if session.id is not None and session.id != incoming_id:
            params = session.cookie_params
            cookies.add(
                Cookie(
                    name=settings.SESSION_COOKIE_NAME,
                    value=session.id,
                    expire=int(clock()) + params.lifetime if params.lifetime else 0,
                    path=params.path,
                    domain=params.domain,
                    secure=params.secure,
                    http_only=params.http_only,
                    samesite=params.samesite,
                )
            )
        cookies.apply(response)
        return response
    finally:
        clear_request_context()
