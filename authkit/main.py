from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI

from authkit.api.router import api_router
from authkit.clients.identity_store import InMemoryIdentityStore
from authkit.clients.session_store import MemorySessionStore, SessionStore
from authkit.config import Settings
from authkit.core.exceptions import AuthKitError, LoginRedirect
from authkit.core.logging import get_logger, setup_logging
from authkit.core.middleware import (
    authkit_exception_handler,
    login_redirect_handler,
    session_middleware,
)
from authkit.services.auth_session import check_identity_config
from authkit.services.identity import AccessChecker, IdentityStore

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings
    setup_logging(log_level=settings.LOG_LEVEL, debug=settings.DEBUG, environment=settings.ENVIRONMENT)
    check_identity_config(settings, app.state.identity_store)
    logger.info(
        "authkit_started",
        environment=settings.ENVIRONMENT,
        auto_login=settings.ENABLE_AUTO_LOGIN,
        auth_timeout=settings.AUTH_TIMEOUT,
        absolute_auth_timeout=settings.ABSOLUTE_AUTH_TIMEOUT,
    )
    yield


def create_app(
    settings: Settings | None = None,
    *,
    identity_store: IdentityStore | None = None,
    session_store: SessionStore | None = None,
    access_checker: AccessChecker | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    app = FastAPI(
        title="authkit identity and session API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings or Settings()
    app.state.identity_store = identity_store if identity_store is not None else InMemoryIdentityStore()
    app.state.session_store = session_store if session_store is not None else MemorySessionStore(clock)
    app.state.access_checker = access_checker
    app.state.clock = clock

    app.add_exception_handler(LoginRedirect, login_redirect_handler)
    app.add_exception_handler(AuthKitError, authkit_exception_handler)
    app.middleware("http")(session_middleware)
    app.include_router(api_router)
    return app


app = create_app()
