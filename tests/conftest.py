from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from authkit.clients.cookies import CookieJar
from authkit.clients.identity_store import InMemoryIdentityStore, UserIdentity
from authkit.clients.session_store import MemorySessionStore
from authkit.config import Settings
from authkit.main import create_app
from authkit.services.auth_session import AuthSessionManager, RequestContext
from authkit.services.session import KeyValueSession

START_TIME = 1_700_000_000.0


class FakeClock:
    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Browser:
    """Carries session and identity cookies across simulated requests."""

    def __init__(self, settings, identity_store, session_store, clock, access_checker=None):
        self.settings = settings
        self.identity_store = identity_store
        self.session_store = session_store
        self.clock = clock
        self.access_checker = access_checker
        self.cookies: dict[str, str] = {}
        self.session: KeyValueSession | None = None
        self.jar: CookieJar | None = None

    def request(self, context: RequestContext | None = None, **kwargs) -> AuthSessionManager:
        s = self.settings
        self.session = KeyValueSession(
            self.session_store,
            self.cookies.get(s.SESSION_COOKIE_NAME),
            timeout=s.SESSION_TIMEOUT,
            flash_param=s.FLASH_PARAM,
        )
        self.jar = CookieJar(self.cookies, clock=self.clock)
        return AuthSessionManager(
            s,
            self.identity_store,
            self.session,
            self.jar,
            request=context,
            access_checker=self.access_checker,
            clock=self.clock,
            **kwargs,
        )

    def finish(self) -> None:
        self.session.close()
        if self.session.id is not None:
            self.cookies[self.settings.SESSION_COOKIE_NAME] = self.session.id
        name = self.settings.IDENTITY_COOKIE_NAME
        if self.jar.is_removed(name):
            self.cookies.pop(name, None)
        added = self.jar.added(name)
        if added is not None:
            self.cookies[name] = added.value


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        IDENTITY_COOKIE_SECURE=False,
        SESSION_COOKIE_SECURE=False,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def alice() -> UserIdentity:
    return UserIdentity(id="alice", auth_key="alice-auth-key", access_tokens={"alice-token": None})


@pytest.fixture
def bob() -> UserIdentity:
    return UserIdentity(id="bob", auth_key="bob-auth-key", access_tokens={"bob-token": "bearer"})


@pytest.fixture
def identity_store(alice, bob) -> InMemoryIdentityStore:
    return InMemoryIdentityStore([alice, bob])


@pytest.fixture
def session_store(clock) -> MemorySessionStore:
    return MemorySessionStore(clock=clock)


@pytest.fixture
def make_browser(identity_store, session_store, clock):
    def factory(settings, access_checker=None) -> Browser:
        return Browser(settings, identity_store, session_store, clock, access_checker)

    return factory


@pytest.fixture
def browser(settings, make_browser) -> Browser:
    return make_browser(settings)


@pytest.fixture
def app(settings, identity_store, session_store, clock):
    return create_app(
        settings,
        identity_store=identity_store,
        session_store=session_store,
        clock=clock,
    )


@pytest.fixture
def client(app) -> TestClient:
    with TestClient(app) as c:
        yield c
