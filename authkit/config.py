from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Identity
    ENABLE_SESSION: bool = True
    ENABLE_AUTO_LOGIN: bool = False
    AUTO_RENEW_COOKIE: bool = True
    AUTH_TIMEOUT: int | None = None
    ABSOLUTE_AUTH_TIMEOUT: int | None = None
    LOGIN_URL: str | None = "/login"
    HOME_URL: str = "/"
    ACCEPTABLE_REDIRECT_TYPES: list[str] = ["text/html", "application/xhtml+xml"]

    # Session keys
    ID_PARAM: str = "__id"
    AUTH_TIMEOUT_PARAM: str = "__expire"
    ABSOLUTE_AUTH_TIMEOUT_PARAM: str = "__absoluteExpire"
    RETURN_URL_PARAM: str = "__returnUrl"
    FLASH_PARAM: str = "__flash"
    CSRF_PARAM: str = "_csrf"

    # Persistent login cookie
    IDENTITY_COOKIE_NAME: str = "_identity"
    IDENTITY_COOKIE_PATH: str = "/"
    IDENTITY_COOKIE_DOMAIN: str | None = None
    IDENTITY_COOKIE_SECURE: bool = True
    IDENTITY_COOKIE_HTTPONLY: bool = True
    IDENTITY_COOKIE_SAMESITE: str = "lax"

    # Session cookie / storage
    SESSION_COOKIE_NAME: str = "SESSID"
    SESSION_COOKIE_LIFETIME: int = 0
    SESSION_COOKIE_PATH: str = "/"
    SESSION_COOKIE_DOMAIN: str | None = None
    SESSION_COOKIE_SECURE: bool = True
    SESSION_COOKIE_HTTPONLY: bool = True
    SESSION_COOKIE_SAMESITE: str = "lax"
    SESSION_TIMEOUT: int = 1440  # seconds a stored session survives without writes

    # "test" skips session ID regeneration on identity switches
    ENVIRONMENT: str = "production"

    # Logging
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False
