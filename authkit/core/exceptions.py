from __future__ import annotations


class AuthKitError(Exception):
    """Base exception for all authkit errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, detail: str | None = None) -> None:
        self.message = message
        self.detail = detail
        super().__init__(message)


class ConfigurationError(AuthKitError):
    status_code = 500
    error_code = "CONFIGURATION_ERROR"


class SessionUnavailableError(AuthKitError):
    status_code = 503
    error_code = "SESSION_UNAVAILABLE"


class AuthError(AuthKitError):
    status_code = 401
    error_code = "AUTH_FAILED"


class ForbiddenError(AuthKitError):
    status_code = 403
    error_code = "LOGIN_REQUIRED"


class LoginRedirect(AuthKitError):
    """Raised for a guest that should be sent to the login page."""

    status_code = 302
    error_code = "LOGIN_REDIRECT"

    def __init__(self, location: str) -> None:
        self.location = location
        super().__init__(message="Login Required", detail=f"location={location}")


class TokenDecodeError(AuthKitError):
    status_code = 400
    error_code = "INVALID_TOKEN"
