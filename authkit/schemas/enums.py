from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    SESSION_UNAVAILABLE = "SESSION_UNAVAILABLE"
    AUTH_FAILED = "AUTH_FAILED"
    LOGIN_REQUIRED = "LOGIN_REQUIRED"
    LOGIN_REDIRECT = "LOGIN_REDIRECT"
    INVALID_TOKEN = "INVALID_TOKEN"
    INTERNAL_ERROR = "INTERNAL_ERROR"
