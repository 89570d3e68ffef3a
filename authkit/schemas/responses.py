from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from authkit.schemas.enums import ErrorCode


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "authkit"


class LoginResponse(BaseModel):
    user_id: str
    remembered: bool = False
    return_url: str = Field(..., description="Where the client should continue after login")


class LogoutResponse(BaseModel):
    message: str = "Successfully logged out"


class AuthStatusResponse(BaseModel):
    authenticated: bool
    user_id: str | None = None


class MeResponse(BaseModel):
    user_id: str
    flashes: dict[str, Any] = Field(default_factory=dict)


class PermissionResponse(BaseModel):
    permission: str
    allowed: bool


class ErrorResponse(BaseModel):
    error_code: ErrorCode
    message: str
    detail: str | None = None
