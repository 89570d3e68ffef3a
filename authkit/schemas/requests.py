from __future__ import annotations

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=512, description="Access token")
    token_type: str | None = Field(default=None, max_length=64, description="Access token type")
    remember_seconds: int = Field(
        default=0, ge=0, le=60 * 60 * 24 * 365, description="Remember-me cookie lifetime"
    )
