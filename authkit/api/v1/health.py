from __future__ import annotations

from fastapi import APIRouter, Request

from authkit.core.exceptions import SessionUnavailableError
from authkit.schemas.responses import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health(request: Request) -> HealthResponse:
    try:
        request.app.state.session_store.exists("__health__")
    except Exception as exc:
        raise SessionUnavailableError(message="Session store unavailable", detail=str(exc)) from exc
    return HealthResponse()
