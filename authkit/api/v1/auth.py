from __future__ import annotations

from fastapi import APIRouter, Depends

from authkit.api.deps import get_auth_session, get_identity_store, require_identity
from authkit.core.exceptions import AuthError
from authkit.schemas.requests import LoginRequest
from authkit.schemas.responses import (
    AuthStatusResponse,
    LoginResponse,
    LogoutResponse,
    MeResponse,
    PermissionResponse,
)
from authkit.services.auth_session import AuthSessionManager
from authkit.services.identity import Identity, IdentityStore

router = APIRouter(prefix="/auth")


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    auth: AuthSessionManager = Depends(get_auth_session),
    identity_store: IdentityStore = Depends(get_identity_store),
) -> LoginResponse:
    if body.remember_seconds:
        identity = identity_store.find_by_token(body.token, body.token_type)
        if identity is None or not auth.login(identity, body.remember_seconds):
            identity = None
    else:
        identity = auth.login_by_token(body.token, body.token_type)

    if identity is None:
        raise AuthError(message="Login failed", detail="unknown token or login vetoed")

    auth.session.set_flash("login", f"Signed in as {identity.get_id()}")
    return LoginResponse(
        user_id=identity.get_id(),
        remembered=body.remember_seconds > 0,
        return_url=auth.get_return_url(),
    )


@router.post("/logout", response_model=LogoutResponse)
def logout(
    destroy_session: bool = True,
    auth: AuthSessionManager = Depends(get_auth_session),
) -> LogoutResponse:
    auth.logout(destroy_session=destroy_session)
    return LogoutResponse()


@router.get("/status", response_model=AuthStatusResponse)
def status(auth: AuthSessionManager = Depends(get_auth_session)) -> AuthStatusResponse:
    identity = auth.current()
    return AuthStatusResponse(
        authenticated=identity is not None,
        user_id=identity.get_id() if identity is not None else None,
    )


@router.get("/me", response_model=MeResponse)
def me(
    identity: Identity = Depends(require_identity),
    auth: AuthSessionManager = Depends(get_auth_session),
) -> MeResponse:
    return MeResponse(user_id=identity.get_id(), flashes=auth.session.get_all_flashes())


@router.get("/can/{permission}", response_model=PermissionResponse)
def can(
    permission: str,
    identity: Identity = Depends(require_identity),
    auth: AuthSessionManager = Depends(get_auth_session),
) -> PermissionResponse:
    return PermissionResponse(permission=permission, allowed=auth.can(permission))
