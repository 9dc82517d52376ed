"""Authentication API endpoints."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from echolingo.api.deps import get_auth_service, get_current_user, oauth2_scheme
from echolingo.schemas import AuthUser, LoginRequest, LoginResponse, OkResponse
from echolingo.schemas.records import UserRecord
from echolingo.services.auth import AuthService
from echolingo.utils.exceptions import (
    AuthenticationError,
    PermissionDeniedError,
    handle_authentication_error,
    handle_permission_denied,
)


router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_user(user: UserRecord) -> AuthUser:
    return AuthUser(account=user.account, role=user.role, name=user.name)


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, auth: AuthService = Depends(get_auth_service)) -> LoginResponse:
    """Check credentials and open a bearer session."""

    try:
        token, user = auth.login(payload.account, payload.password)
    except AuthenticationError as exc:
        raise handle_authentication_error(exc) from exc
    except PermissionDeniedError as exc:
        raise handle_permission_denied(exc) from exc
    return LoginResponse(token=token, user=_auth_user(user))


@router.post("/logout", response_model=OkResponse)
def logout(
    token: Optional[str] = Depends(oauth2_scheme),
    _: UserRecord = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
) -> OkResponse:
    auth.logout(token)
    return OkResponse()


@router.get("/me", response_model=AuthUser)
def read_current_user(current_user: UserRecord = Depends(get_current_user)) -> AuthUser:
    """Return the signed-in account."""

    return _auth_user(current_user)
