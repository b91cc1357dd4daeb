from typing import Optional

from fastapi import APIRouter, Body, Depends, Request, Response
from sqlalchemy.orm import Session

from shipsy.application.auth_service import AuthService
from shipsy.application.schemas import (
    ApiResponse,
    AuthResult,
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdate,
    RefreshRequest,
    RefreshResult,
    RegisterRequest,
    TokensRead,
    UserRead,
)
from shipsy.auth_local import TokenPair
from shipsy.infrastructure.db import get_db
from .cookies import clear_auth_cookies, read_refresh_cookie, set_auth_cookies
from .deps import AuthContext, get_current_user
from .envelope import ok

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _tokens(tokens: TokenPair) -> TokensRead:
    return TokensRead(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
    )


def _auth_result(user, tokens: TokenPair) -> AuthResult:
    return AuthResult(user=UserRead.model_validate(user), tokens=_tokens(tokens))


@router.post("/register", response_model=ApiResponse[AuthResult], status_code=201)
def register(payload: RegisterRequest, response: Response, db: Session = Depends(get_db)):
    user, tokens = AuthService(db).register(payload)
    set_auth_cookies(response, tokens)
    return ok(_auth_result(user, tokens), "User registered successfully")


@router.post("/login", response_model=ApiResponse[AuthResult])
def login(payload: LoginRequest, response: Response, db: Session = Depends(get_db)):
    user, tokens = AuthService(db).login(payload)
    set_auth_cookies(response, tokens)
    return ok(_auth_result(user, tokens), "Login successful")


@router.post("/logout", response_model=ApiResponse[None])
def logout(response: Response):
    clear_auth_cookies(response)
    return ok(None, "Logout successful")


@router.post("/refresh", response_model=ApiResponse[RefreshResult])
def refresh(
    request: Request,
    response: Response,
    payload: Optional[RefreshRequest] = Body(None),
    db: Session = Depends(get_db),
):
    """Rotate both tokens. The refresh token comes from the cookie, or the body as a fallback."""
    refresh_token = read_refresh_cookie(request) or (payload.refresh_token if payload else None)
    tokens = AuthService(db).refresh(refresh_token)
    set_auth_cookies(response, tokens)
    return ok(RefreshResult(tokens=_tokens(tokens)), "Token refreshed successfully")


@router.get("/me", response_model=ApiResponse[UserRead])
def me(auth: AuthContext = Depends(get_current_user), db: Session = Depends(get_db)):
    user = AuthService(db).get_user(auth.user_id)
    return ok(UserRead.model_validate(user), "User retrieved successfully")


@router.patch("/profile", response_model=ApiResponse[UserRead])
def update_profile(
    payload: ProfileUpdate,
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = AuthService(db).update_profile(auth.user_id, payload)
    return ok(UserRead.model_validate(user), "Profile updated successfully")


@router.post("/change-password", response_model=ApiResponse[None])
def change_password(
    payload: ChangePasswordRequest,
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    AuthService(db).change_password(auth.user_id, payload)
    return ok(None, "Password changed successfully")
