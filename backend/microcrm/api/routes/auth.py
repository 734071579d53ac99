from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel import Session

from microcrm.api.deps import CurrentUser, get_token
from microcrm.core.config import settings
from microcrm.db.session import get_session
from microcrm.schemas.auth import (
    AuthResponse,
    LoginRequest,
    PasswordChange,
    ProfileUpdate,
    RegisterRequest,
    UserRead,
)
from microcrm.schemas.common import Message
from microcrm.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        settings.auth_cookie_name,
        token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=settings.access_token_expire_minutes * 60,
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, response: Response, session: Session = Depends(get_session)) -> AuthResponse:
    try:
        result = AuthService(session).register(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    _set_auth_cookie(response, result.token)
    return result


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, response: Response, session: Session = Depends(get_session)) -> AuthResponse:
    try:
        result = AuthService(session).authenticate(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    _set_auth_cookie(response, result.token)
    return result


@router.post("/logout", response_model=Message)
def logout(
    response: Response,
    token: str = Depends(get_token),
    session: Session = Depends(get_session),
) -> Message:
    AuthService(session).logout(token)
    response.delete_cookie(settings.auth_cookie_name)
    return Message(message="Logged out successfully")


@router.get("/me", response_model=UserRead)
def me(current_user: CurrentUser, session: Session = Depends(get_session)) -> UserRead:
    return AuthService(session).describe(current_user)


@router.put("/profile", response_model=UserRead)
def update_profile(
    payload: ProfileUpdate, current_user: CurrentUser, session: Session = Depends(get_session)
) -> UserRead:
    return AuthService(session).update_profile(current_user, payload)


@router.put("/password", response_model=Message)
def change_password(
    payload: PasswordChange, current_user: CurrentUser, session: Session = Depends(get_session)
) -> Message:
    try:
        AuthService(session).change_password(current_user, payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    return Message(message="Password updated successfully")
