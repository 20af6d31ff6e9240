import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from linksnap_app.backend.strategies import BackendStrategy
from linksnap_app.config import settings
from linksnap_app.dependencies import get_backend, get_current_session, session_token
from linksnap_app.exceptions import BackendError
from linksnap_app.schemas.auth import AuthInfo, AuthSession, AuthUser, Credentials, TokenResponse
from linksnap_app.schemas.url import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def _set_session_cookie(response: Response, token: Optional[str]) -> None:
    if token:
        response.set_cookie(
            settings.session_cookie_name,
            token,
            httponly=True,
            samesite="lax",
            secure=settings.base_url.startswith("https://"),
        )


@router.get("/auth", response_model=AuthInfo)
async def auth_page():
    """Where the dashboard sends visitors without a session"""
    return AuthInfo(
        message="Sign in to manage your short links",
        provider=settings.backend,
        signin_url="/api/v1/auth/signin",
        signup_url="/api/v1/auth/signup",
    )


@router.post("/api/v1/auth/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(
    credentials: Credentials,
    response: Response,
    backend: BackendStrategy = Depends(get_backend),
):
    """Register with email and password"""
    try:
        result = await backend.sign_up(credentials.email, credentials.password)
    except BackendError as e:
        logger.warning("Sign-up failed: %r", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    _set_session_cookie(response, result.access_token)
    return result


@router.post("/api/v1/auth/signin", response_model=TokenResponse)
async def sign_in(
    credentials: Credentials,
    response: Response,
    backend: BackendStrategy = Depends(get_backend),
):
    """Exchange email and password for a session token"""
    try:
        result = await backend.sign_in(credentials.email, credentials.password)
    except BackendError as e:
        logger.warning("Sign-in failed: %r", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    _set_session_cookie(response, result.access_token)
    return result


@router.get("/api/v1/auth/session", response_model=AuthUser)
async def current_user(session: AuthSession = Depends(get_current_session)):
    """The signed-in user"""
    return session.user


@router.post("/api/v1/auth/signout", response_model=MessageResponse)
async def sign_out(
    response: Response,
    token: Optional[str] = Depends(session_token),
    backend: BackendStrategy = Depends(get_backend),
):
    """Revoke the current session token and clear the cookie"""
    if token:
        try:
            await backend.sign_out(token)
        except BackendError as e:
            logger.error("Sign-out failed: %r", e)
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to sign out")
    response.delete_cookie(settings.session_cookie_name)
    return MessageResponse(message="Signed out")
