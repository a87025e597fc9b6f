"""PBX authentication routes: password login, challenge auto-login, token login, logout.

Raised gateway errors (login/token-login/logout) are turned into error
responses by the application exception handler.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, model_validator

from constants import ACTION_CHALLENGE, ACTION_LOGIN
from core.container import container
from core.logging import get_logger
from services.auth import AuthService
from services.calls import CallService

logger = get_logger(__name__)
router = APIRouter(prefix="/api/ucm/auth", tags=["auth"])


class LoginRequest(BaseModel):
    user: str
    password: str


class ChallengeRequest(BaseModel):
    user: str
    action: str = ACTION_CHALLENGE


class TokenLoginRequest(BaseModel):
    user: str
    token: str
    action: str = ACTION_LOGIN


class LogoutRequest(BaseModel):
    user: Optional[str] = None
    cookie: Optional[str] = None

    @model_validator(mode="after")
    def require_user_or_cookie(self):
        if not self.user and not self.cookie:
            raise ValueError("Either user or cookie is required")
        return self


def get_auth_service() -> AuthService:
    return container.auth_service()


def get_call_service() -> CallService:
    return container.call_service()


@router.post("/login")
async def login(
    request: LoginRequest,
    auth: AuthService = Depends(get_auth_service)
):
    """Challenge/response password login. Returns the PBX session cookie."""
    return await auth.login(request.user, request.password)


@router.post("/challenge")
async def challenge(
    request: ChallengeRequest,
    auth: AuthService = Depends(get_auth_service)
):
    """Challenge followed by automatic token login; failures come back as data."""
    return await auth.challenge(request.user, action=request.action)


@router.post("/token-login")
async def token_login(
    request: TokenLoginRequest,
    auth: AuthService = Depends(get_auth_service)
):
    """Login with a precomputed token. Returns the raw PBX payload."""
    return await auth.token_login(request.user, request.token, action=request.action)


@router.post("/logout")
async def logout(
    request: LogoutRequest,
    calls: CallService = Depends(get_call_service)
):
    """
    Logout from the PBX.
    With ``user`` the stored session is used and then deleted;
    with ``cookie`` only the remote session is ended.
    """
    if request.user:
        return await calls.logout_user(request.user)
    return await calls.logout(request.cookie)
