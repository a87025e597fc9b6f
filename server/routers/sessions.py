"""Session introspection routes (diagnostics and simple cookie storage)."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from core.container import container
from core.logging import get_logger
from services.sessions import SessionService

logger = get_logger(__name__)
router = APIRouter(prefix="/api/ucm/sessions", tags=["sessions"])


class StoreSessionRequest(BaseModel):
    user: str
    cookie: str


class ValidateSessionRequest(BaseModel):
    user: str
    cookie: str


class CdrCookieRequest(BaseModel):
    cookie: str


def get_session_service() -> SessionService:
    return container.session_service()


@router.get("")
async def list_sessions(sessions: SessionService = Depends(get_session_service)):
    """All stored sessions, expired ones included, with remaining TTL."""
    all_sessions = sessions.list_all()
    return {"success": True, "count": len(all_sessions), "sessions": all_sessions}


@router.get("/active-cookies")
async def active_cookies(sessions: SessionService = Depends(get_session_service)):
    return sessions.active_cookies()


@router.post("")
async def store_session(
    request: StoreSessionRequest,
    sessions: SessionService = Depends(get_session_service)
):
    """Store a caller-supplied cookie for a user (no PBX exchange)."""
    record = sessions.store_simple_session(request.user, request.cookie)
    return {"success": True, "session": record.to_dict()}


@router.post("/validate")
async def validate_session(
    request: ValidateSessionRequest,
    sessions: SessionService = Depends(get_session_service)
):
    return sessions.validate_session_cookie(request.user, request.cookie)


@router.post("/{user}/cdr-cookie")
async def store_cdr_cookie(
    user: str,
    request: CdrCookieRequest,
    sessions: SessionService = Depends(get_session_service)
):
    """Keep a cookie for CDR queries without creating a session."""
    sessions.store_cookie_for_cdr(user, request.cookie)
    return {"success": True, "user": user}


@router.get("/{user}/cdr-cookie")
async def get_cdr_cookie(user: str, sessions: SessionService = Depends(get_session_service)):
    cookie = sessions.get_cookie_for_cdr(user)
    if cookie is None:
        raise HTTPException(status_code=404, detail=f"No CDR cookie for user: {user}")
    return {"success": True, "user": user, "cookie": cookie}


@router.get("/{user}")
async def get_session(user: str, sessions: SessionService = Depends(get_session_service)):
    record = sessions.get_session(user)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No active session for user: {user}")
    return {"success": True, "session": record.to_dict()}


@router.get("/{user}/cookie")
async def get_cookie(user: str, sessions: SessionService = Depends(get_session_service)):
    cookie = sessions.get_cookie(user)
    if cookie is None:
        raise HTTPException(status_code=404, detail=f"No active session for user: {user}")
    return {"success": True, "user": user, "cookie": cookie}


@router.delete("/{user}")
async def delete_session(user: str, sessions: SessionService = Depends(get_session_service)):
    return {"success": sessions.delete_session(user), "user": user}
