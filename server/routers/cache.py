"""Cache administration routes."""

from fastapi import APIRouter, Depends, Query

from core.cache import TTLCache
from core.container import container
from core.logging import get_logger
from core.sessions import SessionStore
from models.ucm import CacheStatus
from services.sessions import SessionService

logger = get_logger(__name__)
router = APIRouter(prefix="/api/ucm/cache", tags=["cache"])


@router.get("/status")
async def cache_status(
    cache: TTLCache = Depends(lambda: container.cache()),
    sessions: SessionStore = Depends(lambda: container.session_store())
):
    return CacheStatus(**cache.status(), total_sessions=len(sessions))


@router.delete("")
async def clear_cache(cache: TTLCache = Depends(lambda: container.cache())):
    """Clear every cache entry (sessions are untouched)."""
    return {"success": True, "deleted": cache.clear()}


@router.delete("/pattern")
async def clear_cache_pattern(
    pattern: str = Query(..., min_length=1),
    cache: TTLCache = Depends(lambda: container.cache())
):
    return {"success": True, "pattern": pattern, "deleted": cache.clear_pattern(pattern)}


@router.delete("/users/{user}")
async def clear_user_cache(
    user: str,
    sessions: SessionService = Depends(lambda: container.session_service())
):
    return {"success": True, "user": user, "deleted": sessions.clear_cache_for_user(user)}
