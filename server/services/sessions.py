"""Session introspection and cookie helpers on top of the session store."""

from typing import Any, Dict, Optional

from constants import CDR_COOKIE_CACHE_NAMESPACE
from core.cache import TTLCache, generate_cache_key
from core.config import Settings
from core.exceptions import NoActiveSession
from core.logging import get_logger
from core.sessions import LoginMethod, SessionRecord, SessionStore
from models.ucm import ActiveCookie, ActiveCookies, SessionValidation

logger = get_logger(__name__)


class SessionService:
    """Read-side view of PBX sessions plus the cookie cache helpers."""

    def __init__(self, sessions: SessionStore, cache: TTLCache, settings: Settings):
        self.sessions = sessions
        self.cache = cache
        self.settings = settings

    def get_session(self, user: str) -> Optional[SessionRecord]:
        return self.sessions.get(user)

    def get_cookie(self, user: str) -> Optional[str]:
        return self.sessions.get_cookie(user)

    def require_cookie(self, user: str) -> str:
        """Cookie of the user's live session.

        Raises:
            NoActiveSession: nothing stored or the session expired.
        """
        cookie = self.sessions.get_cookie(user)
        if not cookie:
            raise NoActiveSession(user)
        return cookie

    def list_all(self) -> Dict[str, Dict[str, Any]]:
        return self.sessions.list_all()

    def delete_session(self, user: str) -> bool:
        return self.sessions.delete(user)

    def store_simple_session(self, user: str, cookie: str) -> SessionRecord:
        """Record a caller-supplied cookie without any PBX exchange."""
        record = SessionRecord.create(user, cookie, LoginMethod.SIMPLE_STORAGE)
        stored = self.sessions.store(user, record)
        logger.info("Simple session stored", user=user)
        return stored

    def validate_session_cookie(self, user: str, cookie: str) -> SessionValidation:
        # peek so an expired session is reported as such rather than as missing
        record = self.sessions.peek(user)
        if record is None:
            return SessionValidation(is_valid=False, user=user, message="No active session found")

        now = self.sessions.now()
        matches = record.cookie == cookie
        expired = record.is_expired(now)
        return SessionValidation(
            is_valid=matches and not expired,
            user=user,
            cookie_match=matches,
            session_status="expired" if expired else "active",
            remaining_ttl=record.remaining_ttl(now),
        )

    def active_cookies(self) -> ActiveCookies:
        now = self.sessions.now()
        cookies = []
        for record in self.sessions.active():
            view = record.to_dict()
            cookies.append(ActiveCookie(
                user=record.user,
                cookie=record.cookie,
                cookie_length=len(record.cookie),
                login_method=record.login_method.value,
                created_at=view["created_at"],
                expires_at=view["expires_at"],
                remaining_ttl=record.remaining_ttl(now),
            ))
        return ActiveCookies(active_count=len(cookies), cookies=cookies)

    # ============================================================================
    # CDR cookie cache
    # ============================================================================

    def store_cookie_for_cdr(self, user: str, cookie: str) -> None:
        key = generate_cache_key(CDR_COOKIE_CACHE_NAMESPACE, {"user": user})
        self.cache.set(key, cookie, self.settings.cdr_cookie_ttl)
        logger.info("CDR cookie stored", user=user)

    def get_cookie_for_cdr(self, user: str) -> Optional[str]:
        key = generate_cache_key(CDR_COOKIE_CACHE_NAMESPACE, {"user": user})
        cookie = self.cache.get(key)
        if cookie is None:
            logger.info("No CDR cookie found", user=user)
        return cookie

    def require_cdr_cookie(self, user: str) -> str:
        """Session cookie, falling back to a cookie stored for CDR access.

        Raises:
            NoActiveSession: neither is available.
        """
        cookie = self.sessions.get_cookie(user) or self.get_cookie_for_cdr(user)
        if not cookie:
            raise NoActiveSession(user)
        return cookie

    def clear_cache_for_user(self, user: str) -> int:
        """Drop every cache entry keyed on this user."""
        deleted = self.cache.clear_param("user", user)
        if deleted:
            logger.info("Cleared previous cache entries for user", user=user, deleted=deleted)
        return deleted
