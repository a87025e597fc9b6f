"""In-memory PBX session store keyed by user identity.

One record per user, last write wins. Every ``store`` restarts the fixed
lifetime; expired records are dropped lazily on read and by the cleanup
service, but never by the diagnostic listing.
"""

import secrets
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from core.logging import get_logger

logger = get_logger(__name__)


class LoginMethod(str, Enum):
    """Which authentication path produced a session."""
    PASSWORD = "password"
    CHALLENGE_AUTO_LOGIN = "challenge_auto_login"
    TOKEN = "token"
    SIMPLE_STORAGE = "simple_storage"  # caller-supplied cookie, no PBX exchange

    @property
    def session_prefix(self) -> str:
        return {
            LoginMethod.PASSWORD: "pwd",
            LoginMethod.CHALLENGE_AUTO_LOGIN: "chal",
            LoginMethod.TOKEN: "token",
            LoginMethod.SIMPLE_STORAGE: "simple",
        }[self]


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts).isoformat()


def _session_id(method: LoginMethod, now: float) -> str:
    return f"{method.session_prefix}_sess_{int(now * 1000)}_{secrets.token_hex(3)}"


@dataclass
class SessionRecord:
    """Authentication artifacts for one user.

    ``created_at``/``expires_at`` are assigned by ``SessionStore.store``.
    """
    user: str
    cookie: str
    login_method: LoginMethod
    session_id: str = ""
    created_at: float = 0.0
    expires_at: float = 0.0
    is_active: bool = True
    login_status: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(cls, user: str, cookie: str, login_method: LoginMethod,
               login_status: Optional[int] = None, **details: Any) -> "SessionRecord":
        """Build an unstored record. ``SessionStore.store`` assigns the id and lifetime."""
        return cls(
            user=user,
            cookie=cookie,
            login_method=login_method,
            login_status=login_status,
            details=details,
        )

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now

    def remaining_ttl(self, now: float) -> int:
        return max(0, int(self.expires_at - now))

    def to_dict(self, now: Optional[float] = None) -> Dict[str, Any]:
        """JSON-friendly view; annotated with expiry state when ``now`` is given."""
        data = {
            "user": self.user,
            "cookie": self.cookie,
            "cookie_length": len(self.cookie),
            "login_method": self.login_method.value,
            "session_id": self.session_id,
            "created_at": _iso(self.created_at),
            "expires_at": _iso(self.expires_at),
            "is_active": self.is_active,
            "login_status": self.login_status,
            **self.details,
        }
        if now is not None:
            data["is_expired"] = self.is_expired(now)
            data["remaining_ttl_seconds"] = self.remaining_ttl(now)
        return data


class SessionStore:
    """User -> SessionRecord map with a fixed time-to-live."""

    def __init__(self, ttl_seconds: int = 900, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: Dict[str, SessionRecord] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def now(self) -> float:
        return self._clock()

    def store(self, user: str, record: SessionRecord) -> SessionRecord:
        """Insert or replace the record for ``user``, restarting its lifetime."""
        now = self._clock()
        stored = replace(
            record,
            user=user,
            session_id=_session_id(record.login_method, now),
            created_at=now,
            expires_at=now + self.ttl_seconds,
        )
        self._sessions[user] = stored
        logger.info("Session data stored", user=user,
                    login_method=stored.login_method.value,
                    cookie_length=len(stored.cookie),
                    ttl=self.ttl_seconds)
        return stored

    def get(self, user: str) -> Optional[SessionRecord]:
        """Return the record if present and unexpired, dropping it if expired."""
        record = self._sessions.get(user)
        if record is None:
            return None

        if record.is_expired(self._clock()):
            del self._sessions[user]
            logger.info("Expired session removed", user=user)
            return None

        logger.debug("Session data retrieved", user=user)
        return record

    def peek(self, user: str) -> Optional[SessionRecord]:
        """Stored record, expired or not, without removing it."""
        return self._sessions.get(user)

    def get_cookie(self, user: str) -> Optional[str]:
        record = self.get(user)
        return record.cookie if record else None

    def list_all(self) -> Dict[str, Dict[str, Any]]:
        """Every stored record, expired ones included, annotated with TTL state."""
        now = self._clock()
        return {user: record.to_dict(now) for user, record in self._sessions.items()}

    def active(self) -> List[SessionRecord]:
        """Unexpired records that carry a cookie. Does not delete anything."""
        now = self._clock()
        return [r for r in self._sessions.values() if not r.is_expired(now) and r.cookie]

    def delete(self, user: str) -> bool:
        deleted = self._sessions.pop(user, None) is not None
        if deleted:
            logger.info("Session deleted", user=user)
        return deleted

    def sweep(self) -> int:
        """Remove every record whose ``expires_at <= now``."""
        now = self._clock()
        expired = [user for user, record in self._sessions.items() if record.is_expired(now)]
        for user in expired:
            del self._sessions[user]
        if expired:
            logger.info("Cleaned up expired sessions", count=len(expired))
        return len(expired)
