"""Pydantic v2 result and request models for the UCM gateway.

Operations that never raise return a success/failure pair tagged by the
``success`` literal; failures carry a taxonomy ``code`` from
``core.exceptions``.
"""

import base64
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, computed_field

from constants import ACTION_CDR, DEFAULT_CDR_FORMAT


def _now_iso() -> str:
    return datetime.now().isoformat()


# =============================================================================
# Authentication
# =============================================================================

class LoginResult(BaseModel):
    """Password login outcome. ``cookie`` is None when the PBX sent none."""
    cookie: Optional[str] = None
    session_stored: bool = False


class AutoLoginOutcome(BaseModel):
    """Nested result of the token login attempted after a challenge."""
    success: bool
    status: int
    code: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = None
    response: Optional[Dict[str, Any]] = None  # raw PBX payload
    timestamp: str = Field(default_factory=_now_iso)


class ChallengeSuccess(BaseModel):
    success: Literal[True] = True
    user: str
    challenge: Dict[str, Any]                    # raw challenge payload
    token: Optional[str] = None
    login: Optional[AutoLoginOutcome] = None
    session_cookie: Optional[str] = None
    session_stored: bool = False
    cookie_length: int = 0
    timestamp: str = Field(default_factory=_now_iso)


class ChallengeFailure(BaseModel):
    success: Literal[False] = False
    user: str
    error: str = "Challenge failed"
    code: str
    message: str
    timestamp: str = Field(default_factory=_now_iso)


ChallengeResult = Union[ChallengeSuccess, ChallengeFailure]


# =============================================================================
# Recordings
# =============================================================================

class RecordingSuccess(BaseModel):
    success: Literal[True] = True
    filename: str
    content_type: str
    content_length: Optional[int] = None
    cached: bool
    binary: bytes = Field(exclude=True, repr=False)
    timestamp: str = Field(default_factory=_now_iso)

    @computed_field
    @property
    def data(self) -> str:
        """Base64 payload for JSON transport."""
        return base64.b64encode(self.binary).decode("ascii")


class RecordingFailure(BaseModel):
    success: Literal[False] = False
    error: str
    code: str
    status: Optional[int] = None
    timestamp: str = Field(default_factory=_now_iso)


RecordingResult = Union[RecordingSuccess, RecordingFailure]


# =============================================================================
# CDR
# =============================================================================

class CdrQuery(BaseModel):
    """Filters for a CDR report. Unset filters are not sent to the PBX."""
    action: str = ACTION_CDR
    cookie: Optional[str] = None
    caller: Optional[str] = None
    callee: Optional[str] = None
    format: Optional[str] = DEFAULT_CDR_FORMAT
    start_time: Optional[str] = Field(default=None, alias="startTime")
    end_time: Optional[str] = Field(default=None, alias="endTime")

    model_config = {"populate_by_name": True}

    def to_request(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class CdrSuccess(BaseModel):
    success: Literal[True] = True
    data: Any
    status: int
    timestamp: str = Field(default_factory=_now_iso)


class CdrFailure(BaseModel):
    success: Literal[False] = False
    error: str
    code: str
    status: Optional[int] = None
    data: Any = None
    message: Optional[str] = None
    timestamp: str = Field(default_factory=_now_iso)


CdrResult = Union[CdrSuccess, CdrFailure]


class CdrProbeResult(BaseModel):
    success: bool
    step: Optional[str] = None
    message: Optional[str] = None
    tests: Dict[str, CdrResult] = Field(default_factory=dict)
    timestamp: str = Field(default_factory=_now_iso)


# =============================================================================
# Sessions & cache
# =============================================================================

class SessionValidation(BaseModel):
    is_valid: bool
    user: str
    message: Optional[str] = None
    cookie_match: Optional[bool] = None
    session_status: Optional[Literal["active", "expired"]] = None
    remaining_ttl: Optional[int] = None
    timestamp: str = Field(default_factory=_now_iso)


class ActiveCookie(BaseModel):
    user: str
    cookie: str
    cookie_length: int
    login_method: str
    created_at: str
    expires_at: str
    remaining_ttl: int


class ActiveCookies(BaseModel):
    success: bool = True
    active_count: int
    cookies: List[ActiveCookie]
    timestamp: str = Field(default_factory=_now_iso)


class CacheStatus(BaseModel):
    total_entries: int
    active_entries: int
    expired_entries: int
    max_entries: int
    total_sessions: int
    timestamp: str
