"""UCM login sequences: challenge/response, challenge auto-login and token login.

Every sequence is strictly ordered (challenge completes before login is
sent) and mutates the session store only after the PBX accepted the login
and handed out a cookie, so a failure at any step leaves no partial state.
"""

import hashlib
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import httpx

from constants import (
    ACTION_CHALLENGE,
    ACTION_LOGIN,
    AUTO_LOGIN_TRANSPORT_FAILURE,
    UCM_STATUS_SUCCESS,
)
from core.config import Settings
from core.exceptions import ChallengeUnavailable, LoginRejected, RemoteUnavailable, UcmError
from core.logging import get_logger
from core.sessions import LoginMethod, SessionRecord, SessionStore
from models.ucm import AutoLoginOutcome, ChallengeFailure, ChallengeResult, ChallengeSuccess, LoginResult
from services.ucm_client import UcmClient, parse_payload

logger = get_logger(__name__)


class AuthState(str, Enum):
    """Login sequence states.

    Transitions:
        IDLE -> CHALLENGE_REQUESTED -> CHALLENGE_RECEIVED -> CREDENTIAL_COMPUTED
             -> LOGIN_SUBMITTED -> AUTHENTICATED | FAILED
    """
    IDLE = "idle"
    CHALLENGE_REQUESTED = "challenge_requested"
    CHALLENGE_RECEIVED = "challenge_received"
    CREDENTIAL_COMPUTED = "credential_computed"
    LOGIN_SUBMITTED = "login_submitted"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


@dataclass
class AuthenticationAttempt:
    """Transient state of one login exchange. Never stored."""
    user: str
    method: LoginMethod
    state: AuthState = AuthState.IDLE
    challenge: Optional[str] = None
    credential_digest: Optional[str] = None

    def advance(self, state: AuthState) -> None:
        logger.debug("Auth state transition", user=self.user, method=self.method.value,
                     from_state=self.state.value, to_state=state.value)
        self.state = state


def password_digest(user: str, challenge: str, password: str) -> str:
    """MD5 of ``user:challenge:password``, the password-path credential."""
    return hashlib.md5(f"{user}:{challenge}:{password}".encode()).hexdigest()


def challenge_token(challenge: str, secret: str) -> str:
    """MD5 of the challenge followed by the shared secret, the token-path credential."""
    return hashlib.md5(f"{challenge}{secret}".encode()).hexdigest()


def _remote_status(payload: Dict[str, Any]) -> Optional[int]:
    status = payload.get("status")
    return status if isinstance(status, int) else None


def _response_field(payload: Dict[str, Any], name: str) -> Any:
    """Field of the reply's ``response`` object; None when that is not an object."""
    body = payload.get("response")
    return body.get(name) if isinstance(body, dict) else None


def _set_cookie(response: httpx.Response) -> Optional[str]:
    cookies = response.headers.get_list("set-cookie")
    return cookies[0] if cookies else None


class AuthService:
    """Runs the PBX login sequences and records resulting sessions."""

    def __init__(self, client: UcmClient, sessions: SessionStore, settings: Settings):
        self.client = client
        self.sessions = sessions
        self.settings = settings

    def generate_token(self, challenge: str) -> str:
        return challenge_token(challenge, self.settings.ucm_token_secret)

    async def _request_challenge(self, attempt: AuthenticationAttempt,
                                 action: str = ACTION_CHALLENGE) -> Dict[str, Any]:
        """Fetch a challenge for ``attempt.user``; returns the raw payload."""
        attempt.advance(AuthState.CHALLENGE_REQUESTED)
        response = await self.client.post({
            "action": action,
            "user": attempt.user,
            "version": self.settings.ucm_api_version,
        })
        if response.is_error:
            raise RemoteUnavailable(f"Challenge request returned HTTP {response.status_code}",
                                    status_code=response.status_code)

        payload = parse_payload(response)
        challenge = _response_field(payload, "challenge")
        if not challenge:
            logger.error("No challenge received", user=attempt.user, remote_status=_remote_status(payload))
            raise ChallengeUnavailable(attempt.user)

        attempt.challenge = challenge
        attempt.advance(AuthState.CHALLENGE_RECEIVED)
        return payload

    async def _submit_login(self, attempt: AuthenticationAttempt, credentials: Dict[str, Any],
                            include_version: bool = True) -> httpx.Response:
        request = {"action": ACTION_LOGIN, "user": attempt.user, **credentials}
        if include_version:
            request["version"] = self.settings.ucm_api_version

        attempt.advance(AuthState.LOGIN_SUBMITTED)
        response = await self.client.post(request)
        if response.is_error:
            raise RemoteUnavailable(f"Login request returned HTTP {response.status_code}",
                                    status_code=response.status_code)

        status = _remote_status(parse_payload(response))
        if status != UCM_STATUS_SUCCESS:
            logger.error("Login rejected", user=attempt.user, remote_status=status,
                         method=attempt.method.value)
            raise LoginRejected(attempt.user, status)
        return response

    async def login(self, user: str, password: str) -> LoginResult:
        """Password login. Session cookie arrives in the ``Set-Cookie`` header.

        Raises:
            ChallengeUnavailable: PBX returned no challenge.
            LoginRejected: PBX status was not 0.
            RemoteUnavailable: transport failure or HTTP error.
        """
        logger.info("Starting login process", user=user)
        attempt = AuthenticationAttempt(user=user, method=LoginMethod.PASSWORD)
        try:
            await self._request_challenge(attempt)

            attempt.credential_digest = password_digest(user, attempt.challenge, password)
            attempt.advance(AuthState.CREDENTIAL_COMPUTED)

            response = await self._submit_login(attempt, {"password": attempt.credential_digest})
        except UcmError:
            attempt.advance(AuthState.FAILED)
            raise

        attempt.advance(AuthState.AUTHENTICATED)
        cookie = _set_cookie(response)
        if not cookie:
            logger.warning("Login successful but no session cookie received", user=user)
            return LoginResult(cookie=None, session_stored=False)

        record = SessionRecord.create(
            user, cookie, LoginMethod.PASSWORD,
            login_status=UCM_STATUS_SUCCESS,
            challenge=attempt.challenge,
        )
        self.sessions.store(user, record)
        logger.info("Login successful", user=user, cookie_length=len(cookie))
        return LoginResult(cookie=cookie, session_stored=True)

    async def challenge(self, user: str, action: str = ACTION_CHALLENGE) -> ChallengeResult:
        """Challenge followed by an automatic token login. Never raises.

        A failed challenge yields ``ChallengeFailure``. Once the challenge is
        in hand the outer result is a success, and any auto-login failure is
        reported inside ``login``.
        """
        logger.info("Starting challenge process", user=user)
        attempt = AuthenticationAttempt(user=user, method=LoginMethod.CHALLENGE_AUTO_LOGIN)
        try:
            challenge_payload = await self._request_challenge(attempt, action=action)
        except UcmError as e:
            attempt.advance(AuthState.FAILED)
            logger.error("Challenge process failed", user=user, error=str(e))
            return ChallengeFailure(user=user, code=e.code, message=str(e))

        token = self.generate_token(attempt.challenge)
        attempt.credential_digest = token
        attempt.advance(AuthState.CREDENTIAL_COMPUTED)

        outcome, cookie = await self._auto_login(attempt, token)
        session_stored = False
        if cookie:
            record = SessionRecord.create(
                user, cookie, LoginMethod.CHALLENGE_AUTO_LOGIN,
                login_status=outcome.status,
                challenge=attempt.challenge,
            )
            self.sessions.store(user, record)
            session_stored = True

        return ChallengeSuccess(
            user=user,
            challenge=challenge_payload,
            token=token,
            login=outcome,
            session_cookie=cookie,
            session_stored=session_stored,
            cookie_length=len(cookie) if cookie else 0,
        )

    async def _auto_login(self, attempt: AuthenticationAttempt,
                          token: str) -> Tuple[AutoLoginOutcome, Optional[str]]:
        """Token login for the challenge flow. Failures become the outcome."""
        try:
            response = await self._submit_login(attempt, {"token": token}, include_version=False)
        except LoginRejected as e:
            attempt.advance(AuthState.FAILED)
            return AutoLoginOutcome(
                success=False,
                status=e.remote_status if e.remote_status is not None else AUTO_LOGIN_TRANSPORT_FAILURE,
                code=e.code,
                error="Auto login rejected",
                message=str(e),
            ), None
        except RemoteUnavailable as e:
            attempt.advance(AuthState.FAILED)
            logger.error("Auto login failed", user=attempt.user, error=str(e))
            return AutoLoginOutcome(
                success=False,
                status=AUTO_LOGIN_TRANSPORT_FAILURE,
                code=e.code,
                error="Auto login failed",
                message=str(e),
            ), None

        attempt.advance(AuthState.AUTHENTICATED)
        payload = parse_payload(response)
        cookie = _response_field(payload, "cookie")
        if not cookie:
            logger.warning("Login successful but no cookie in response", user=attempt.user)
        else:
            logger.info("Session cookie extracted", user=attempt.user, cookie_length=len(cookie))
        return AutoLoginOutcome(success=True, status=UCM_STATUS_SUCCESS, response=payload), cookie

    async def token_login(self, user: str, token: str, action: str = ACTION_LOGIN) -> Dict[str, Any]:
        """Standalone token login; returns the raw PBX payload.

        The cookie travels in the JSON body. A success without a cookie
        stores nothing.

        Raises:
            LoginRejected: PBX status was not 0.
            RemoteUnavailable: transport failure or HTTP error.
        """
        logger.info("Starting token-based login process", user=user)
        attempt = AuthenticationAttempt(user=user, method=LoginMethod.TOKEN,
                                        credential_digest=token)
        attempt.advance(AuthState.CREDENTIAL_COMPUTED)
        request = {
            "action": action,
            "user": user,
            "token": token,
            "version": self.settings.ucm_api_version,
        }
        attempt.advance(AuthState.LOGIN_SUBMITTED)
        try:
            response = await self.client.post(request)
            if response.is_error:
                raise RemoteUnavailable(f"Token login returned HTTP {response.status_code}",
                                        status_code=response.status_code)
            payload = parse_payload(response)
            status = _remote_status(payload)
            if status != UCM_STATUS_SUCCESS:
                logger.error("Token login failed", user=user, remote_status=status)
                raise LoginRejected(user, status)
        except UcmError:
            attempt.advance(AuthState.FAILED)
            raise

        attempt.advance(AuthState.AUTHENTICATED)
        cookie = _response_field(payload, "cookie")
        if cookie:
            record = SessionRecord.create(user, cookie, LoginMethod.TOKEN, login_status=status)
            self.sessions.store(user, record)
            logger.info("Token login session stored", user=user)
        else:
            logger.warning("Token login successful but no cookie in response", user=user)
        return payload
