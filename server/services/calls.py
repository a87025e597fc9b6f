"""Call control and logout using an existing PBX session cookie."""

from typing import Any, Dict

from constants import ACTION_CALL, ACTION_LOGOUT
from core.config import Settings
from core.exceptions import RemoteUnavailable
from core.logging import get_logger
from services.sessions import SessionService
from services.ucm_client import UcmClient, parse_payload

logger = get_logger(__name__)


class CallService:
    """Cookie-authenticated PBX actions. Transport failures propagate."""

    def __init__(self, client: UcmClient, session_service: SessionService, settings: Settings):
        self.client = client
        self.session_service = session_service
        self.settings = settings

    async def _send(self, request: Dict[str, Any], cookie: str) -> Dict[str, Any]:
        response = await self.client.post(request, cookie=cookie)
        if response.is_error:
            raise RemoteUnavailable(f"{request['action']} returned HTTP {response.status_code}",
                                    status_code=response.status_code)
        return parse_payload(response)

    async def make_call(self, cookie: str, src_ext: str, dst: str) -> Dict[str, Any]:
        """Ring ``src_ext`` and bridge it to ``dst``; returns the raw PBX payload."""
        logger.info("Placing call", src_ext=src_ext, dst=dst)
        return await self._send({"action": ACTION_CALL, "ext": src_ext, "number": dst}, cookie)

    async def logout(self, cookie: str) -> Dict[str, Any]:
        return await self._send({"action": ACTION_LOGOUT}, cookie)

    async def logout_user(self, user: str) -> Dict[str, Any]:
        """Log the user's stored session out remotely, then forget it locally.

        Raises:
            NoActiveSession: nothing stored for the user.
            RemoteUnavailable: the PBX could not be reached.
        """
        cookie = self.session_service.require_cookie(user)
        payload = await self.logout(cookie)
        self.session_service.delete_session(user)
        logger.info("User logged out", user=user, remote_status=payload.get("status"))
        return payload
