"""Call detail record queries against the PBX reporting endpoint."""

from datetime import date, timedelta
from typing import Any, Dict, Optional

from core.config import Settings
from core.exceptions import NoActiveSession, RemoteUnavailable
from core.logging import get_logger
from models.ucm import CdrFailure, CdrProbeResult, CdrQuery, CdrResult, CdrSuccess
from services.sessions import SessionService
from services.ucm_client import UcmClient

logger = get_logger(__name__)


class CdrService:
    """CDR report client. Never raises; failures are results."""

    def __init__(self, client: UcmClient, session_service: SessionService, settings: Settings):
        self.client = client
        self.session_service = session_service
        self.settings = settings

    async def get_cdr_data(self, request: Dict[str, Any]) -> CdrResult:
        """Send a CDR request (the inner ``request`` object) as-is."""
        logger.info("Making CDR API call", action=request.get("action"),
                    filters=sorted(k for k in request if k != "cookie"))
        try:
            response = await self.client.post(
                request,
                url=self.settings.cdr_url,
                timeout=self.settings.ucm_fetch_timeout,
            )
        except RemoteUnavailable as e:
            logger.error("CDR API call failed", error=e.detail)
            return CdrFailure(error="Network error - unable to reach CDR API",
                              code=e.code, message=e.detail)

        try:
            data = response.json()
        except ValueError:
            data = response.text

        if not response.is_success:
            logger.error("CDR API responded with error", status=response.status_code)
            return CdrFailure(error="CDR API responded with error", code=RemoteUnavailable.code,
                              status=response.status_code, data=data)

        return CdrSuccess(data=data, status=response.status_code)

    async def query(self, query: CdrQuery) -> CdrResult:
        return await self.get_cdr_data(query.to_request())

    async def get_cdr_with_session(self, user: str, query: CdrQuery) -> CdrResult:
        """Run ``query`` with the user's stored cookie."""
        try:
            cookie = self.session_service.require_cdr_cookie(user)
        except NoActiveSession as e:
            return CdrFailure(error=str(e), code=e.code)
        return await self.query(query.model_copy(update={"cookie": cookie}))

    async def probe_cdr_api(self, user: Optional[str] = None) -> CdrProbeResult:
        """Two-step CDR check: a bare query, then one bounded to yesterday..today."""
        user = user or self.settings.ucm_api_user
        logger.info("Starting CDR API probe", user=user)

        try:
            cookie = self.session_service.require_cdr_cookie(user)
        except NoActiveSession as e:
            return CdrProbeResult(success=False, step="session", message=str(e))

        simple = await self.query(CdrQuery(cookie=cookie))
        if not simple.success:
            return CdrProbeResult(
                success=False,
                step="simple_request",
                message="Simple CDR request failed",
                tests={"simple": simple},
            )

        today = date.today()
        yesterday = today - timedelta(days=1)
        with_dates = await self.query(CdrQuery(
            cookie=cookie,
            start_time=f"{yesterday.isoformat()} 00:00:00",
            end_time=f"{today.isoformat()} 23:59:59",
        ))
        return CdrProbeResult(success=True, tests={"simple": simple, "with_dates": with_dates})
