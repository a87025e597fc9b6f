"""Call recording downloads with an in-memory payload cache."""

from constants import (
    ACTION_RECORDING,
    DEFAULT_RECORDING_CONTENT_TYPE,
    RECORDING_CACHE_NAMESPACE,
)
from core.cache import TTLCache, generate_cache_key
from core.config import Settings
from core.exceptions import CacheMiss, NoActiveSession, RemoteUnavailable
from core.logging import get_logger
from models.ucm import RecordingFailure, RecordingResult, RecordingSuccess
from services.sessions import SessionService
from services.ucm_client import UcmClient, parse_payload

logger = get_logger(__name__)


class RecordingService:
    """Fetches recordings from the PBX. Never raises; failures are results."""

    def __init__(self, client: UcmClient, cache: TTLCache,
                 session_service: SessionService, settings: Settings):
        self.client = client
        self.cache = cache
        self.session_service = session_service
        self.settings = settings

    async def fetch_recording(self, cookie: str, filename: str,
                              action: str = ACTION_RECORDING) -> RecordingResult:
        """Return the recording, from cache when the same file was fetched recently."""
        cache_key = generate_cache_key(RECORDING_CACHE_NAMESPACE, {"filename": filename, "action": action})

        try:
            cached = self.cache.lookup(cache_key)
        except CacheMiss:
            logger.debug("Recording not found in cache, fetching from API", filename=filename)
        else:
            logger.info("Recording found in cache", filename=filename)
            return RecordingSuccess(
                filename=filename,
                content_type=DEFAULT_RECORDING_CONTENT_TYPE,
                content_length=len(cached),
                cached=True,
                binary=cached,
            )

        try:
            response = await self.client.post(
                {"action": action, "cookie": cookie, "filename": filename},
                url=self.settings.recording_url,
                timeout=self.settings.ucm_fetch_timeout,
                accept="*/*",
            )
        except RemoteUnavailable as e:
            logger.error("Recording fetch failed", filename=filename, error=e.detail)
            return RecordingFailure(error="Network error - unable to reach recording API",
                                    code=e.code)

        if not response.is_success:
            logger.error("Recording API error", filename=filename, status=response.status_code)
            return RecordingFailure(error=f"Recording API error: {response.status_code}",
                                    code=RemoteUnavailable.code, status=response.status_code)

        content_type = response.headers.get("content-type") or DEFAULT_RECORDING_CONTENT_TYPE
        if content_type.startswith("application/json"):
            # The PBX reports bad cookies/filenames as a JSON envelope with HTTP 200
            remote_status = parse_payload(response).get("status")
            if not isinstance(remote_status, int):
                remote_status = None
            logger.error("Recording API rejected request", filename=filename, remote_status=remote_status)
            return RecordingFailure(error=f"Recording API returned status {remote_status}",
                                    code="remote_rejected", status=remote_status)

        binary = response.content
        self.cache.set(cache_key, binary, self.settings.recording_cache_ttl)
        logger.info("Recording cached", filename=filename, size=len(binary),
                    ttl=self.settings.recording_cache_ttl)

        return RecordingSuccess(
            filename=filename,
            content_type=content_type,
            content_length=len(binary),
            cached=False,
            binary=binary,
        )

    async def fetch_recording_with_session(self, user: str, filename: str,
                                           action: str = ACTION_RECORDING) -> RecordingResult:
        """Same as ``fetch_recording`` using the user's stored cookie."""
        try:
            cookie = self.session_service.require_cookie(user)
        except NoActiveSession as e:
            return RecordingFailure(error=str(e), code=e.code)
        return await self.fetch_recording(cookie, filename, action)
