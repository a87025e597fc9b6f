"""
UCM PBX HTTP client.

Every call posts the ``{"request": {...}}`` envelope to the appliance and
returns the raw ``httpx.Response``. Transport failures and timeouts are
converted to ``RemoteUnavailable`` here so services only deal with the
gateway's own exceptions. HTTP status handling is left to the caller.

Usage:
    client = container.ucm_client()
    response = await client.post({"action": "challenge", "user": "1000"})
"""
import json
from typing import Any, Dict, Optional

import httpx

from core.config import Settings
from core.exceptions import RemoteUnavailable
from core.logging import get_logger, log_api_call

logger = get_logger(__name__)


def _action_of(request: httpx.Request) -> str:
    """Pull the envelope action back out of an outgoing request body."""
    try:
        return json.loads(request.content).get("request", {}).get("action", "unknown")
    except (ValueError, AttributeError):
        return "unknown"


async def _on_response(response: httpx.Response):
    """HTTPX response event hook - one log event per PBX round trip."""
    log_api_call(
        logger,
        service="ucm",
        action=_action_of(response.request),
        success=response.is_success,
        status_code=response.status_code,
        content_type=response.headers.get("content-type"),
    )


def parse_payload(response: httpx.Response) -> Dict[str, Any]:
    """Decode a JSON envelope reply; anything else yields an empty dict."""
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


class UcmClient:
    """Shared async client for the PBX JSON API."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._client = httpx.AsyncClient(
            verify=settings.ucm_verify_tls,
            transport=transport,
            event_hooks={'response': [_on_response]},
        )

    async def post(
        self,
        request: Dict[str, Any],
        *,
        url: Optional[str] = None,
        cookie: Optional[str] = None,
        timeout: Optional[float] = None,
        accept: str = "application/json",
    ) -> httpx.Response:
        """Send one envelope and return the response.

        Raises:
            RemoteUnavailable: connection error, timeout or other transport failure.
        """
        headers = {"Content-Type": "application/json", "Accept": accept}
        if cookie:
            headers["Cookie"] = cookie

        target = url or self.settings.ucm_api_base_url
        try:
            return await self._client.post(
                target,
                json={"request": request},
                headers=headers,
                timeout=timeout or self.settings.ucm_auth_timeout,
            )
        except httpx.TimeoutException as e:
            logger.error("UCM request timed out", action=request.get("action"), url=target)
            raise RemoteUnavailable(f"Request timed out: {e}" if str(e) else "Request timed out") from e
        except httpx.RequestError as e:
            logger.error("UCM request failed", action=request.get("action"), url=target, error=str(e))
            raise RemoteUnavailable(str(e) or type(e).__name__) from e
        finally:
            # Cookies belong to individual PBX sessions, never to the shared client
            self._client.cookies.clear()

    async def close(self) -> None:
        """Close pooled connections (call on shutdown)."""
        await self._client.aclose()
        logger.info("UCM client closed")
