"""Recording and CDR routes. Fetch failures are returned as data, not errors."""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, model_validator

from constants import ACTION_RECORDING
from core.container import container
from core.logging import get_logger
from models.ucm import CdrQuery, RecordingResult
from services.cdr import CdrService
from services.recordings import RecordingService

logger = get_logger(__name__)
router = APIRouter(prefix="/api/ucm", tags=["recordings"])


class RecordingRequest(BaseModel):
    filename: str
    action: str = ACTION_RECORDING
    cookie: Optional[str] = None
    user: Optional[str] = None

    @model_validator(mode="after")
    def require_cookie_or_user(self):
        if not self.cookie and not self.user:
            raise ValueError("Either cookie or user is required")
        return self


class CdrRequest(CdrQuery):
    user: Optional[str] = None

    def to_query(self) -> CdrQuery:
        return CdrQuery(**self.model_dump(exclude={"user"}))


class CdrProbeRequest(BaseModel):
    user: Optional[str] = None


def get_recording_service() -> RecordingService:
    return container.recording_service()


def get_cdr_service() -> CdrService:
    return container.cdr_service()


async def _fetch(request: RecordingRequest, recordings: RecordingService) -> RecordingResult:
    if request.cookie:
        return await recordings.fetch_recording(request.cookie, request.filename, request.action)
    return await recordings.fetch_recording_with_session(request.user, request.filename, request.action)


@router.post("/recordings/fetch")
async def fetch_recording(
    request: RecordingRequest,
    recordings: RecordingService = Depends(get_recording_service)
):
    """Fetch a recording as base64 JSON, using ``cookie`` or the ``user``'s session."""
    return await _fetch(request, recordings)


@router.post("/recordings/download")
async def download_recording(
    request: RecordingRequest,
    recordings: RecordingService = Depends(get_recording_service)
):
    """Fetch a recording and return the raw audio for playback."""
    result = await _fetch(request, recordings)
    if not result.success:
        return JSONResponse(status_code=502, content=result.model_dump())
    return Response(
        content=result.binary,
        media_type=result.content_type,
        headers={"Content-Disposition": f'inline; filename="{request.filename}"',
                 "X-Cache": "HIT" if result.cached else "MISS"},
    )


@router.post("/cdr")
async def get_cdr(
    request: CdrRequest,
    cdr: CdrService = Depends(get_cdr_service)
):
    """Query CDRs with an explicit cookie, or with the ``user``'s stored session."""
    if request.user and not request.cookie:
        return await cdr.get_cdr_with_session(request.user, request.to_query())
    return await cdr.query(request.to_query())


@router.post("/cdr/probe")
async def probe_cdr(
    request: CdrProbeRequest,
    cdr: CdrService = Depends(get_cdr_service)
):
    return await cdr.probe_cdr_api(request.user)
