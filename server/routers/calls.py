"""Call control routes."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, model_validator

from core.container import container
from services.calls import CallService
from services.sessions import SessionService

router = APIRouter(prefix="/api/ucm/calls", tags=["calls"])


class MakeCallRequest(BaseModel):
    src_ext: str = Field(alias="srcExt")
    dst: str
    cookie: Optional[str] = None
    user: Optional[str] = None

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def require_cookie_or_user(self):
        if not self.cookie and not self.user:
            raise ValueError("Either cookie or user is required")
        return self


@router.post("/make")
async def make_call(
    request: MakeCallRequest,
    calls: CallService = Depends(lambda: container.call_service()),
    sessions: SessionService = Depends(lambda: container.session_service())
):
    cookie = request.cookie or sessions.require_cookie(request.user)
    return await calls.make_call(cookie, request.src_ext, request.dst)
