"""
UCM gateway: FastAPI backend proxying authentication, CDR and recording
queries to a UCM PBX, with in-memory session and payload caching.
"""

import logging
from datetime import datetime
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, ORJSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.container import container
from core.exceptions import LoginRejected, RemoteUnavailable, UcmError
from core.health import get_health_status, set_startup_time
from core.logging import configure_logging, get_logger
from routers import auth, cache, calls, recordings, sessions

# Initialize settings and logging
settings = container.settings()
configure_logging(settings)
logger = get_logger(__name__)

# Suppress noisy loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting UCM gateway", ucm_api=settings.ucm_api_base_url)
    set_startup_time()

    cleanup = container.cleanup()
    if settings.cleanup_enabled:
        await cleanup.start()

    logger.info("Services started successfully")
    yield

    # Shutdown
    await cleanup.stop()
    await container.ucm_client().close()
    logger.info("Services shutdown complete")


app = FastAPI(
    title="UCM Gateway",
    version="1.0.0",
    description="PBX authentication, CDR and recording proxy with in-memory session cache",
    lifespan=lifespan,
    default_response_class=ORJSONResponse
)


class CatchAllExceptionsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Unhandled exception: {type(e).__name__}: {str(e)}", exc_info=True)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "success": False,
                    "error": f"{type(e).__name__}: {str(e)}",
                    "detail": "Internal server error"
                }
            )


@app.exception_handler(UcmError)
async def ucm_error_handler(request: Request, exc: UcmError):
    """Translate raised gateway faults into error responses."""
    content = {
        "success": False,
        "error": str(exc),
        "code": exc.code,
        "detail": getattr(exc, "detail", str(exc)),
        "timestamp": datetime.now().isoformat(),
    }
    if isinstance(exc, LoginRejected):
        content["remote_status"] = exc.remote_status
    if isinstance(exc, RemoteUnavailable) and exc.status_code is not None:
        content["remote_http_status"] = exc.status_code

    logger.warning("Request failed", path=request.url.path, code=exc.code, error=str(exc))
    return JSONResponse(status_code=exc.http_status, content=content)


app.add_middleware(CatchAllExceptionsMiddleware)

# Add CORS middleware (must be AFTER exception middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router)
app.include_router(sessions.router)
app.include_router(recordings.router)
app.include_router(calls.router)
app.include_router(cache.router)


@app.get("/health")
async def health_check():
    """Detailed health check."""
    return {
        **get_health_status(
            container.cache(),
            container.session_store(),
            container.cleanup(),
            settings,
        ),
        "service": "ucm-gateway",
        "version": app.version,
        "environment": "development" if settings.debug else "production",
        "timestamp": datetime.now().isoformat()
    }


if __name__ == "__main__":
    import uvicorn
    logger.info("Starting UCM gateway", host=settings.host, port=settings.port, debug=settings.debug)
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers
    )
