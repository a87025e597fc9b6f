"""Health check utilities for daemon monitoring.

Provides uptime tracking and store statistics for the /health endpoint.
"""
import time
from typing import Dict, Any, TYPE_CHECKING

import psutil

if TYPE_CHECKING:
    from core.config import Settings
    from core.cache import TTLCache
    from core.cleanup import CleanupService
    from core.sessions import SessionStore

# Module-level startup time tracking
_startup_time: float = 0.0


def set_startup_time() -> None:
    """Record the application startup time. Call once during lifespan startup."""
    global _startup_time
    _startup_time = time.time()


def get_uptime() -> float:
    """Get uptime in seconds since startup."""
    return time.time() - _startup_time if _startup_time else 0.0


def get_memory_mb() -> float:
    """Get current process memory usage in MB."""
    try:
        return psutil.Process().memory_info().rss / (1024 * 1024)
    except psutil.Error:
        return 0.0


def check_cache(cache: "TTLCache") -> bool:
    """Read-only check that the cache is within its bound. Never writes."""
    status = cache.status()
    return status["total_entries"] <= status["max_entries"]


def get_health_status(
    cache: "TTLCache",
    sessions: "SessionStore",
    cleanup: "CleanupService",
    settings: "Settings"
) -> Dict[str, Any]:
    """Get health status for /health endpoint."""
    cache_healthy = check_cache(cache)
    reaper_ok = cleanup.is_running or not settings.cleanup_enabled

    return {
        "status": "healthy" if (cache_healthy and reaper_ok) else "degraded",
        "uptime_seconds": round(get_uptime(), 1),
        "memory_mb": round(get_memory_mb(), 1),
        "checks": {
            "cache": cache_healthy,
            "cleanup": reaper_ok,
        },
        "stores": {
            "cache_entries": len(cache),
            "sessions": len(sessions),
        },
        "ucm_api": settings.ucm_api_base_url,
    }
