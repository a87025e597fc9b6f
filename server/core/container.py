"""Dependency injection container for the application."""

from dependency_injector import containers, providers

from core.config import Settings
from core.cache import TTLCache
from core.cleanup import CleanupService
from core.sessions import SessionStore
from services.auth import AuthService
from services.calls import CallService
from services.cdr import CdrService
from services.recordings import RecordingService
from services.sessions import SessionService
from services.ucm_client import UcmClient


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    # Settings
    settings = providers.Singleton(
        Settings,
    )

    # Process-wide in-memory stores
    cache = providers.Singleton(
        TTLCache,
        max_entries=settings.provided.cache_max_entries,
    )

    session_store = providers.Singleton(
        SessionStore,
        ttl_seconds=settings.provided.session_ttl,
    )

    cleanup = providers.Singleton(
        CleanupService,
        cache=cache,
        sessions=session_store,
        settings=settings
    )

    # Shared PBX HTTP client (connection pool)
    ucm_client = providers.Singleton(
        UcmClient,
        settings=settings
    )

    # Services
    session_service = providers.Factory(
        SessionService,
        sessions=session_store,
        cache=cache,
        settings=settings
    )

    auth_service = providers.Factory(
        AuthService,
        client=ucm_client,
        sessions=session_store,
        settings=settings
    )

    recording_service = providers.Factory(
        RecordingService,
        client=ucm_client,
        cache=cache,
        session_service=session_service,
        settings=settings
    )

    cdr_service = providers.Factory(
        CdrService,
        client=ucm_client,
        session_service=session_service,
        settings=settings
    )

    call_service = providers.Factory(
        CallService,
        client=ucm_client,
        session_service=session_service,
        settings=settings
    )


# Global container instance
container = Container()
