"""
Shared fixtures for the UCM gateway tests.

sys.path is configured so server modules import the same way the app does
('from core.cache import ...'), whether pytest runs from the repo root or tests/.
"""
import sys
from pathlib import Path

import pytest

_server_dir = Path(__file__).parent.parent / "server"
if str(_server_dir) not in sys.path:
    sys.path.insert(0, str(_server_dir))

from core.cache import TTLCache
from core.config import Settings
from core.sessions import SessionStore


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        ucm_api_base_url="https://pbx.test/api",
        ucm_rec_api_url="https://pbx.test/recapi",
        session_ttl=900,
        recording_cache_ttl=1800,
        cleanup_enabled=False,
        _env_file=None,
    )


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    return TTLCache(max_entries=100, clock=clock)


@pytest.fixture
def store(clock: FakeClock) -> SessionStore:
    return SessionStore(ttl_seconds=900, clock=clock)
