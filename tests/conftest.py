"""
Shared pytest fixtures for adsb2dd tests.

Provides a controllable clock, session stores, fake ADS-B sources,
sample aircraft.json payloads and an HTTP client bound to the app.
"""
import os
import pytest
import pytest_asyncio
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock, patch
from httpx import AsyncClient, ASGITransport

# Set test environment variables before importing app
os.environ.setdefault('ALLOW_PRIVATE_NETWORKS', 'false')
os.environ.setdefault('MAX_SESSIONS', '10')
os.environ.setdefault('SESSION_IDLE_TIMEOUT', '30')
os.environ.setdefault('TRACK_STALE_TIMEOUT', '5')
os.environ.setdefault('LOG_LEVEL', 'WARNING')

from adsb2dd.main import app
from adsb2dd.core import GeodeticPoint
from adsb2dd.services.sessions import (
    DelayDopplerParams, SessionStore, get_session_store
)
from adsb2dd.services.sources import Snapshot

# Receiver in San Francisco, transmitter KSCZ-LD
RX = GeodeticPoint(37.7644, -122.3954, 23)
TX = GeodeticPoint(37.49917, -121.87222, 783)
FC = 503

DD_QUERY = {
    "server": "http://adsb.example.com",
    "rx": "37.7644,-122.3954,23",
    "tx": "37.49917,-121.87222,783",
    "fc": "503",
}


class FakeClock:
    """Manually advanced stand-in for time.time."""

    def __init__(self, start: float = 1703001234.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture(scope="session")
def anyio_backend():
    """Use asyncio for async tests."""
    return "asyncio"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock) -> SessionStore:
    """Empty session store driven by the fake clock."""
    return SessionStore(max_sessions=10, idle_timeout=30, clock=clock)


@pytest.fixture
def dd_query():
    return dict(DD_QUERY)


@pytest.fixture
def dd_params() -> DelayDopplerParams:
    return DelayDopplerParams(server=DD_QUERY["server"], rx=RX, tx=TX, fc=FC)


@pytest.fixture
def fake_source():
    """ADS-B source whose probe succeeds and whose fetch returns nothing."""
    source = MagicMock()
    source.descriptor = "http://adsb.example.com/data/aircraft.json"
    source.probe = AsyncMock(return_value=True)
    source.fetch = AsyncMock(return_value=None)
    return source


@pytest_asyncio.fixture
async def client(store, fake_source) -> AsyncGenerator[AsyncClient, None]:
    """Async test client with the store overridden and sources faked."""
    app.dependency_overrides[get_session_store] = lambda: store

    with patch("adsb2dd.services.sessions.build_source", return_value=fake_source):
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test"
        ) as ac:
            yield ac

    app.dependency_overrides.clear()


# =============================================================================
# Sample Aircraft Data Fixtures
# =============================================================================

def make_aircraft(**overrides) -> dict:
    """Airliner east of the receiver, cruising eastbound."""
    aircraft = {
        "hex": "a12345",
        "flight": "UAL123  ",
        "lat": 37.70,
        "lon": -122.20,
        "alt_baro": 35000,
        "alt_geom": 35100,
        "gs": 450,
        "track": 90,
        "geom_rate": 0,
        "seen_pos": 0.5,
    }
    aircraft.update(overrides)
    return aircraft


@pytest.fixture
def aircraft_factory():
    return make_aircraft


@pytest.fixture
def sample_aircraft_data():
    """Sample aircraft.json response from a tar1090 server."""
    return {
        "now": 1703001234.5,
        "messages": 123456,
        "aircraft": [
            make_aircraft(),
            make_aircraft(
                hex="ae1234", flight="RCH001  ", lat=37.60, lon=-122.00,
                alt_baro=25000, alt_geom=25200, gs=380, track=270, geom_rate=1500,
            ),
            # No position: ignored
            {"hex": "b99999", "flight": "EMG777  ", "alt_baro": 8000, "gs": 200},
        ]
    }


@pytest.fixture
def sample_adsblol_data():
    """Sample adsb.lol v2 response (millisecond timestamp, 'ac' list)."""
    return {
        "now": 1703001234500,
        "total": 1,
        "ac": [make_aircraft(hex="c0ffee", flight="ASA456  ")],
    }


@pytest.fixture
def sample_snapshot(sample_aircraft_data) -> Snapshot:
    return Snapshot(
        source_time=sample_aircraft_data["now"],
        aircraft=sample_aircraft_data["aircraft"],
        messages=sample_aircraft_data["messages"],
    )
