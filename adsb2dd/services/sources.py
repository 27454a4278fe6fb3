"""
ADS-B source collaborators.

Each source exposes two coroutines that never raise:
- probe(): liveness check used before a session is created
- fetch(): latest Snapshot, or None when the source failed
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol
from urllib.parse import urlparse

from adsb2dd.core.config import get_settings
from adsb2dd.core.utils import ADSBLOL_HOST, is_valid_number, safe_request

logger = logging.getLogger(__name__)


@dataclass
class Snapshot:
    """One aircraft.json payload: source time (s) and raw aircraft reports."""
    source_time: float
    aircraft: list[dict] = field(default_factory=list)
    messages: int = 0


class AircraftSource(Protocol):
    descriptor: str

    async def probe(self) -> bool: ...

    async def fetch(self) -> Optional[Snapshot]: ...


def parse_tar1090(data: Any) -> Optional[Snapshot]:
    """Validate a tar1090 aircraft.json payload."""
    if not isinstance(data, dict):
        return None
    aircraft = data.get("aircraft")
    now = data.get("now")
    if not isinstance(aircraft, list) or not is_valid_number(now):
        return None
    return Snapshot(source_time=float(now), aircraft=aircraft, messages=data.get("messages", 0))


def parse_adsblol(data: Any) -> Optional[Snapshot]:
    """Normalize an adsb.lol v2 payload (ms timestamp, 'ac' list) to a Snapshot."""
    if not isinstance(data, dict):
        return None
    now = data.get("now")
    aircraft = data.get("ac", [])
    if not is_valid_number(now) or not isinstance(aircraft, list):
        return None
    return Snapshot(source_time=now / 1000, aircraft=aircraft, messages=data.get("total", 0))


class Tar1090Source:
    """A tar1090/readsb server polled at <server>/data/aircraft.json."""

    def __init__(self, server: str, timeout: Optional[float] = None):
        self.server = server.rstrip("/")
        self.url = f"{self.server}/data/aircraft.json"
        self.timeout = timeout
        self.descriptor = self.url

    async def probe(self) -> bool:
        data = await safe_request(self.url, timeout=self.timeout)
        if parse_tar1090(data) is None:
            logger.warning(f"tar1090 probe failed for {self.url}")
            return False
        return True

    async def fetch(self) -> Optional[Snapshot]:
        return parse_tar1090(await safe_request(self.url, timeout=self.timeout))


class AdsbLolSource:
    """The public adsb.lol API, queried as a circle around a point."""

    def __init__(self, lat: float, lon: float, radius: float,
                 base_url: Optional[str] = None, timeout: Optional[float] = None):
        base_url = (base_url or get_settings().adsblol_url).rstrip("/")
        self.lat = lat
        self.lon = lon
        self.radius = radius
        self.url = f"{base_url}/v2/lat/{lat}/lon/{lon}/dist/{radius}"
        self.timeout = timeout
        self.descriptor = self.url

    def _parameters_valid(self) -> bool:
        max_radius = get_settings().adsblol_max_radius_nm
        if not all(is_valid_number(v) for v in (self.lat, self.lon, self.radius)):
            return False
        return (
            -90 <= self.lat <= 90
            and -180 <= self.lon <= 180
            and 0 < self.radius <= max_radius
        )

    async def probe(self) -> bool:
        if not self._parameters_valid():
            logger.warning(f"Invalid adsb.lol query parameters: {self.url}")
            return False
        data = await safe_request(self.url, timeout=self.timeout)
        if parse_adsblol(data) is None:
            logger.warning("Invalid or missing timestamp in adsb.lol response")
            return False
        return True

    async def fetch(self) -> Optional[Snapshot]:
        if not self._parameters_valid():
            return None
        return parse_adsblol(await safe_request(self.url, timeout=self.timeout))


def is_adsblol_server(server: str) -> bool:
    """True when the server parameter selects the adsb.lol API."""
    try:
        return (urlparse(server).hostname or "").lower() == ADSBLOL_HOST
    except ValueError:
        return False


def build_source(server: str, rx_lat: float, rx_lon: float,
                 radius: Optional[float] = None) -> AircraftSource:
    """Pick the source implementation for a server parameter."""
    settings = get_settings()
    if is_adsblol_server(server):
        return AdsbLolSource(
            rx_lat, rx_lon,
            radius if radius is not None else settings.adsblol_radius_nm,
            base_url=server,
            timeout=settings.request_timeout,
        )
    return Tar1090Source(server, timeout=settings.request_timeout)
