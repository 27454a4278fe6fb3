"""
Session and track state for delay-Doppler conversion.

A session is one (receiver, transmitter, frequency, source) configuration
requested by a client. Each session owns an output map and a processing map
keyed by aircraft hex code; both always hold the same keys.

State is only mutated from synchronous code: neither the request path nor the
scheduler awaits between reading and writing a session, which keeps every
handler atomic on the single event loop.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional

from adsb2dd.core.config import get_settings
from adsb2dd.core.exceptions import (
    CapacityExceededError, InvalidParametersError, MonotonicityViolation,
    SourceUnavailableError
)
from adsb2dd.core.geometry import EcefVector, GeodeticPoint, distance, ft_to_m, to_ecef
from adsb2dd.core.utils import (
    is_valid_number, limit_digits, parse_float, parse_lla, request_fingerprint,
    validate_server_url
)
from adsb2dd.services.doppler import calculate_wavelength, doppler_from_velocity
from adsb2dd.services.smoothing import DelayHistory
from adsb2dd.services.sources import AircraftSource, Snapshot, build_source

logger = logging.getLogger(__name__)

DD_PARAMETERS = ("server", "rx", "tx", "fc")


@dataclass
class DelayDopplerParams:
    """Validated /api/dd query parameters."""
    server: str
    rx: GeodeticPoint
    tx: GeodeticPoint
    fc: float
    radius: Optional[float] = None


def parse_dd_params(query: Mapping[str, str]) -> DelayDopplerParams:
    """
    Validate the session-defining query parameters.

    Raises:
        InvalidParametersError: listing every problem found
    """
    errors = []

    server = (query.get("server") or "").strip()
    if not server:
        errors.append("server is required")
    else:
        errors.extend(validate_server_url(server))

    rx = parse_lla(query.get("rx"))
    if rx is None:
        errors.append("rx must be 'lat,lon,alt'")
    tx = parse_lla(query.get("tx"))
    if tx is None:
        errors.append("tx must be 'lat,lon,alt'")

    fc = parse_float(query.get("fc"))
    if fc is None or fc <= 0:
        errors.append("fc must be a positive frequency in MHz")

    radius = None
    if query.get("radius") is not None:
        radius = parse_float(query.get("radius"))
        if radius is None:
            errors.append("radius must be a number")

    if errors:
        raise InvalidParametersError(
            "Invalid parameters. Required: server, rx, tx, fc", errors
        )

    return DelayDopplerParams(
        server=server,
        rx=GeodeticPoint(*rx),
        tx=GeodeticPoint(*tx),
        fc=fc,
        radius=radius,
    )


@dataclass
class TrackState:
    """Per-aircraft processing state within one session."""
    history: DelayHistory
    lat: Optional[float] = None
    lon: Optional[float] = None
    alt: Optional[float] = None
    last_detection: float = 0.0

    def position_unchanged(self, ac: dict) -> bool:
        return (
            self.lat == ac.get("lat")
            and self.lon == ac.get("lon")
            and self.alt == ac.get("alt_geom")
        )


@dataclass
class Session:
    """One client-requested geometry and its live track state."""
    key: str
    server: str
    rx: GeodeticPoint
    tx: GeodeticPoint
    fc: float
    source: AircraftSource
    last_access: float
    ecef_rx: EcefVector = field(init=False)
    ecef_tx: EcefVector = field(init=False)
    baseline: float = field(init=False)
    outputs: dict[str, dict] = field(default_factory=dict)
    tracks: dict[str, TrackState] = field(default_factory=dict)
    last_source_time: Optional[float] = None
    last_processed_at: Optional[float] = None
    last_snapshot: Optional[Snapshot] = None

    def __post_init__(self):
        self.ecef_rx = to_ecef(*self.rx)
        self.ecef_tx = to_ecef(*self.tx)
        self.baseline = distance(self.ecef_rx, self.ecef_tx)

    @property
    def wavelength(self) -> float:
        return calculate_wavelength(self.fc)

    def remove_track(self, hex_code: str) -> None:
        self.outputs.pop(hex_code, None)
        self.tracks.pop(hex_code, None)

    def is_duplicate(self, source_time: float, now: float, stale_after: float) -> bool:
        """True for a snapshot already processed less than stale_after seconds ago."""
        if self.last_source_time is None or self.last_processed_at is None:
            return False
        return (
            source_time == self.last_source_time
            and now - self.last_processed_at < stale_after
        )

    def summary(self) -> dict:
        return {
            "key": self.key,
            "server": self.server,
            "source": self.source.descriptor,
            "fc": self.fc,
            "tracks": len(self.tracks),
            "last_access": self.last_access,
            "last_source_time": self.last_source_time,
        }


def is_valid_report(ac: dict) -> bool:
    """Aircraft reports need a position, geometric altitude and flight id."""
    return (
        is_valid_number(ac.get("lat"))
        and is_valid_number(ac.get("lon"))
        and is_valid_number(ac.get("alt_geom"))
        and ac.get("flight") is not None
        and bool(ac.get("hex"))
    )


def merge_doppler(doppler_vel: Optional[float],
                  doppler_pos: Optional[float]) -> tuple[Optional[float], Optional[str]]:
    """Prefer the velocity estimate, fall back to the position estimate."""
    if doppler_vel is not None:
        return doppler_vel, "velocity"
    if doppler_pos is not None:
        return doppler_pos, "position"
    return None, None


def build_output_record(timestamp: float, flight: str, delay_m: float,
                        doppler_vel: Optional[float],
                        doppler_pos: Optional[float]) -> dict:
    record = {
        "timestamp": timestamp,
        "flight": flight,
        "delay": limit_digits(delay_m / 1000, 5),
    }
    doppler, method = merge_doppler(doppler_vel, doppler_pos)
    if doppler is not None:
        record["doppler"] = limit_digits(doppler, 5)
        record["doppler_method"] = method
    if doppler_vel is not None:
        record["doppler_vel"] = limit_digits(doppler_vel, 5)
    if doppler_pos is not None:
        record["doppler_pos"] = limit_digits(doppler_pos, 5)
    return record


def evict_stale_tracks(session: Session, now: float, stale_after: float) -> list[str]:
    """Drop tracks whose last detection is older than stale_after seconds."""
    stale = [
        hex_code for hex_code, track in session.tracks.items()
        if now - track.last_detection > stale_after
    ]
    for hex_code in stale:
        session.remove_track(hex_code)
    return stale


def process_snapshot(session: Session, snapshot: Snapshot, now: float,
                     stale_after: Optional[float] = None,
                     history_size: Optional[int] = None,
                     smoothing_window: Optional[int] = None) -> None:
    """Convert one snapshot's aircraft into delay-Doppler outputs for a session."""
    settings = get_settings()
    if stale_after is None:
        stale_after = settings.track_stale_timeout
    if history_size is None:
        history_size = settings.history_size
    if smoothing_window is None:
        smoothing_window = settings.doppler_smoothing_window

    evicted = evict_stale_tracks(session, now, stale_after)
    if evicted:
        logger.debug(f"Session {session.key}: removed {len(evicted)} stale aircraft")

    for ac in snapshot.aircraft:
        if not isinstance(ac, dict) or not is_valid_report(ac):
            continue

        hex_code = ac["hex"]
        track = session.tracks.get(hex_code)
        if track is None:
            track = TrackState(history=DelayHistory(maxlen=history_size))
            session.tracks[hex_code] = track
            session.outputs[hex_code] = {}

        if track.position_unchanged(ac):
            continue

        seen_pos = ac.get("seen_pos")
        timestamp = snapshot.source_time - (seen_pos if is_valid_number(seen_pos) else 0)

        target = to_ecef(ac["lat"], ac["lon"], ft_to_m(ac["alt_geom"]))
        d_rx_tar = distance(session.ecef_rx, target)
        d_tx_tar = distance(session.ecef_tx, target)
        delay = d_rx_tar + d_tx_tar - session.baseline

        # An older report leaves the track exactly as the last accepted one left it
        try:
            track.history.push(delay, timestamp)
        except MonotonicityViolation as e:
            logger.debug(f"Session {session.key}: {hex_code} report skipped: {e}")
            continue

        track.lat, track.lon, track.alt = ac["lat"], ac["lon"], ac["alt_geom"]
        track.last_detection = timestamp

        doppler_vel = doppler_from_velocity(
            ac, target, session.ecef_rx, session.ecef_tx, d_rx_tar, d_tx_tar, session.fc
        )

        doppler_pos = None
        if len(track.history) >= 2:
            rate = track.history.derivative(smoothing_window)
            doppler_pos = -rate / session.wavelength

        session.outputs[hex_code] = build_output_record(
            timestamp, ac["flight"], delay, doppler_vel, doppler_pos
        )


class SessionStore:
    """
    Owns every live session, keyed by request fingerprint.

    Only create/get/evict operations are exposed; callers never touch the
    underlying map.
    """

    def __init__(self, max_sessions: Optional[int] = None,
                 idle_timeout: Optional[float] = None,
                 clock: Callable[[], float] = time.time):
        settings = get_settings()
        self.max_sessions = max_sessions if max_sessions is not None else settings.max_sessions
        self.idle_timeout = idle_timeout if idle_timeout is not None else settings.session_idle_timeout
        self.clock = clock
        self._sessions: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, key: str) -> bool:
        return key in self._sessions

    @property
    def is_full(self) -> bool:
        return len(self._sessions) >= self.max_sessions

    def touch(self, key: str) -> bool:
        """Refresh a session's idle clock. False when no such session."""
        session = self._sessions.get(key)
        if session is None:
            return False
        session.last_access = self.clock()
        return True

    def get(self, key: str) -> Optional[Session]:
        """Look up a session and refresh its idle clock."""
        self.touch(key)
        return self._sessions.get(key)

    def peek(self, key: str) -> Optional[Session]:
        """Look up a session without refreshing it."""
        return self._sessions.get(key)

    def create(self, key: str, params: DelayDopplerParams, source: AircraftSource) -> Session:
        """Register a new session; an existing one for the same key is returned instead."""
        existing = self.get(key)
        if existing is not None:
            return existing
        if self.is_full:
            raise CapacityExceededError("Exceeded max API requests.")

        session = Session(
            key=key,
            server=params.server,
            rx=params.rx,
            tx=params.tx,
            fc=params.fc,
            source=source,
            last_access=self.clock(),
        )
        self._sessions[key] = session
        logger.info(f"Session created: {key} ({len(self._sessions)} active)")
        return session

    def sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def evict_idle(self, now: Optional[float] = None) -> list[str]:
        """Remove sessions no client has read for longer than the idle timeout."""
        if now is None:
            now = self.clock()
        idle = [
            key for key, session in self._sessions.items()
            if now - session.last_access > self.idle_timeout
        ]
        for key in idle:
            del self._sessions[key]
            logger.info(f"Session evicted after inactivity: {key}")
        return idle

    def clear(self) -> None:
        self._sessions.clear()


async def open_session(store: SessionStore, query: Mapping[str, str]) -> Session:
    """
    Serve a client request: reuse a live session or create one.

    Raises:
        InvalidParametersError: malformed query parameters
        CapacityExceededError: the live-session ceiling is reached
        SourceUnavailableError: the source failed its liveness probe
    """
    key = request_fingerprint(query)
    session = store.get(key)
    if session is not None:
        return session

    params = parse_dd_params(query)
    if store.is_full:
        raise CapacityExceededError("Exceeded max API requests.")

    source = build_source(params.server, params.rx.lat, params.rx.lon, params.radius)
    if not await source.probe():
        raise SourceUnavailableError(f"Error checking ADS-B source validity: {params.server}")

    # create() re-checks the key and the ceiling after the probe's suspension
    return store.create(key, params, source)


_session_store: Optional[SessionStore] = None


def get_session_store() -> SessionStore:
    """Get the process-wide session store, creating it on first use."""
    global _session_store
    if _session_store is None:
        _session_store = SessionStore()
    return _session_store
