"""
Velocity-based bistatic Doppler estimation.

Projects the aircraft's reported ground velocity onto the line of sight
towards the receiver and the transmitter. The estimate is instantaneous,
so it is available from the first report but inherits ADS-B velocity noise.
"""
import math
from typing import Optional

from adsb2dd.core.geometry import EcefVector
from adsb2dd.core.utils import is_valid_number

KNOTS_TO_MS = 0.514444
FTMIN_TO_MS = 0.00508
SPEED_OF_LIGHT = 299792458
MHZ_TO_HZ = 1e6

MIN_VALID_DISTANCE_M = 100
MAX_GROUND_SPEED_KNOTS = 1000
MAX_VERTICAL_RATE_FTMIN = 20000
MIN_ALTITUDE_FT = -1000
MAX_ALTITUDE_FT = 100000


def calculate_wavelength(fc: float) -> float:
    """Wavelength in metres for a carrier frequency in MHz."""
    return SPEED_OF_LIGHT / (fc * MHZ_TO_HZ)


def enu_to_ecef(vel_e: float, vel_n: float, vel_u: float,
                lat_rad: float, lon_rad: float) -> EcefVector:
    """Rotate an East-North-Up vector into ECEF at the given position."""
    sin_lat = math.sin(lat_rad)
    cos_lat = math.cos(lat_rad)
    sin_lon = math.sin(lon_rad)
    cos_lon = math.cos(lon_rad)

    vx = -sin_lon * vel_e - sin_lat * cos_lon * vel_n + cos_lat * cos_lon * vel_u
    vy = cos_lon * vel_e - sin_lat * sin_lon * vel_n + cos_lat * sin_lon * vel_u
    vz = cos_lat * vel_n + sin_lat * vel_u
    return EcefVector(vx, vy, vz)


def _has_valid_kinematics(ac: dict, d_rx_tar: float, d_tx_tar: float) -> bool:
    gs = ac.get("gs")
    track = ac.get("track")
    if not is_valid_number(gs) or not is_valid_number(track):
        return False
    if gs < 0 or gs > MAX_GROUND_SPEED_KNOTS:
        return False
    if track < 0 or track >= 360:
        return False

    if d_rx_tar < MIN_VALID_DISTANCE_M or d_tx_tar < MIN_VALID_DISTANCE_M:
        return False

    lat, lon = ac.get("lat"), ac.get("lon")
    if not is_valid_number(lat) or not is_valid_number(lon):
        return False
    if lat < -90 or lat > 90 or lon < -180 or lon > 180:
        return False

    alt = ac.get("alt_geom")
    if is_valid_number(alt) and (alt < MIN_ALTITUDE_FT or alt > MAX_ALTITUDE_FT):
        return False

    rate = ac.get("geom_rate")
    if is_valid_number(rate) and abs(rate) > MAX_VERTICAL_RATE_FTMIN:
        return False

    return True


def doppler_from_velocity(
    ac: dict,
    target: EcefVector,
    rx: EcefVector,
    tx: EcefVector,
    d_rx_tar: float,
    d_tx_tar: float,
    fc: float,
) -> Optional[float]:
    """
    Bistatic Doppler (Hz) from an aircraft's reported velocity.

    Args:
        ac: Raw aircraft report with gs (kt), track (deg) and optional geom_rate (ft/min)
        target: Aircraft position in ECEF
        rx: Receiver position in ECEF
        tx: Transmitter position in ECEF
        d_rx_tar: Receiver to aircraft distance (m)
        d_tx_tar: Transmitter to aircraft distance (m)
        fc: Carrier frequency (MHz)

    Returns:
        Doppler shift in Hz, or None when the report fails any sanity gate.
    """
    if not _has_valid_kinematics(ac, d_rx_tar, d_tx_tar):
        return None

    gs_ms = ac["gs"] * KNOTS_TO_MS
    track_rad = math.radians(ac["track"])
    vel_east = gs_ms * math.sin(track_rad)
    vel_north = gs_ms * math.cos(track_rad)

    rate = ac.get("geom_rate")
    vel_up = rate * FTMIN_TO_MS if is_valid_number(rate) else 0.0

    velocity = enu_to_ecef(
        vel_east, vel_north, vel_up,
        math.radians(ac["lat"]), math.radians(ac["lon"]),
    )

    to_rx = (rx - target).scale(1 / d_rx_tar)
    to_tx = (tx - target).scale(1 / d_tx_tar)

    # Moving towards a node shortens that leg
    range_rate_rx = -velocity.dot(to_rx)
    range_rate_tx = -velocity.dot(to_tx)

    bistatic_range_rate = range_rate_rx + range_rate_tx
    return -bistatic_range_rate / calculate_wavelength(fc)
