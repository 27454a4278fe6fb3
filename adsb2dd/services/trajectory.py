"""
Synthetic hypersonic target trajectories.

Generates a constant-speed, constant-altitude Mach 5 track and its
delay-Doppler signature, for exercising anomaly detection downstream.
The reported ground speed exceeds the velocity estimator's plausibility
gate, so Doppler here comes from consecutive delay differences.
"""
import math
import time
from typing import Optional

from adsb2dd.core.geometry import GeodeticPoint, WGS84_A, distance, to_ecef
from adsb2dd.services.doppler import calculate_wavelength

MACH5_SPEED_MS = 1715
MS_TO_KNOTS = 1.94384
MACH5_HEX = "MACH5X"
MACH5_FLIGHT = "MACH5"


def _destination(lat: float, lon: float, bearing: float, dist_m: float) -> tuple[float, float]:
    """Great-circle destination on a sphere of the WGS-84 equatorial radius."""
    lat1 = math.radians(lat)
    lon1 = math.radians(lon)
    brng = math.radians(bearing)
    delta = dist_m / WGS84_A

    lat2 = math.asin(
        math.sin(lat1) * math.cos(delta)
        + math.cos(lat1) * math.sin(delta) * math.cos(brng)
    )
    lon2 = lon1 + math.atan2(
        math.sin(brng) * math.sin(delta) * math.cos(lat1),
        math.cos(delta) - math.sin(lat1) * math.sin(lat2),
    )
    return math.degrees(lat2), (math.degrees(lon2) + 540) % 360 - 180


def generate_mach5_trajectory(start_lat: float, start_lon: float, start_alt: float,
                              heading: float, duration: float, timestep: float,
                              start_time: Optional[float] = None) -> list[dict]:
    """
    Straight-line Mach 5 trajectory sampled every timestep seconds.

    Args:
        start_alt: Altitude in metres, held constant
        heading: Track in degrees from true north
        start_time: Epoch seconds of the first sample (defaults to now)

    Returns:
        tar1090-style aircraft reports with an extra 'timestamp' and 'speed' (m/s)
    """
    if timestep <= 0 or duration <= 0:
        raise ValueError("duration and timestep must be positive")
    if start_time is None:
        start_time = time.time()

    alt_ft = round(start_alt / 0.3048)
    positions = []
    for i in range(int(round(duration / timestep))):
        elapsed = i * timestep
        lat, lon = _destination(start_lat, start_lon, heading, MACH5_SPEED_MS * elapsed)
        positions.append({
            "hex": MACH5_HEX,
            "flight": MACH5_FLIGHT,
            "lat": lat,
            "lon": lon,
            "alt": start_alt,
            "alt_baro": alt_ft,
            "alt_geom": alt_ft,
            "speed": MACH5_SPEED_MS,
            "gs": MACH5_SPEED_MS * MS_TO_KNOTS,
            "track": heading,
            "timestamp": start_time + elapsed,
        })
    return positions


def trajectory_to_delay_doppler(trajectory: list[dict], rx: GeodeticPoint,
                                tx: GeodeticPoint, fc: float) -> list[dict]:
    """Bistatic delay (km) and Doppler (Hz) for each trajectory sample."""
    ecef_rx = to_ecef(*rx)
    ecef_tx = to_ecef(*tx)
    baseline = distance(ecef_rx, ecef_tx)
    wavelength = calculate_wavelength(fc)

    detections = []
    prev_delay = prev_time = None
    for pos in trajectory:
        target = to_ecef(pos["lat"], pos["lon"], pos["alt"])
        delay = distance(ecef_rx, target) + distance(ecef_tx, target) - baseline

        doppler = 0.0
        if prev_delay is not None and pos["timestamp"] > prev_time:
            rate = (delay - prev_delay) / (pos["timestamp"] - prev_time)
            doppler = -rate / wavelength
        prev_delay, prev_time = delay, pos["timestamp"]

        detections.append({
            "timestamp": int(pos["timestamp"] * 1000),
            "delay": delay / 1000,
            "doppler": doppler,
            "adsb": {
                "hex": pos["hex"],
                "lat": pos["lat"],
                "lon": pos["lon"],
                "alt_baro": pos["alt_baro"],
                "gs": pos["gs"],
                "track": pos["track"],
                "flight": pos["flight"],
            },
        })
    return detections
