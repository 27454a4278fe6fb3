"""
WGS-84 geodetic and ECEF coordinate helpers.

All distances are in metres and all angles in degrees unless noted.
"""
import math
from typing import NamedTuple

WGS84_A = 6378137.0  # Semi-major axis [m]
WGS84_F = 1.0 / 298.257223563  # Flattening
WGS84_B = WGS84_A * (1 - WGS84_F)  # Semi-minor axis
WGS84_E2 = 2 * WGS84_F - WGS84_F ** 2  # First eccentricity squared
WGS84_EP2 = WGS84_E2 / (1 - WGS84_E2)  # Second eccentricity squared

FT_TO_M = 0.3048


class GeodeticPoint(NamedTuple):
    """Latitude/longitude in degrees, altitude in metres."""
    lat: float
    lon: float
    alt: float


class EcefVector(NamedTuple):
    """Earth-centred Earth-fixed position or direction in metres."""
    x: float
    y: float
    z: float

    def __sub__(self, other: "EcefVector") -> "EcefVector":
        return EcefVector(self.x - other.x, self.y - other.y, self.z - other.z)

    def scale(self, factor: float) -> "EcefVector":
        return EcefVector(self.x * factor, self.y * factor, self.z * factor)

    def dot(self, other: "EcefVector") -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z


def ft_to_m(feet: float) -> float:
    """Convert feet to metres."""
    return feet * FT_TO_M


def to_ecef(lat: float, lon: float, alt: float) -> EcefVector:
    """Convert WGS-84 geodetic coordinates (alt in metres) to ECEF."""
    lat_rad = math.radians(lat)
    lon_rad = math.radians(lon)
    sin_lat = math.sin(lat_rad)
    cos_lat = math.cos(lat_rad)

    n = WGS84_A / math.sqrt(1 - WGS84_E2 * sin_lat ** 2)

    x = (n + alt) * cos_lat * math.cos(lon_rad)
    y = (n + alt) * cos_lat * math.sin(lon_rad)
    z = (n * (1 - WGS84_E2) + alt) * sin_lat
    return EcefVector(x, y, z)


def ecef_to_geodetic(vector: EcefVector) -> GeodeticPoint:
    """Convert ECEF to WGS-84 geodetic using Bowring's method."""
    x, y, z = vector
    lon = math.atan2(y, x)
    p = math.hypot(x, y)

    if p < 1e-9:
        # On the polar axis
        lat = math.copysign(math.pi / 2, z)
        return GeodeticPoint(math.degrees(lat), math.degrees(lon), abs(z) - WGS84_B)

    theta = math.atan2(z * WGS84_A, p * WGS84_B)
    lat = math.atan2(
        z + WGS84_EP2 * WGS84_B * math.sin(theta) ** 3,
        p - WGS84_E2 * WGS84_A * math.cos(theta) ** 3,
    )
    # Two refinement passes bring the error well below a millimetre
    for _ in range(2):
        sin_lat = math.sin(lat)
        n = WGS84_A / math.sqrt(1 - WGS84_E2 * sin_lat ** 2)
        alt = p / math.cos(lat) - n
        lat = math.atan2(z, p * (1 - WGS84_E2 * n / (n + alt)))

    sin_lat = math.sin(lat)
    n = WGS84_A / math.sqrt(1 - WGS84_E2 * sin_lat ** 2)
    if abs(math.cos(lat)) > 1e-10:
        alt = p / math.cos(lat) - n
    else:
        alt = abs(z) - WGS84_B

    return GeodeticPoint(math.degrees(lat), math.degrees(lon), alt)


def norm(vector) -> float:
    """Euclidean length of a 3-vector."""
    x, y, z = vector
    return math.sqrt(x * x + y * y + z * z)


def distance(a: EcefVector, b: EcefVector) -> float:
    """Straight-line distance between two ECEF points."""
    return norm(a - b)
