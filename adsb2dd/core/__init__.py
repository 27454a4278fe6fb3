"""Core package containing configuration, geometry, errors, and utilities."""
from adsb2dd.core.config import get_settings, Settings
from adsb2dd.core.exceptions import (
    Adsb2ddError,
    InvalidParametersError,
    SourceUnavailableError,
    CapacityExceededError,
    MonotonicityViolation,
)
from adsb2dd.core.geometry import (
    EcefVector,
    GeodeticPoint,
    to_ecef,
    ecef_to_geodetic,
    norm,
    distance,
    ft_to_m,
)
from adsb2dd.core.utils import (
    is_valid_number,
    is_valid_position,
    parse_float,
    parse_lla,
    limit_digits,
    request_fingerprint,
    validate_server_url,
    safe_request,
)

__all__ = [
    "get_settings",
    "Settings",
    "Adsb2ddError",
    "InvalidParametersError",
    "SourceUnavailableError",
    "CapacityExceededError",
    "MonotonicityViolation",
    "EcefVector",
    "GeodeticPoint",
    "to_ecef",
    "ecef_to_geodetic",
    "norm",
    "distance",
    "ft_to_m",
    "is_valid_number",
    "is_valid_position",
    "parse_float",
    "parse_lla",
    "limit_digits",
    "request_fingerprint",
    "validate_server_url",
    "safe_request",
]
