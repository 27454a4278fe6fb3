"""
Utility functions for validation, number formatting, and HTTP requests.
"""
import ipaddress
import logging
import math
from typing import Any, Mapping, Optional
from urllib.parse import urlencode, urlparse

import httpx

from adsb2dd.core.config import get_settings

logger = logging.getLogger(__name__)

USER_AGENT = "adsb2dd/1.0 (delay-doppler)"
ADSBLOL_HOST = "api.adsb.lol"


def is_valid_number(value: Any) -> bool:
    """Check that a value is a real, finite number (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def is_valid_position(lat: Optional[float], lon: Optional[float]) -> bool:
    """Check if coordinates are numeric and inside geodetic bounds."""
    if not is_valid_number(lat) or not is_valid_number(lon):
        return False
    if not (-90 <= lat <= 90) or not (-180 <= lon <= 180):
        return False
    return True


def parse_float(value: Optional[str]) -> Optional[float]:
    """Parse a query string value as float, returning None when unparseable."""
    if value is None:
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def parse_lla(value: Optional[str]) -> Optional[tuple[float, float, float]]:
    """Parse a 'lat,lon,alt' triple. Returns None when malformed."""
    if not value:
        return None
    parts = [parse_float(p.strip()) for p in value.split(",")]
    if len(parts) != 3 or any(p is None for p in parts):
        return None
    return parts[0], parts[1], parts[2]


def limit_digits(number: float, digits: int = 5) -> float:
    """Round to a fixed number of decimals, leaving integral values untouched."""
    if float(number).is_integer():
        return number
    return round(number, digits)


def request_fingerprint(params: Mapping[str, Any]) -> str:
    """Build a stable session key from all query parameters."""
    items = sorted((str(k), str(v)) for k, v in params.items())
    return urlencode(items)


def is_private_host(hostname: str) -> bool:
    """Check if a hostname is localhost or a non-public IP literal."""
    host = hostname.strip("[]").lower()
    if host == "localhost" or host.endswith(".localhost"):
        return True
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return False
    return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_unspecified


def validate_server_url(server: str, allow_private: Optional[bool] = None) -> list[str]:
    """
    Validate a user supplied ADS-B server URL.

    Returns a list of problems, empty when the URL is acceptable.
    Private network hosts are refused unless explicitly allowed.
    """
    if allow_private is None:
        allow_private = get_settings().allow_private_networks

    try:
        parsed = urlparse(server)
    except ValueError:
        return ["server must be a valid URL"]

    if parsed.scheme not in ("http", "https"):
        return ["server must use http or https"]
    if not parsed.hostname:
        return ["server must include a hostname"]

    if parsed.hostname.lower() == ADSBLOL_HOST or allow_private:
        return []

    if is_private_host(parsed.hostname):
        return ["server must not point to a private network address"]
    return []


async def safe_request(url: str, timeout: Optional[float] = None) -> Optional[Any]:
    """
    Make a GET request and decode JSON, never raising.

    Any transport error, timeout, non-2xx status, or undecodable body
    is logged at debug level and reported as None.
    """
    if timeout is None:
        timeout = get_settings().request_timeout

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.get(url, headers={"User-Agent": USER_AGENT})
            response.raise_for_status()
            return response.json()
    except httpx.TimeoutException:
        logger.debug(f"Request timeout fetching {url}")
    except httpx.HTTPStatusError as e:
        logger.debug(f"HTTP error from {url}: {e.response.status_code}")
    except Exception as e:
        logger.debug(f"Request failed for {url}: {e}")
    return None
