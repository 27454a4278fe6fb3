"""
Exception hierarchy for adsb2dd.

All exceptions derive from Adsb2ddError so callers can catch broadly
or handle specific failure modes.
"""
from typing import Optional


class Adsb2ddError(Exception):
    """Base exception for adsb2dd."""

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = list(errors) if errors else [message]

    def to_dict(self) -> dict:
        return {"error": self.message, "errors": self.errors}


class InvalidParametersError(Adsb2ddError):
    """Query parameters or synthetic configuration failed validation."""


class SourceUnavailableError(Adsb2ddError):
    """The ADS-B source did not answer its liveness probe."""


class CapacityExceededError(Adsb2ddError):
    """The live-session ceiling has been reached."""


class MonotonicityViolation(Adsb2ddError, ValueError):
    """Timestamps fed to the smoother are not strictly increasing."""
