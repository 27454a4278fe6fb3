"""ADS-B to bistatic delay-Doppler conversion service."""

__version__ = "1.0.0"
