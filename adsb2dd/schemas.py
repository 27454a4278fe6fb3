"""
Pydantic schemas for response validation with OpenAPI documentation.
"""
from typing import Literal, Optional
from pydantic import BaseModel, Field, ConfigDict


# ============================================================================
# Delay-Doppler Schemas
# ============================================================================

class DelayDopplerRecord(BaseModel):
    """Bistatic delay-Doppler for one aircraft."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "timestamp": 1703123456.2,
                "flight": "UAL123  ",
                "delay": 42.31877,
                "doppler": -118.40213,
                "doppler_method": "velocity",
                "doppler_vel": -118.40213,
                "doppler_pos": -112.9501
            }
        }
    )

    timestamp: Optional[float] = Field(None, description="Detection time (source time minus position age), epoch seconds")
    flight: Optional[str] = Field(None, description="Callsign/flight number")
    delay: Optional[float] = Field(None, description="Bistatic delay in km")
    doppler: Optional[float] = Field(None, description="Bistatic Doppler in Hz")
    doppler_method: Optional[Literal["velocity", "position"]] = Field(
        None, description="Estimator that produced the doppler value"
    )
    doppler_vel: Optional[float] = Field(None, description="Velocity-based Doppler estimate in Hz")
    doppler_pos: Optional[float] = Field(None, description="Position-based (smoothed) Doppler estimate in Hz")


class DetectionFrameResponse(BaseModel):
    """One synthetic radar frame with index-aligned detection arrays."""
    timestamp: int = Field(..., description="Frame time, epoch milliseconds")
    delay: list[float] = Field(default_factory=list, description="Detection delays in km")
    doppler: list[float] = Field(default_factory=list, description="Detection Doppler in Hz")
    snr: list[float] = Field(default_factory=list, description="Detection SNR in dB")
    adsb: list[Optional[dict]] = Field(
        default_factory=list, description="ADS-B truth for each detection, null for clutter"
    )


# ============================================================================
# System Schemas
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Error message")
    errors: list[str] = Field(default_factory=list, description="Every validation problem found")


class HealthResponse(BaseModel):
    """Service health."""
    status: str = Field(..., description="Overall status", example="healthy")
    sessions: int = Field(0, description="Live session count")
    max_sessions: int = Field(0, description="Session admission ceiling")
    scheduler_running: bool = Field(False, description="Background polling task is alive")
    timestamp: str = Field(..., description="ISO 8601 timestamp of response")


class SessionSummary(BaseModel):
    key: str
    server: str
    source: str
    fc: float
    tracks: int
    last_access: float
    last_source_time: Optional[float] = None


class StatusResponse(BaseModel):
    """Scheduler and per-session status."""
    sessions: list[SessionSummary] = Field(default_factory=list)
    tick_count: int = Field(0, description="Completed scheduler ticks")
    last_tick_at: Optional[float] = Field(None, description="Epoch seconds of the last completed tick")
    poll_interval: float = Field(..., description="Seconds between ticks")
    timestamp: str = Field(..., description="ISO 8601 timestamp of response")
