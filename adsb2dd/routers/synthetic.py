"""
Synthetic detection API endpoints.

Generates noisy radar frames from a session's true delay-Doppler values so
trackers can be validated against known ADS-B truth.
"""
import logging
import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from adsb2dd.core import (
    CapacityExceededError, InvalidParametersError, SourceUnavailableError
)
from adsb2dd.schemas import DetectionFrameResponse, ErrorResponse
from adsb2dd.services.sessions import SessionStore, get_session_store, open_session
from adsb2dd.services.synthetic import (
    convert_to_frame_format, enrich_frame_metadata, generate_synthetic_dataset,
    index_reports, parse_synthetic_config
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Synthetic"])

SESSION_PARAMETERS = ("server", "rx", "tx", "fc", "radius")


def _session_query(query: dict) -> dict:
    """The subset of query parameters that identifies a delay-Doppler session."""
    return {k: v for k, v in query.items() if k in SESSION_PARAMETERS}


_ERROR_STATUS = {
    InvalidParametersError: 400,
    CapacityExceededError: 400,
    SourceUnavailableError: 500,
}


@router.get(
    "/synthetic",
    response_model=list[DetectionFrameResponse],
    summary="Generate Synthetic Detections",
    description="""
Generate synthetic radar detection frames from a session's live delay-Doppler.

Takes the `/api/dd` parameters plus the noise model:
- **noise_delay**, **noise_doppler**: Gaussian noise std (km, Hz)
- **snr_min**, **snr_max**: SNR range in dB
- **detection_prob**: per-target detection probability
- **false_alarm_rate**: mean clutter detections per frame
- **frame_interval** (ms), **duration** (s)
- **delay_min/max**, **doppler_min/max**: clutter extents
- **seed**: makes the output reproducible

Invalid configurations are rejected before any session is opened.
    """,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid parameters or configuration"},
        500: {"model": ErrorResponse, "description": "ADS-B source unavailable"},
    }
)
async def get_synthetic(request: Request, store: SessionStore = Depends(get_session_store)):
    """Noisy detection frames with ADS-B truth for each target detection."""
    query = dict(request.query_params)

    try:
        config = parse_synthetic_config(query)
        session = await open_session(store, _session_query(query))
    except tuple(_ERROR_STATUS) as e:
        return JSONResponse(status_code=_ERROR_STATUS[type(e)], content=e.to_dict())

    frames = generate_synthetic_dataset(lambda: session.outputs, config)

    reports = index_reports(session.last_snapshot.aircraft if session.last_snapshot else None)
    frames = [enrich_frame_metadata(frame, reports) for frame in frames]

    logger.info(
        f"Synthetic run for {session.key}: {len(frames)} frames, "
        f"{sum(len(f) for f in frames)} detections"
    )
    return [frame.to_dict() for frame in frames]


@router.get(
    "/synthetic/truth",
    response_model=DetectionFrameResponse,
    summary="Get Truth Frame",
    description="""
The current delay-Doppler of a session as a single noise-free frame, in the
same format as `/api/synthetic`, for side-by-side comparison.
    """,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid parameters"},
        500: {"model": ErrorResponse, "description": "ADS-B source unavailable"},
    }
)
async def get_truth_frame(request: Request, store: SessionStore = Depends(get_session_store)):
    """Noise-free frame of the session's current outputs."""
    try:
        session = await open_session(store, _session_query(dict(request.query_params)))
    except tuple(_ERROR_STATUS) as e:
        return JSONResponse(status_code=_ERROR_STATUS[type(e)], content=e.to_dict())

    aircraft = session.last_snapshot.aircraft if session.last_snapshot else None
    frame = convert_to_frame_format(session.outputs, aircraft, int(time.time() * 1000))
    return frame.to_dict()
