"""
Delay-Doppler API endpoint.

The first request for a (server, rx, tx, fc) combination opens a session that
the background scheduler keeps updating; later identical requests read the
latest outputs and keep the session alive.
"""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from adsb2dd.core import (
    CapacityExceededError, InvalidParametersError, SourceUnavailableError
)
from adsb2dd.schemas import DelayDopplerRecord, ErrorResponse
from adsb2dd.services.sessions import SessionStore, get_session_store, open_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Delay-Doppler"])


@router.get(
    "/dd",
    response_model=dict[str, DelayDopplerRecord],
    response_model_exclude_none=True,
    summary="Get Delay-Doppler",
    description="""
Convert live ADS-B into bistatic delay (km) and Doppler (Hz) for a
receiver/transmitter pair.

Query parameters:
- **server**: tar1090 base URL, or `https://api.adsb.lol`
- **rx**: receiver `lat,lon,alt` (degrees, degrees, metres)
- **tx**: transmitter `lat,lon,alt`
- **fc**: carrier frequency in MHz
- **radius**: adsb.lol query radius in nautical miles (optional)

The first call creates the session and returns `{}`; outputs fill in once
the background poller has processed the source. A session with no reads for
30 seconds is discarded.
    """,
    responses={
        200: {"description": "Delay-Doppler keyed by aircraft hex code"},
        400: {"model": ErrorResponse, "description": "Invalid parameters or too many sessions"},
        500: {"model": ErrorResponse, "description": "ADS-B source unavailable"},
    }
)
async def get_delay_doppler(request: Request, store: SessionStore = Depends(get_session_store)):
    """Return the latest outputs for a session, opening it on first request."""
    query = dict(request.query_params)

    try:
        session = await open_session(store, query)
    except InvalidParametersError as e:
        return JSONResponse(status_code=400, content=e.to_dict())
    except CapacityExceededError as e:
        logger.warning(f"Session refused, {len(store)} active: {e.message}")
        return JSONResponse(status_code=400, content=e.to_dict())
    except SourceUnavailableError as e:
        logger.warning(e.message)
        return JSONResponse(status_code=500, content=e.to_dict())

    return session.outputs
