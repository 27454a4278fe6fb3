"""
adsb2dd API

Converts live ADS-B aircraft reports into bistatic delay-Doppler for a
passive radar receiver/transmitter pair, and generates synthetic radar
detections from them.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adsb2dd import __version__
from adsb2dd.core import get_settings
from adsb2dd.routers import dd, synthetic, system
from adsb2dd.services.scheduler import create_scheduler
from adsb2dd.services.sessions import get_session_store

settings = get_settings()
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info(f"Starting adsb2dd v{__version__}")

    store = get_session_store()
    store.clear()

    scheduler = create_scheduler(store)
    scheduler.start()

    yield

    logger.info("Shutting down...")
    await scheduler.stop()
    store.clear()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="adsb2dd",
    version=__version__,
    description="""
## Overview
Bistatic delay-Doppler from ADS-B, for passive radar truth data.

## Features
- **Delay-Doppler**: Per-aircraft bistatic delay (km) and Doppler (Hz)
- **Sources**: tar1090/readsb servers and the adsb.lol API
- **Synthetic Detections**: Noisy radar frames with clutter and missed detections

## Sessions
Each distinct query opens a session polled in the background once per second.
Sessions not read for 30 seconds are discarded.
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Delay-Doppler",
            "description": "ADS-B to bistatic delay-Doppler conversion"
        },
        {
            "name": "Synthetic",
            "description": "Synthetic radar detections with ADS-B truth"
        },
        {
            "name": "System",
            "description": "Health checks and status"
        },
    ]
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(dd.router)
app.include_router(synthetic.router)
app.include_router(system.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "adsb2dd.main:app",
        host=settings.host,
        port=settings.port,
    )
