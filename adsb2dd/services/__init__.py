"""Services package."""
from adsb2dd.services.doppler import calculate_wavelength, doppler_from_velocity, enu_to_ecef
from adsb2dd.services.smoothing import DelayHistory, smoothed_derivative_using_median
from adsb2dd.services.sources import (
    Snapshot, Tar1090Source, AdsbLolSource, build_source
)
from adsb2dd.services.sessions import (
    Session, SessionStore, TrackState, open_session, process_snapshot,
    get_session_store
)
from adsb2dd.services.scheduler import PollingScheduler, create_scheduler, get_scheduler
from adsb2dd.services.synthetic import (
    SyntheticRNG, SyntheticConfig, DetectionFrame, parse_synthetic_config,
    generate_synthetic_frame, generate_synthetic_dataset, convert_to_frame_format
)
from adsb2dd.services.trajectory import generate_mach5_trajectory, trajectory_to_delay_doppler

__all__ = [
    # Doppler estimators
    "calculate_wavelength",
    "doppler_from_velocity",
    "enu_to_ecef",
    "DelayHistory",
    "smoothed_derivative_using_median",
    # Sources
    "Snapshot",
    "Tar1090Source",
    "AdsbLolSource",
    "build_source",
    # Sessions and polling
    "Session",
    "SessionStore",
    "TrackState",
    "open_session",
    "process_snapshot",
    "get_session_store",
    "PollingScheduler",
    "create_scheduler",
    "get_scheduler",
    # Synthetic detections
    "SyntheticRNG",
    "SyntheticConfig",
    "DetectionFrame",
    "parse_synthetic_config",
    "generate_synthetic_frame",
    "generate_synthetic_dataset",
    "convert_to_frame_format",
    "generate_mach5_trajectory",
    "trajectory_to_delay_doppler",
]
