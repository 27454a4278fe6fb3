"""
Synthetic radar detection generation.

Turns true per-aircraft delay-Doppler values into realistic detection frames
by adding measurement noise, missed detections and false alarms (clutter).
Used to validate downstream trackers against known ground truth.
"""
import logging
import math
import random
import time
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Callable, Mapping, Optional, Union

from adsb2dd.core.config import get_settings
from adsb2dd.core.exceptions import InvalidParametersError
from adsb2dd.core.utils import parse_float

logger = logging.getLogger(__name__)

CLUTTER_SNR_FACTOR = 0.7
DEFAULT_SNR_DB = 15.0


class SyntheticRNG:
    """Seeded random number generator with the distributions the noise model needs."""

    def __init__(self, seed: Optional[Union[int, str]] = None):
        if seed is None:
            seed = str(time.time_ns())
        self.seed = seed
        self._rng = random.Random(seed)

    def random(self) -> float:
        """Uniform sample in [0, 1)."""
        return self._rng.random()

    def uniform(self, min_value: float, max_value: float) -> float:
        return min_value + self._rng.random() * (max_value - min_value)

    def gaussian(self, mean: float = 0.0, std: float = 1.0) -> float:
        """Normal sample via the Box-Muller transform."""
        u1 = 1.0 - self._rng.random()  # (0, 1], keeps log() finite
        u2 = self._rng.random()
        z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return mean + z0 * std

    def poisson(self, lam: float) -> int:
        """Poisson sample by multiplying uniforms until below exp(-lambda)."""
        if lam <= 0:
            return 0
        limit = math.exp(-lam)
        k = 0
        p = 1.0
        while True:
            k += 1
            p *= self._rng.random()
            if p <= limit:
                return k - 1

    def bernoulli(self, p: float) -> bool:
        return self._rng.random() < p


@dataclass
class SyntheticConfig:
    """Noise model and clutter extents for synthetic frame generation."""
    noise_delay: float = 0.5  # Delay noise std (km)
    noise_doppler: float = 2.0  # Doppler noise std (Hz)
    snr_min: float = 8  # dB
    snr_max: float = 20  # dB
    detection_prob: float = 0.95
    false_alarm_rate: float = 0.5  # False alarms per frame
    frame_interval: int = 500  # ms
    duration: float = 10  # seconds
    delay_min: float = 0  # km
    delay_max: float = 400  # km
    doppler_min: float = -200  # Hz
    doppler_max: float = 200  # Hz
    seed: Optional[str] = None

    @property
    def frame_count(self) -> int:
        return math.ceil((self.duration * 1000) / self.frame_interval)

    def validate(self, max_duration: Optional[float] = None,
                 max_frames: Optional[int] = None,
                 max_false_alarm_rate: Optional[float] = None) -> list[str]:
        """Return every violated rule; an empty list means the config is usable."""
        settings = get_settings()
        if max_duration is None:
            max_duration = settings.synthetic_max_duration
        if max_frames is None:
            max_frames = settings.synthetic_max_frames
        if max_false_alarm_rate is None:
            max_false_alarm_rate = settings.synthetic_max_false_alarm_rate

        errors = []
        if self.noise_delay < 0:
            errors.append("noise_delay must be non-negative")
        if self.noise_doppler < 0:
            errors.append("noise_doppler must be non-negative")
        if self.snr_min > self.snr_max:
            errors.append("snr_min must be <= snr_max")
        if self.detection_prob < 0 or self.detection_prob > 1:
            errors.append("detection_prob must be in [0, 1]")
        if self.false_alarm_rate < 0:
            errors.append("false_alarm_rate must be non-negative")
        elif self.false_alarm_rate > max_false_alarm_rate:
            errors.append(f"false_alarm_rate must be <= {max_false_alarm_rate:g} per frame")
        if self.frame_interval <= 0:
            errors.append("frame_interval must be positive")
        duration_ok = False
        if self.duration <= 0:
            errors.append("duration must be positive")
        elif self.duration > max_duration:
            errors.append(f"duration must be <= {max_duration:g} seconds")
        else:
            duration_ok = True
        if self.delay_min >= self.delay_max:
            errors.append("delay_min must be < delay_max")
        if self.doppler_min >= self.doppler_max:
            errors.append("doppler_min must be < doppler_max")

        # frame_count overflows for durations far past the cap
        if duration_ok and self.frame_interval > 0 and self.frame_count > max_frames:
            errors.append(f"duration / frame_interval yields more than {max_frames} frames")

        return errors


_CONFIG_FIELDS = {f.name for f in fields(SyntheticConfig)} - {"seed"}


def parse_synthetic_config(query: Mapping[str, Any]) -> SyntheticConfig:
    """
    Build a validated config from query parameters, defaults for the rest.

    Raises:
        InvalidParametersError: listing every unparseable value and violated rule
    """
    config = SyntheticConfig()
    errors = []

    for name in sorted(_CONFIG_FIELDS):
        raw = query.get(name)
        if raw is None:
            continue
        value = parse_float(raw)
        if value is None:
            errors.append(f"{name} must be a number")
            continue
        if name == "frame_interval":
            value = int(value)
        setattr(config, name, value)

    if query.get("seed") is not None:
        config.seed = str(query["seed"])

    errors.extend(config.validate())
    if errors:
        raise InvalidParametersError("Invalid synthetic configuration", errors)
    return config


@dataclass
class DetectionFrame:
    """One radar frame: index-aligned detections plus ADS-B truth (or None for clutter)."""
    timestamp: int
    delay: list[float] = field(default_factory=list)
    doppler: list[float] = field(default_factory=list)
    snr: list[float] = field(default_factory=list)
    adsb: list[Optional[dict]] = field(default_factory=list)

    def add(self, delay: float, doppler: float, snr: float, adsb: Optional[dict]) -> None:
        self.delay.append(delay)
        self.doppler.append(doppler)
        self.snr.append(snr)
        self.adsb.append(adsb)

    def __len__(self) -> int:
        return len(self.delay)

    def to_dict(self) -> dict:
        return asdict(self)


def _has_delay_doppler(data: Mapping) -> bool:
    return data.get("delay") is not None and data.get("doppler") is not None


def generate_synthetic_frame(outputs: Mapping[str, Mapping], timestamp: int,
                             config: SyntheticConfig, rng: SyntheticRNG) -> DetectionFrame:
    """Generate a noisy frame from per-aircraft delay (km) and Doppler (Hz)."""
    frame = DetectionFrame(timestamp=timestamp)

    for hex_code, data in outputs.items():
        if not _has_delay_doppler(data):
            continue

        # Missed detection
        if not rng.bernoulli(config.detection_prob):
            continue

        noisy_delay = data["delay"] + rng.gaussian(0, config.noise_delay)
        noisy_doppler = data["doppler"] + rng.gaussian(0, config.noise_doppler)
        snr = rng.uniform(config.snr_min, config.snr_max)

        frame.add(noisy_delay, noisy_doppler, snr, {"hex": hex_code, "flight": data.get("flight")})

    # Clutter is weaker than real targets
    for _ in range(rng.poisson(config.false_alarm_rate)):
        frame.add(
            rng.uniform(config.delay_min, config.delay_max),
            rng.uniform(config.doppler_min, config.doppler_max),
            rng.uniform(config.snr_min, config.snr_max * CLUTTER_SNR_FACTOR),
            None,
        )

    return frame


def generate_synthetic_dataset(get_outputs: Callable[[], Mapping[str, Mapping]],
                               config: SyntheticConfig,
                               start_ms: Optional[int] = None) -> list[DetectionFrame]:
    """Generate every frame of a run; one RNG, seeded from the config, per call."""
    rng = SyntheticRNG(config.seed)
    if start_ms is None:
        start_ms = int(time.time() * 1000)

    frames = []
    for i in range(config.frame_count):
        timestamp = start_ms + i * config.frame_interval
        frames.append(generate_synthetic_frame(get_outputs(), timestamp, config, rng))

    logger.debug(
        f"Generated {len(frames)} synthetic frames "
        f"({sum(len(f) for f in frames)} detections, seed={rng.seed})"
    )
    return frames


def _adsb_fields(hex_code: str, raw: Mapping, flight: Optional[str]) -> dict:
    return {
        "hex": hex_code,
        "lat": raw.get("lat"),
        "lon": raw.get("lon"),
        "alt_baro": raw.get("alt_baro") or raw.get("alt_geom"),
        "gs": raw.get("gs"),
        "track": raw.get("track"),
        "flight": flight,
    }


def index_reports(aircraft: Optional[list[dict]]) -> dict[str, dict]:
    """Map hex code to raw report."""
    return {ac["hex"]: ac for ac in (aircraft or []) if isinstance(ac, dict) and ac.get("hex")}


def enrich_frame_metadata(frame: DetectionFrame, reports: Mapping[str, Mapping]) -> DetectionFrame:
    """Fill ADS-B truth entries with position and kinematics from raw reports."""
    for i, adsb in enumerate(frame.adsb):
        if adsb is None:
            continue
        raw = reports.get(adsb["hex"])
        if raw is not None:
            frame.adsb[i] = _adsb_fields(adsb["hex"], raw, adsb.get("flight"))
    return frame


def convert_to_frame_format(outputs: Mapping[str, Mapping],
                            aircraft: Optional[list[dict]],
                            timestamp: int) -> DetectionFrame:
    """Noise-free frame of the current outputs, for side-by-side comparison."""
    reports = index_reports(aircraft)
    frame = DetectionFrame(timestamp=timestamp)

    for hex_code, data in outputs.items():
        if not _has_delay_doppler(data):
            continue

        raw = reports.get(hex_code)
        if raw is not None:
            adsb = _adsb_fields(hex_code, raw, data.get("flight"))
        else:
            adsb = {"hex": hex_code, "flight": data.get("flight")}

        # No receiver SNR available for truth data
        frame.add(data["delay"], data["doppler"], DEFAULT_SNR_DB, adsb)

    return frame
