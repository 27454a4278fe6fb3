#!/usr/bin/env python3
"""
Mach 5 Target Generator

Writes a .detection file holding one straight-line Mach 5 target, for testing
anomaly detection in downstream trackers. Each frame carries a single
detection with its ADS-B truth.

Usage:
    # Default target, eastbound off the San Francisco coast
    python scripts/generate_mach5_targets.py

    # Northbound from SF for two minutes
    python scripts/generate_mach5_targets.py --start 37.7,-122.4,15000 --heading 0 --duration 120

    # Perfect measurements
    python scripts/generate_mach5_targets.py --no-noise --output data/mach5_perfect.detection
"""
import argparse
import json
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from adsb2dd.core import GeodeticPoint, parse_lla
from adsb2dd.services.synthetic import DEFAULT_SNR_DB, SyntheticRNG
from adsb2dd.services.trajectory import generate_mach5_trajectory, trajectory_to_delay_doppler

DEFAULT_RX = "37.7644,-122.3954,23"
DEFAULT_TX = "37.49917,-121.87222,783"
DEFAULT_START = "37.5,-123.0,15000"


def lla_argument(value: str) -> GeodeticPoint:
    lla = parse_lla(value)
    if lla is None:
        raise argparse.ArgumentTypeError(f"expected LAT,LON,ALT, got {value!r}")
    return GeodeticPoint(*lla)


def build_frames(args) -> list[dict]:
    trajectory = generate_mach5_trajectory(
        args.start.lat, args.start.lon, args.start.alt,
        args.heading, args.duration, args.timestep,
    )
    print(f"  Generated {len(trajectory)} positions")

    detections = trajectory_to_delay_doppler(trajectory, args.rx, args.tx, args.fc)

    rng = SyntheticRNG(args.seed) if not args.no_noise else None
    frames = []
    for detection in detections:
        delay = detection["delay"]
        doppler = detection["doppler"]
        snr = DEFAULT_SNR_DB
        if rng is not None:
            delay += rng.gaussian(0, args.noise_delay)
            doppler += rng.gaussian(0, args.noise_doppler)
            snr = rng.uniform(args.snr_min, args.snr_max)
        frames.append({
            "timestamp": detection["timestamp"],
            "delay": [delay],
            "doppler": [doppler],
            "snr": [snr],
            "adsb": [detection["adsb"]],
        })
    return frames


def main():
    parser = argparse.ArgumentParser(
        description="Generate synthetic Mach 5 target detections",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                       Default target
  %(prog)s --heading 0 --duration 120            Northbound, two minutes
  %(prog)s --no-noise -o data/perfect.detection  Perfect measurements
        """
    )

    parser.add_argument("--rx", type=lla_argument, default=DEFAULT_RX, metavar="LAT,LON,ALT",
                        help=f"Receiver position (default: {DEFAULT_RX})")
    parser.add_argument("--tx", type=lla_argument, default=DEFAULT_TX, metavar="LAT,LON,ALT",
                        help=f"Transmitter position (default: {DEFAULT_TX})")
    parser.add_argument("--fc", type=float, default=503, help="Carrier frequency in MHz (default: 503)")
    parser.add_argument("--start", type=lla_argument, default=DEFAULT_START, metavar="LAT,LON,ALT",
                        help=f"Target start position, altitude in metres (default: {DEFAULT_START})")
    parser.add_argument("--heading", type=float, default=90, help="Direction of travel in degrees (default: 90)")
    parser.add_argument("--duration", type=float, default=60, help="Trajectory length in seconds (default: 60)")
    parser.add_argument("--timestep", type=float, default=0.5, help="Seconds between samples (default: 0.5)")
    parser.add_argument("-o", "--output", default="data/mach5_targets.detection", help="Output .detection file")
    parser.add_argument("--no-noise", action="store_true", help="Disable measurement noise")
    parser.add_argument("--noise-delay", type=float, default=0.5, help="Delay noise std in km (default: 0.5)")
    parser.add_argument("--noise-doppler", type=float, default=2.0, help="Doppler noise std in Hz (default: 2.0)")
    parser.add_argument("--snr-min", type=float, default=8, help="Minimum SNR in dB (default: 8)")
    parser.add_argument("--snr-max", type=float, default=20, help="Maximum SNR in dB (default: 20)")
    parser.add_argument("--seed", default="mach5-test", help="Noise seed (default: mach5-test)")

    args = parser.parse_args()

    print("Generating Mach 5 anomalous target...\n")
    print(f"  RX: {args.rx.lat}, {args.rx.lon}, {args.rx.alt}m")
    print(f"  TX: {args.tx.lat}, {args.tx.lon}, {args.tx.alt}m")
    print(f"  Frequency: {args.fc} MHz")
    print(f"  Start: {args.start.lat}, {args.start.lon}, {args.start.alt}m")
    print(f"  Heading: {args.heading} deg, duration {args.duration}s, timestep {args.timestep}s")
    print(f"  Noise: {'disabled' if args.no_noise else 'enabled'}")

    try:
        frames = build_frames(args)
    except ValueError as e:
        parser.error(str(e))

    output_dir = os.path.dirname(args.output)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    with open(args.output, "w") as f:
        json.dump(frames, f, indent=2)

    print(f"\nWrote {len(frames)} frames to {args.output}")
    if frames:
        delays = [frame["delay"][0] for frame in frames]
        dopplers = [frame["doppler"][0] for frame in frames]
        print(f"  Delay: {delays[0]:.2f} -> {delays[-1]:.2f} km (range {max(delays) - min(delays):.2f} km)")
        print(f"  Doppler: {dopplers[0]:.2f} -> {dopplers[-1]:.2f} Hz "
              f"(range {max(dopplers) - min(dopplers):.2f} Hz)")


if __name__ == "__main__":
    main()
