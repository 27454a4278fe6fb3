#!/usr/bin/env python3
"""
Snapshot to Synthetic Detection Converter

Replays captured tar1090 aircraft.json snapshots (files named
aircraft_<epoch_ms>.json) through the same per-snapshot transform as the
service, then through the synthetic noise model, writing one JSON detection
frame per line.

Usage:
    python scripts/process_snapshots.py
    python scripts/process_snapshots.py --snapshots data/adsb_snapshots --seed run-2
"""
import argparse
import json
import os
import re
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from adsb2dd.core import GeodeticPoint, parse_lla
from adsb2dd.services.sessions import Session, process_snapshot
from adsb2dd.services.sources import Snapshot
from adsb2dd.services.synthetic import (
    DetectionFrame, SyntheticConfig, SyntheticRNG, enrich_frame_metadata,
    generate_synthetic_frame, index_reports
)

SNAPSHOT_PATTERN = re.compile(r"^aircraft_(\d+)\.json$")


def lla_argument(value: str) -> GeodeticPoint:
    lla = parse_lla(value)
    if lla is None:
        raise argparse.ArgumentTypeError(f"expected LAT,LON,ALT, got {value!r}")
    return GeodeticPoint(*lla)


def snapshot_files(directory: str) -> list[tuple[int, str]]:
    """(timestamp_ms, path) for every snapshot file, oldest first."""
    files = []
    for name in os.listdir(directory):
        match = SNAPSHOT_PATTERN.match(name)
        if match:
            files.append((int(match.group(1)), os.path.join(directory, name)))
    return sorted(files)


def replay_session(rx: GeodeticPoint, tx: GeodeticPoint, fc: float) -> Session:
    """A detached session fed from files instead of a live source."""
    return Session(key="replay", server="", rx=rx, tx=tx, fc=fc, source=None, last_access=0.0)


def replay_snapshots(files: list[tuple[int, str]], session: Session,
                     config: SyntheticConfig, rng: SyntheticRNG) -> list[DetectionFrame]:
    frames = []
    for timestamp, path in files:
        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            print(f"Error reading {path}: {e}")
            continue

        aircraft = data.get("aircraft") if isinstance(data, dict) else None
        if not isinstance(aircraft, list):
            print(f"Skipping {path}: no aircraft array")
            continue

        source_time = timestamp / 1000
        process_snapshot(session, Snapshot(source_time=source_time, aircraft=aircraft), now=source_time)
        frame = generate_synthetic_frame(session.outputs, timestamp, config, rng)
        frames.append(enrich_frame_metadata(frame, index_reports(aircraft)))
    return frames


def main():
    parser = argparse.ArgumentParser(
        description="Convert captured ADS-B snapshots to synthetic detections",
    )
    parser.add_argument("--snapshots", default="data/adsb_snapshots", help="Snapshot directory")
    parser.add_argument("-o", "--output", default="data/synthetic_historical.detection", help="Output file")
    parser.add_argument("--rx", type=lla_argument, default="37.7644,-122.3954,23", metavar="LAT,LON,ALT")
    parser.add_argument("--tx", type=lla_argument, default="37.49917,-121.87222,783", metavar="LAT,LON,ALT")
    parser.add_argument("--fc", type=float, default=503, help="Carrier frequency in MHz (default: 503)")
    parser.add_argument("--seed", default="historical-test-123", help="Noise seed")

    args = parser.parse_args()

    config = SyntheticConfig(seed=args.seed)
    rng = SyntheticRNG(config.seed)

    files = snapshot_files(args.snapshots)
    print(f"Found {len(files)} snapshot files")
    if not files:
        sys.exit("No snapshot files found")

    frames = replay_snapshots(files, replay_session(args.rx, args.tx, args.fc), config, rng)

    output_dir = os.path.dirname(args.output)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    with open(args.output, "w") as f:
        for frame in frames:
            f.write(json.dumps(frame.to_dict()) + "\n")

    total = sum(len(frame) for frame in frames)
    clutter = sum(frame.adsb.count(None) for frame in frames)
    print(f"Wrote {len(frames)} frames to {args.output}")
    print(f"  Total detections: {total}")
    print(f"  Aircraft detections: {total - clutter}")
    print(f"  False alarms: {clutter}")
    if frames:
        print(f"  Avg detections/frame: {total / len(frames):.1f}")


if __name__ == "__main__":
    main()
