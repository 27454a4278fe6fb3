"""
Position-based bistatic Doppler estimation.

Differentiates the bistatic delay history of a track with a causal
moving-median derivative. Only past samples are used, so the estimate lags
the truth, but it is available whenever velocity data is not.
"""
import statistics
from collections import deque
from typing import Optional, Sequence

from adsb2dd.core.exceptions import MonotonicityViolation


def smoothed_derivative_using_median(
    delays: Sequence[float],
    timestamps: Sequence[float],
    k: int,
) -> list[float]:
    """
    Smoothed derivative of delays with respect to timestamps.

    For every index the trailing window of at most k samples is
    differenced (the first difference of each window is defined as 0)
    and the median of those differences is taken.

    Raises:
        ValueError: mismatched lengths, fewer than 2 samples, or k < 2
        MonotonicityViolation: timestamps not strictly increasing
    """
    if len(delays) != len(timestamps) or len(delays) < 2 or k < 2:
        raise ValueError("Invalid input data for computing the derivative.")

    for prev, cur in zip(timestamps, timestamps[1:]):
        if cur <= prev:
            raise MonotonicityViolation(
                f"Timestamps must be strictly increasing ({prev} -> {cur})"
            )

    result = []
    for i in range(len(delays)):
        start = max(0, i - k + 1)
        window_delays = delays[start:i + 1]
        window_times = timestamps[start:i + 1]

        deltas = [0.0]
        for j in range(1, len(window_delays)):
            dt = window_times[j] - window_times[j - 1]
            deltas.append((window_delays[j] - window_delays[j - 1]) / dt)

        result.append(statistics.median(deltas))

    return result


class DelayHistory:
    """Bounded FIFO of (bistatic delay, timestamp) samples for one track."""

    def __init__(self, maxlen: int = 10):
        self._delays: deque[float] = deque(maxlen=maxlen)
        self._timestamps: deque[float] = deque(maxlen=maxlen)

    def __len__(self) -> int:
        return len(self._delays)

    @property
    def delays(self) -> list[float]:
        return list(self._delays)

    @property
    def timestamps(self) -> list[float]:
        return list(self._timestamps)

    @property
    def last_timestamp(self) -> Optional[float]:
        return self._timestamps[-1] if self._timestamps else None

    def push(self, delay: float, timestamp: float) -> None:
        """Append a sample, dropping the oldest once full."""
        last = self.last_timestamp
        if last is not None and timestamp <= last:
            raise MonotonicityViolation(
                f"Sample timestamp {timestamp} does not follow {last}"
            )
        self._delays.append(delay)
        self._timestamps.append(timestamp)

    def derivative(self, window: int = 10) -> Optional[float]:
        """Smoothed delay rate (m/s) at the most recent sample, if computable."""
        if len(self) < 2:
            return None
        return smoothed_derivative_using_median(self.delays, self.timestamps, window)[-1]
