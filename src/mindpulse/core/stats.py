from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Iterable


class SampleRateEstimator:
    """
    Estimate the effective sample rate from accepted-sample timestamps.

    Notes
    -----
    - Timestamps are seconds from a monotonic clock.
    - The estimate covers the last ``window_size`` timestamps only, so it
      follows rate changes such as inference latency pushing ticks out.
    """

    def __init__(self, window_size: int = 50, default_hz: float = 0.0) -> None:
        if window_size <= 1:
            raise ValueError("window_size must be > 1")
        self._times: Deque[float] = deque(maxlen=window_size)
        self.default_hz = float(default_hz)

    def add_sample_time(self, t: float) -> None:
        self._times.append(float(t))

    def feed_times(self, times: Iterable[float]) -> None:
        for t in times:
            self.add_sample_time(t)

    @property
    def estimated_hz(self) -> float:
        if len(self._times) < 2:
            return self.default_hz
        span = self._times[-1] - self._times[0]
        if span <= 0:
            return self.default_hz
        return (len(self._times) - 1) / span

    @property
    def window_span_s(self) -> float:
        if len(self._times) < 2:
            return 0.0
        return self._times[-1] - self._times[0]

    def reset(self) -> None:
        self._times.clear()


@dataclass
class PipelineStats:
    """Counters describing how ticks were handled since the last reset."""

    ticks_scheduled: int = 0
    ticks_serviced: int = 0
    ticks_skipped: int = 0
    samples_accepted: int = 0
    source_errors: int = 0
    stale_discarded: int = 0
    rate: SampleRateEstimator = field(default_factory=SampleRateEstimator, repr=False)

    @property
    def effective_hz(self) -> float:
        return self.rate.estimated_hz

    def as_dict(self) -> dict:
        return {
            "ticks_scheduled": self.ticks_scheduled,
            "ticks_serviced": self.ticks_serviced,
            "ticks_skipped": self.ticks_skipped,
            "samples_accepted": self.samples_accepted,
            "source_errors": self.source_errors,
            "stale_discarded": self.stale_discarded,
            "effective_hz": self.effective_hz,
        }
