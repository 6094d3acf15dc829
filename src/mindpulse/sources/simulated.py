"""Synthetic brain-activity generator."""

from __future__ import annotations

import math
from typing import Mapping, Optional, Tuple

import numpy as np

from ..core.models import DEFAULT_CHANNELS, VALUE_MAX, VALUE_MIN, Sample, SourceKind
from .base import SignalSource

DEFAULT_BASE_VALUES: Mapping[str, float] = {
    "attention": 50.0,
    "relaxation": 50.0,
    "drowsiness": 20.0,
    "engagement": 50.0,
}
DEFAULT_FREQUENCIES_HZ: Mapping[str, float] = {
    "attention": 0.10,
    "relaxation": 0.07,
    "drowsiness": 0.03,
    "engagement": 0.13,
}


class SimulatedSource(SignalSource):
    """
    Generate samples as ``base + drift + oscillation + noise`` per channel.

    - drift: slow sinusoid shared by every channel (``drift_period_s``)
    - oscillation: channel-specific sinusoid at ``frequencies_hz[channel]``
    - noise: uniform in ``[-noise_amplitude, noise_amplitude]``

    Results are clipped to ``[0, 100]``. Passing ``seed`` makes the sequence
    reproducible; without it the noise is drawn from fresh OS entropy.
    """

    kind = SourceKind.SIMULATED

    def __init__(
        self,
        base_values: Optional[Mapping[str, float]] = None,
        noise_amplitude: float = 5.0,
        frequencies_hz: Optional[Mapping[str, float]] = None,
        *,
        channels: Tuple[str, ...] = DEFAULT_CHANNELS,
        oscillation_amplitude: float = 15.0,
        drift_amplitude: float = 10.0,
        drift_period_s: float = 60.0,
        tick_seconds: float = 0.1,
        seed: Optional[int] = None,
    ) -> None:
        super().__init__(channels)
        base = dict(DEFAULT_BASE_VALUES)
        base.update(base_values or {})
        freqs = dict(DEFAULT_FREQUENCIES_HZ)
        freqs.update(frequencies_hz or {})

        self._base = np.array([float(base.get(name, 50.0)) for name in self.channels], dtype=np.float64)
        self._freqs = np.array([float(freqs.get(name, 0.1)) for name in self.channels], dtype=np.float64)
        self._noise_amplitude = abs(float(noise_amplitude))
        self._oscillation_amplitude = abs(float(oscillation_amplitude))
        self._drift_amplitude = abs(float(drift_amplitude))
        self._drift_period_s = max(1e-6, float(drift_period_s))
        self._tick_seconds = max(1e-6, float(tick_seconds))
        self._seed = seed
        self._rng = np.random.default_rng(seed)
        self._cursor = 0

    @property
    def cursor(self) -> int:
        """Index of the next tick generated when ``next()`` is called without one."""
        return self._cursor

    def next(self, tick_index: Optional[int] = None) -> Sample:
        tick = self._cursor if tick_index is None else int(tick_index)
        self._cursor = tick + 1

        t = tick * self._tick_seconds
        drift = self._drift_amplitude * math.sin(2.0 * math.pi * t / self._drift_period_s)
        oscillation = self._oscillation_amplitude * np.sin(2.0 * np.pi * self._freqs * t)
        noise = self._rng.uniform(-self._noise_amplitude, self._noise_amplitude, size=self._base.size)
        values = np.clip(self._base + drift + oscillation + noise, VALUE_MIN, VALUE_MAX)

        return Sample(
            {name: float(v) for name, v in zip(self.channels, values)},
            seq=tick,
        )

    def rewind(self) -> None:
        """Restart the time cursor and, when seeded, the noise sequence."""
        self._cursor = 0
        self._rng = np.random.default_rng(self._seed)
