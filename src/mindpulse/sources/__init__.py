"""Interchangeable sample producers.

- :mod:`simulated` generates synthetic drift + oscillation + noise.
- :mod:`dataset` replays pre-loaded rows cyclically.
- :mod:`inference` wraps an asynchronous camera/microphone model call with a
  simulated fallback.
"""

from .base import SignalSource
from .dataset import DatasetReplaySource
from .inference import CaptureDevice, EmotionReading, InferenceSource
from .simulated import SimulatedSource

__all__ = [
    "SignalSource",
    "SimulatedSource",
    "DatasetReplaySource",
    "InferenceSource",
    "CaptureDevice",
    "EmotionReading",
]
