"""Exception types raised by the MindPulse signal pipeline."""

from __future__ import annotations

__all__ = [
    "MindPulseError",
    "SourceUnavailable",
    "EmptyDataset",
    "SchedulerFailure",
    "PipelineStateError",
]


class MindPulseError(Exception):
    """Base class for all pipeline errors."""


class SourceUnavailable(MindPulseError):
    """
    Capture device or inference backend could not produce a reading.

    Recoverable: :class:`~mindpulse.sources.inference.InferenceSource` turns
    it into fallback data plus a one-off status notification.
    """


class EmptyDataset(MindPulseError, ValueError):
    """A dataset contained no usable rows."""


class SchedulerFailure(MindPulseError):
    """The tick loop died; the controller is stopped and must be restarted."""


class PipelineStateError(MindPulseError, RuntimeError):
    """Operation not allowed in the controller's current state."""
