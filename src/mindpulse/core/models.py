"""Shared value types for pipeline samples and source kinds."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

__all__ = [
    "DEFAULT_CHANNELS",
    "VALUE_MIN",
    "VALUE_MAX",
    "SourceKind",
    "Sample",
    "clamp_value",
]

DEFAULT_CHANNELS: tuple[str, ...] = ("attention", "relaxation", "drowsiness", "engagement")
VALUE_MIN = 0.0
VALUE_MAX = 100.0


class SourceKind(str, Enum):
    SIMULATED = "simulated"
    DATASET = "dataset"
    INFERENCE = "inference"

    @classmethod
    def parse(cls, value: Any, default: "SourceKind | None" = None) -> "SourceKind":
        """Resolve ``value`` (enum or case-insensitive name) into a SourceKind."""
        if isinstance(value, SourceKind):
            return value
        text = str(value or "").strip().lower()
        for kind in cls:
            if kind.value == text:
                return kind
        if default is not None:
            return default
        raise ValueError(f"Unknown source kind {value!r}")


def clamp_value(value: float) -> float:
    """Clamp ``value`` into the channel range; NaN maps to the lower bound."""
    v = float(value)
    if math.isnan(v):
        return VALUE_MIN
    return min(VALUE_MAX, max(VALUE_MIN, v))


@dataclass(frozen=True)
class Sample:
    """
    One multi-channel reading.

    ``values`` maps channel name to a number in ``[0, 100]``; ``seq`` is the
    producing source's monotonically increasing counter. ``meta`` carries
    optional extras such as an inference emotion label and its confidence.
    """

    values: Mapping[str, float]
    seq: int = 0
    timestamp: Optional[float] = None
    meta: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        cleaned: dict[str, float] = {}
        for name, raw in self.values.items():
            value = float(raw)
            if not VALUE_MIN <= value <= VALUE_MAX:
                raise ValueError(f"channel {name!r} value {value} outside [{VALUE_MIN}, {VALUE_MAX}]")
            cleaned[str(name)] = value
        object.__setattr__(self, "values", MappingProxyType(cleaned))
        object.__setattr__(self, "meta", MappingProxyType(dict(self.meta)))

    @classmethod
    def clamped(
        cls,
        values: Mapping[str, float],
        *,
        seq: int = 0,
        timestamp: Optional[float] = None,
        meta: Optional[Mapping[str, Any]] = None,
    ) -> "Sample":
        """Build a sample, clamping every value into range instead of rejecting it."""
        return cls(
            {name: clamp_value(v) for name, v in values.items()},
            seq=seq,
            timestamp=timestamp,
            meta=meta or {},
        )

    @property
    def channels(self) -> tuple[str, ...]:
        return tuple(self.values.keys())

    def __getitem__(self, channel: str) -> float:
        return self.values[channel]

    def get(self, channel: str, default: float = 0.0) -> float:
        return self.values.get(channel, default)

    def has_channels(self, channels: Iterable[str]) -> bool:
        return all(name in self.values for name in channels)

    def restamped(self, *, seq: int, timestamp: Optional[float] = None) -> "Sample":
        """Return a copy carrying a new sequence number and timestamp."""
        return Sample(self.values, seq=seq, timestamp=timestamp, meta=self.meta)
