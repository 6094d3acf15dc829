"""
Per-channel history buffers fed by the pipeline controller.

Everything here is mutated from the event-loop thread inside the tick
handler, so no locking is needed.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .models import Sample
from .ringbuffer import RingBuffer

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_CAPACITY = 800

ChannelName = str


class ChannelBufferStore:
    """Mapping of channel -> RingBuffer holding recent values for that channel."""

    def __init__(self, channels: Iterable[ChannelName], capacity: int = DEFAULT_BUFFER_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = int(capacity)
        self._buffers: Dict[ChannelName, RingBuffer[float]] = {
            str(name): RingBuffer(self._capacity) for name in channels
        }

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def channels(self) -> Tuple[ChannelName, ...]:
        return tuple(self._buffers.keys())

    def push_sample(self, sample: Sample) -> None:
        """Append each channel's value from ``sample`` to its buffer."""
        for name, buf in self._buffers.items():
            value = sample.values.get(name)
            if value is None:
                logger.debug("Sample %d has no value for channel %r", sample.seq, name)
                continue
            buf.push(value)

    def get(self, channel: ChannelName) -> Optional[RingBuffer[float]]:
        return self._buffers.get(channel)

    def snapshot(self) -> Dict[ChannelName, List[float]]:
        """Return ``{channel: [values...]}`` copies, oldest value first."""
        return {name: buf.snapshot() for name, buf in self._buffers.items()}

    def matches(self, channels: Iterable[ChannelName], capacity: int) -> bool:
        return self._capacity == int(capacity) and self.channels == tuple(channels)

    def clear(self) -> None:
        for buf in self._buffers.values():
            buf.clear()

    def __len__(self) -> int:
        """Number of samples held by the fullest channel."""
        return max((len(buf) for buf in self._buffers.values()), default=0)
