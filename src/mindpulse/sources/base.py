"""Common interface for sample producers driven by the pipeline controller."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Tuple, Union

from ..core.models import DEFAULT_CHANNELS, Sample, SourceKind

StatusListener = Callable[[bool, Optional[BaseException]], None]
NextResult = Union[Sample, Awaitable[Sample]]


class SignalSource(ABC):
    """
    Producer of one :class:`Sample` per tick.

    ``next()`` returns a sample directly for sources that never suspend, or an
    awaitable for sources backed by an external call. ``open()``/``close()``
    bracket a session; the controller calls them from ``start()``/``stop()``.
    """

    kind: SourceKind

    def __init__(self, channels: Tuple[str, ...] = DEFAULT_CHANNELS) -> None:
        self._channels = tuple(channels)
        self._status_listener: Optional[StatusListener] = None

    @property
    def channels(self) -> Tuple[str, ...]:
        return self._channels

    def set_status_listener(self, listener: Optional[StatusListener]) -> None:
        """Register ``listener(fallback_active, error)`` for recoverable status changes."""
        self._status_listener = listener

    def open(self) -> None:  # pragma: no cover - default no-op
        return

    def close(self) -> None:  # pragma: no cover - default no-op
        return

    @abstractmethod
    def next(self) -> NextResult:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(channels={self._channels!r})"
