"""Cyclic replay of a pre-loaded dataset."""

from __future__ import annotations

import time
from typing import Callable, Optional, Sequence, Tuple

from ..core.models import Sample, SourceKind
from ..errors import EmptyDataset
from .base import SignalSource


class DatasetReplaySource(SignalSource):
    """
    Replay ``rows`` in order, wrapping back to the first row forever.

    Each emitted sample carries the row's values with a fresh sequence number,
    so replayed data stays monotonic across wrap-arounds.
    """

    kind = SourceKind.DATASET

    def __init__(
        self,
        rows: Sequence[Sample],
        *,
        channels: Optional[Tuple[str, ...]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        rows = tuple(rows)
        if not rows:
            raise EmptyDataset("DatasetReplaySource needs at least one row")
        super().__init__(channels if channels is not None else rows[0].channels)
        missing = [i for i, row in enumerate(rows) if not row.has_channels(self.channels)]
        if missing:
            raise ValueError(f"{len(missing)} dataset rows lack required channels (first at index {missing[0]})")
        self._rows = rows
        self._clock = clock
        self._cursor = 0
        self._emitted = 0
        self._last_index: Optional[int] = None

    @property
    def cursor(self) -> int:
        """Row index returned by the next call to :meth:`next`."""
        return self._cursor

    @property
    def last_index(self) -> Optional[int]:
        return self._last_index

    def __len__(self) -> int:
        return len(self._rows)

    def next(self) -> Sample:
        index = self._cursor
        row = self._rows[index]
        self._cursor = (index + 1) % len(self._rows)
        self._last_index = index
        sample = row.restamped(seq=self._emitted, timestamp=self._clock())
        self._emitted += 1
        return sample

    def rewind(self) -> None:
        """Restart replay from the first row."""
        self._cursor = 0
        self._last_index = None
