"""
Samples produced by an external (camera/microphone) inference call.

The call is opaque: any coroutine function returning a :class:`Sample`, a
``{channel: value}`` mapping, or an :class:`EmotionReading`. When the capture
device is unavailable or the call fails, the source answers from its embedded
:class:`SimulatedSource` instead and reports the change once through its
status listener.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Protocol, Set, Tuple

from ..core.models import DEFAULT_CHANNELS, Sample, SourceKind
from ..errors import SourceUnavailable
from .base import SignalSource
from .simulated import DEFAULT_BASE_VALUES, SimulatedSource

logger = logging.getLogger(__name__)

InferenceCall = Callable[[], Awaitable[Any]]

# Facial-expression label -> derived channel scores.
EMOTION_ENGAGEMENT: Mapping[str, float] = {
    "happy": 85.0,
    "surprised": 90.0,
    "angry": 75.0,
    "neutral": 70.0,
    "sad": 50.0,
    "fearful": 60.0,
}
EMOTION_ATTENTION: Mapping[str, float] = {
    "happy": 80.0,
    "surprised": 95.0,
    "angry": 85.0,
    "neutral": 75.0,
    "sad": 60.0,
    "fearful": 70.0,
}
DEFAULT_ENGAGEMENT = 70.0
DEFAULT_ATTENTION = 75.0

# Process-wide: ids of devices currently held by any open InferenceSource.
_claimed_devices: Set[int] = set()


class CaptureDevice(Protocol):
    """
    Camera/microphone handle; ``acquire`` raises when access is denied.

    Claims are tracked process-wide by ``id(device)``, so one handle object
    can be held by at most one open :class:`InferenceSource` at a time, even
    across controllers. Closing the source drops the claim.
    """

    def acquire(self) -> None:  # pragma: no cover - protocol
        ...

    def release(self) -> None:  # pragma: no cover - protocol
        ...


@dataclass(frozen=True)
class EmotionReading:
    """Top classification returned by an emotion model."""

    label: str
    score: float = 1.0


def reading_to_values(
    result: Any,
    channels: Tuple[str, ...],
    neutral: Optional[Mapping[str, float]] = None,
) -> Tuple[Dict[str, float], Dict[str, Any]]:
    """
    Convert an inference result into channel values plus metadata.

    Channels the result does not cover take their ``neutral`` value.
    """
    neutral = DEFAULT_BASE_VALUES if neutral is None else neutral
    values = {name: float(neutral.get(name, 50.0)) for name in channels}
    meta: Dict[str, Any] = {}

    if isinstance(result, Sample):
        values.update({k: v for k, v in result.values.items() if k in values})
        meta.update(result.meta)
    elif isinstance(result, EmotionReading):
        emotion = result.label.strip().lower()
        if "engagement" in values:
            values["engagement"] = EMOTION_ENGAGEMENT.get(emotion, DEFAULT_ENGAGEMENT)
        if "attention" in values:
            values["attention"] = EMOTION_ATTENTION.get(emotion, DEFAULT_ATTENTION)
        meta["emotion"] = emotion
        meta["confidence"] = float(result.score)
    elif isinstance(result, Mapping):
        for key, raw in result.items():
            if key in values:
                values[key] = float(raw)
            elif key in {"emotion", "confidence", "tone"}:
                meta[key] = raw
    else:
        raise TypeError(f"Unsupported inference result type {type(result).__name__}")
    return values, meta


class InferenceSource(SignalSource):
    """
    Wrap an asynchronous capture+inference call.

    At most one call is in flight at a time; calling :meth:`next` while one is
    pending is a programming error (the controller skips such ticks).
    """

    kind = SourceKind.INFERENCE

    def __init__(
        self,
        call: InferenceCall,
        fallback: Optional[SimulatedSource] = None,
        *,
        device: Optional[CaptureDevice] = None,
        channels: Tuple[str, ...] = DEFAULT_CHANNELS,
        timeout_s: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(channels)
        self._call = call
        self._fallback = fallback if fallback is not None else SimulatedSource(channels=self.channels)
        self._device = device
        self._timeout_s = timeout_s if timeout_s is None or timeout_s > 0 else None
        self._clock = clock

        self._device_held = False
        self._device_error: Optional[SourceUnavailable] = None
        self._fallback_active = False
        self._in_flight = False
        # bumped by close(); calls issued under an older value report no status
        self._session = 0
        self._emitted = 0
        self.calls = 0
        self.failure_transitions = 0

    # ---------------------------------------------------------------- session
    def open(self) -> None:
        """Claim the capture device; failure switches to fallback, not an error."""
        self._device_error = None
        if self._device is None:
            return
        key = id(self._device)
        if key in _claimed_devices:
            self._device_error = SourceUnavailable("capture device is already in use")
        else:
            try:
                self._device.acquire()
            except Exception as exc:
                self._device_error = SourceUnavailable(f"capture device unavailable: {exc}")
                self._device_error.__cause__ = exc
            else:
                _claimed_devices.add(key)
                self._device_held = True
                logger.info("Capture device acquired")
        if self._device_error is not None:
            logger.warning("%s; using simulated fallback", self._device_error)
            self._enter_fallback(self._device_error)

    def close(self) -> None:
        """Release the capture device if this source holds it."""
        if self._device_held and self._device is not None:
            try:
                self._device.release()
                logger.info("Capture device released")
            finally:
                _claimed_devices.discard(id(self._device))
                self._device_held = False
        self._session += 1
        self._device_error = None
        self._fallback_active = False

    # ------------------------------------------------------------------ state
    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def fallback_active(self) -> bool:
        return self._fallback_active

    @property
    def device_held(self) -> bool:
        return self._device_held

    # ---------------------------------------------------------------- produce
    async def next(self) -> Sample:
        if self._in_flight:
            raise RuntimeError("an inference call is already in flight")
        self._in_flight = True
        session = self._session
        try:
            if self._device_error is not None:
                return self._fallback_sample()
            try:
                result = await self._invoke()
                values, meta = reading_to_values(result, self.channels)
                sample = Sample.clamped(values, seq=self._emitted, timestamp=self._clock(), meta=meta)
            except Exception as exc:
                if isinstance(exc, SourceUnavailable):
                    error = exc
                else:
                    error = SourceUnavailable(f"inference call failed: {exc!r}")
                    error.__cause__ = exc
                if session == self._session:
                    self._enter_fallback(error)
                else:
                    logger.debug("Ignoring failure of a call issued before close(): %s", error)
                return self._fallback_sample()
            if session == self._session:
                self._leave_fallback()
            self._emitted += 1
            return sample
        finally:
            self._in_flight = False

    async def _invoke(self) -> Any:
        self.calls += 1
        if self._timeout_s is None:
            return await self._call()
        return await asyncio.wait_for(self._call(), self._timeout_s)

    def _fallback_sample(self) -> Sample:
        base = self._fallback.next()
        sample = Sample(
            base.values,
            seq=self._emitted,
            timestamp=self._clock(),
            meta={**base.meta, "fallback": True},
        )
        self._emitted += 1
        return sample

    def _enter_fallback(self, error: SourceUnavailable) -> None:
        if self._fallback_active:
            logger.debug("Inference still unavailable: %s", error)
            return
        self._fallback_active = True
        self.failure_transitions += 1
        logger.warning("Inference unavailable, switching to simulated fallback: %s", error)
        if self._status_listener is not None:
            self._status_listener(True, error)

    def _leave_fallback(self) -> None:
        if not self._fallback_active:
            return
        self._fallback_active = False
        logger.info("Inference recovered, leaving fallback mode")
        if self._status_listener is not None:
            self._status_listener(False, None)
