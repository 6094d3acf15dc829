"""
Tick-driven controller tying a signal source to buffers, rules and consumers.

The controller runs on a single asyncio event loop. Every tick asks the active
source for one sample, pushes it into the per-channel ring buffers, classifies
it and notifies subscribers. Asynchronous sources are awaited in a background
future; while the active source has such a future pending further ticks are
skipped, so samples are always buffered in production order. Each start/stop
bumps a generation counter and results from an older generation are dropped on
arrival. A call left over from a stopped session never holds up a different
source started afterwards.
"""

from __future__ import annotations

import asyncio
import dataclasses
import inspect
import logging
import time
from contextlib import asynccontextmanager, nullcontext
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import TYPE_CHECKING, AsyncIterator, Awaitable, Callable, Dict, List, Optional

from ..errors import PipelineStateError, SchedulerFailure
from ..tools.debug import debug_enabled, time_block
from .channel_buffers import DEFAULT_BUFFER_CAPACITY, ChannelBufferStore
from .classification import ClassificationRuleSet, Label, default_brain_state_rules
from .models import Sample, SourceKind
from .stats import PipelineStats

if TYPE_CHECKING:  # pragma: no cover
    from ..sources.base import SignalSource

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_TICK_INTERVAL_MS",
    "PipelineController",
    "PipelineState",
    "SourceStatus",
    "StatusEvent",
]

DEFAULT_TICK_INTERVAL_MS = 100

Snapshot = Dict[str, List[float]]
SampleSubscriber = Callable[[Sample, Snapshot, Label], None]
StatusSubscriber = Callable[["SourceStatus"], None]
SleepFn = Callable[[float], Awaitable[None]]


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        # stop()/reset() called with no running loop
        return None


class StatusEvent(str, Enum):
    FALLBACK_ENGAGED = "fallback_engaged"
    FALLBACK_RECOVERED = "fallback_recovered"
    SCHEDULER_FAILED = "scheduler_failed"


@dataclass(frozen=True)
class SourceStatus:
    """One-off notification about a recoverable or fatal status change."""

    event: StatusEvent
    source: SourceKind
    generation: int
    error: Optional[BaseException] = None


@dataclass
class PipelineState:
    running: bool = False
    mode: SourceKind = SourceKind.SIMULATED
    tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS
    last_sample: Optional[Sample] = None
    last_label: Optional[Label] = None
    fallback_active: bool = False


class PipelineController:
    """
    Owns the tick scheduler, the active source, the channel buffers and the
    latest classification.

    ``start()`` must be called from inside a running event loop. Calling it
    while already running raises :class:`PipelineStateError`. ``stop()`` keeps
    the last sample/label; ``reset()`` also clears buffers and state.
    """

    def __init__(
        self,
        rules: Optional[ClassificationRuleSet] = None,
        *,
        capacity: int = DEFAULT_BUFFER_CAPACITY,
        tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS,
        default_mode: SourceKind = SourceKind.SIMULATED,
        sleep: SleepFn = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        if tick_interval_ms <= 0:
            raise ValueError("tick_interval_ms must be positive")
        self._rules = rules if rules is not None else default_brain_state_rules()
        self._capacity = int(capacity)
        self._default_interval_ms = int(tick_interval_ms)
        self._default_mode = default_mode
        self._sleep = sleep
        self._clock = clock

        self._state = self._initial_state()
        self._source: Optional[SignalSource] = None
        self._buffers: Optional[ChannelBufferStore] = None
        self._generation = 0
        self._timer: Optional[asyncio.Task] = None
        # source -> its unresolved call; entries outlive the session that issued them
        self._pending: Dict[SignalSource, asyncio.Future] = {}
        self._failure: Optional[SchedulerFailure] = None
        self._subscribers: List[SampleSubscriber] = []
        self._status_subscribers: List[StatusSubscriber] = []
        self.stats = PipelineStats()

    # ------------------------------------------------------------- accessors
    @property
    def state(self) -> PipelineState:
        """Copy of the current state."""
        return dataclasses.replace(self._state)

    @property
    def running(self) -> bool:
        return self._state.running

    @property
    def source(self) -> Optional[SignalSource]:
        return self._source

    @property
    def rules(self) -> ClassificationRuleSet:
        return self._rules

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def in_flight(self) -> bool:
        """True while the active source has a call pending."""
        return self._source is not None and self._source in self._pending

    @property
    def failure(self) -> Optional[SchedulerFailure]:
        return self._failure

    def snapshot(self) -> Snapshot:
        """Copy of every channel's history, oldest value first."""
        if self._buffers is None:
            return {}
        return self._buffers.snapshot()

    # ---------------------------------------------------------- subscription
    def subscribe(self, callback: SampleSubscriber) -> Callable[[], None]:
        """Register ``callback(sample, snapshot, label)``; returns an unsubscribe function."""
        self._subscribers.append(callback)
        return partial(self._remove, self._subscribers, callback)

    def subscribe_status(self, callback: StatusSubscriber) -> Callable[[], None]:
        self._status_subscribers.append(callback)
        return partial(self._remove, self._status_subscribers, callback)

    @staticmethod
    def _remove(registry: list, callback: Callable) -> None:
        try:
            registry.remove(callback)
        except ValueError:
            pass

    # ------------------------------------------------------------- lifecycle
    def start(self, source: SignalSource, tick_interval_ms: Optional[int] = None) -> None:
        if self._state.running:
            raise PipelineStateError("pipeline is already running; stop() or switch_source() first")
        interval_ms = int(tick_interval_ms if tick_interval_ms is not None else self._state.tick_interval_ms)
        if interval_ms <= 0:
            raise ValueError("tick_interval_ms must be positive")
        loop = asyncio.get_running_loop()

        if self._buffers is None or not self._buffers.matches(source.channels, self._capacity):
            self._buffers = ChannelBufferStore(source.channels, self._capacity)

        self._generation += 1
        generation = self._generation
        self._failure = None
        self._state.fallback_active = False
        source.set_status_listener(partial(self._on_source_status, generation, source.kind))
        try:
            source.open()
        except Exception:
            source.set_status_listener(None)
            raise

        self._source = source
        self._state.running = True
        self._state.mode = source.kind
        self._state.tick_interval_ms = interval_ms
        self._timer = loop.create_task(self._run(generation, interval_ms / 1000.0))
        logger.info(
            "Pipeline started: source=%s interval=%d ms capacity=%d (generation %d)",
            source.kind.value,
            interval_ms,
            self._capacity,
            generation,
        )

    def stop(self) -> None:
        """Cancel the tick loop and release the source; no-op when stopped."""
        if not self._state.running:
            return
        self._halt()
        logger.info("Pipeline stopped (generation %d)", self._generation)

    def reset(self) -> None:
        """Stop if running, clear every buffer and restore the initial state."""
        if self._state.running:
            self._halt()
        if self._buffers is not None:
            self._buffers.clear()
        self._state = self._initial_state()
        self._failure = None
        self.stats = PipelineStats()
        logger.info("Pipeline reset")

    def switch_source(self, source: SignalSource, tick_interval_ms: Optional[int] = None) -> None:
        """Stop, drop the old history and start again with ``source``."""
        interval_ms = tick_interval_ms if tick_interval_ms is not None else self._state.tick_interval_ms
        self.stop()
        self._buffers = None
        logger.info("Switching source to %s", source.kind.value)
        self.start(source, interval_ms)

    @asynccontextmanager
    async def session(
        self, source: SignalSource, tick_interval_ms: Optional[int] = None
    ) -> AsyncIterator["PipelineController"]:
        """Run ``source`` for the duration of the block; always stops on exit."""
        self.start(source, tick_interval_ms)
        try:
            yield self
        finally:
            self.stop()

    async def join(self) -> None:
        """Wait until the tick loop ends; raise :class:`SchedulerFailure` if it died."""
        timer = self._timer
        if timer is not None:
            await asyncio.wait({timer})
        if self._failure is not None:
            raise self._failure

    async def wait_idle(self) -> None:
        """Wait for every outstanding source call to be accepted or discarded."""
        while self._pending:
            await asyncio.wait(set(self._pending.values()))
            # let the done-callbacks run before checking again
            await asyncio.sleep(0)

    # ----------------------------------------------------------------- ticks
    def tick(self) -> bool:
        """
        Service one tick. Returns True when the source was asked for a sample,
        False when the controller is stopped or the tick had to be skipped.
        """
        if not self._state.running or self._source is None:
            return False
        self.stats.ticks_scheduled += 1
        source = self._source
        if source in self._pending:
            self.stats.ticks_skipped += 1
            logger.debug("Tick skipped: source call still in flight")
            return False

        generation = self._generation
        self.stats.ticks_serviced += 1
        timing = (
            time_block(f"tick {self.stats.ticks_serviced}", slow_ms=self._state.tick_interval_ms)
            if debug_enabled()
            else nullcontext()
        )
        with timing:
            try:
                result = source.next()
            except Exception:
                self.stats.source_errors += 1
                logger.exception("Source %s failed to produce a sample", source.kind.value)
                return True
            if inspect.isawaitable(result):
                future = asyncio.ensure_future(result)
                self._pending[source] = future
                future.add_done_callback(partial(self._on_pending_done, source, generation))
            else:
                self._accept(result, generation)
        return True

    async def _run(self, generation: int, interval_s: float) -> None:
        try:
            while generation == self._generation:
                await self._sleep(interval_s)
                if generation != self._generation:
                    break
                self.tick()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._on_scheduler_failure(generation, exc)

    def _on_pending_done(self, source: SignalSource, generation: int, future: asyncio.Future) -> None:
        if self._pending.get(source) is future:
            del self._pending[source]
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            if generation == self._generation:
                self.stats.source_errors += 1
            logger.error("Asynchronous source call failed", exc_info=exc)
            return
        try:
            self._accept(future.result(), generation)
        except Exception as exc:
            # Runs outside the tick task, so report it the way _run would.
            self._on_scheduler_failure(generation, exc)

    def _accept(self, sample: Sample, generation: int) -> None:
        if generation != self._generation or self._buffers is None:
            self.stats.stale_discarded += 1
            logger.debug("Discarding stale sample %d from generation %d", sample.seq, generation)
            return

        # Classify first so a failing rule leaves buffers and state untouched.
        label = self._rules.classify(sample)
        self._buffers.push_sample(sample)
        self._state.last_sample = sample
        self._state.last_label = label
        self.stats.samples_accepted += 1
        self.stats.rate.add_sample_time(self._clock())

        snapshot = self._buffers.snapshot()
        for callback in list(self._subscribers):
            try:
                callback(sample, snapshot, label)
            except Exception:
                logger.exception("Sample subscriber %r raised", callback)

    # ---------------------------------------------------------------- status
    def _on_source_status(
        self,
        generation: int,
        kind: SourceKind,
        fallback_active: bool,
        error: Optional[BaseException],
    ) -> None:
        if generation != self._generation:
            logger.debug("Ignoring status change from generation %d", generation)
            return
        self._state.fallback_active = fallback_active
        event = StatusEvent.FALLBACK_ENGAGED if fallback_active else StatusEvent.FALLBACK_RECOVERED
        self._emit_status(SourceStatus(event, kind, generation, error))

    def _on_scheduler_failure(self, generation: int, exc: Exception) -> None:
        if generation != self._generation:
            return
        logger.error("Tick scheduler failed; pipeline stopped", exc_info=exc)
        failure = SchedulerFailure(f"tick scheduler failed: {exc!r}")
        failure.__cause__ = exc
        kind = self._state.mode
        try:
            self._halt()
        finally:
            self._failure = failure
            self._emit_status(SourceStatus(StatusEvent.SCHEDULER_FAILED, kind, generation, failure))

    def _emit_status(self, status: SourceStatus) -> None:
        for callback in list(self._status_subscribers):
            try:
                callback(status)
            except Exception:
                logger.exception("Status subscriber %r raised", callback)

    # --------------------------------------------------------------- helpers
    def _initial_state(self) -> PipelineState:
        return PipelineState(mode=self._default_mode, tick_interval_ms=self._default_interval_ms)

    def _halt(self) -> None:
        # Bumping the generation stops the loop and invalidates in-flight results.
        self._generation += 1
        timer, self._timer = self._timer, None
        if timer is not None and timer is not _current_task():
            timer.cancel()
        source, self._source = self._source, None
        self._state.running = False
        if source is not None:
            source.set_status_listener(None)
            source.close()
