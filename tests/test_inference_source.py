from __future__ import annotations

import asyncio

import pytest

from conftest import FakeDevice, GatedCall
from mindpulse.core.models import Sample
from mindpulse.errors import SourceUnavailable
from mindpulse.sources.inference import EmotionReading, InferenceSource, reading_to_values
from mindpulse.sources.simulated import SimulatedSource

CHANNELS = ("attention", "relaxation", "drowsiness", "engagement")


def test_emotion_reading_maps_to_engagement_and_attention() -> None:
    values, meta = reading_to_values(EmotionReading("Happy", 0.91), CHANNELS)
    assert values["engagement"] == 85.0
    assert values["attention"] == 80.0
    assert values["drowsiness"] == 20.0
    assert meta == {"emotion": "happy", "confidence": 0.91}


def test_unknown_emotion_uses_default_scores() -> None:
    values, _ = reading_to_values(EmotionReading("bored"), CHANNELS)
    assert (values["engagement"], values["attention"]) == (70.0, 75.0)


def test_reading_to_values_rejects_unknown_types() -> None:
    with pytest.raises(TypeError):
        reading_to_values(42, CHANNELS)


@pytest.mark.asyncio
async def test_successful_call_produces_clamped_sample() -> None:
    async def call():
        return {"attention": 150.0, "engagement": 60.0, "emotion": "focused"}

    source = InferenceSource(call)
    sample = await source.next()
    assert sample["attention"] == 100.0
    assert sample["engagement"] == 60.0
    assert sample.meta["emotion"] == "focused"
    assert source.calls == 1
    assert not source.fallback_active


@pytest.mark.asyncio
async def test_failures_fall_back_and_report_once() -> None:
    changes = []
    outcomes = iter([RuntimeError("model offline"), RuntimeError("still offline"), Sample({"attention": 77.0})])

    async def call():
        outcome = next(outcomes)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    source = InferenceSource(call, SimulatedSource(seed=5))
    source.set_status_listener(lambda active, error: changes.append((active, error)))

    first = await source.next()
    second = await source.next()
    third = await source.next()

    assert first.meta["fallback"] is True
    assert second.meta["fallback"] is True
    assert "fallback" not in third.meta
    assert third["attention"] == 77.0
    assert [active for active, _ in changes] == [True, False]
    assert isinstance(changes[0][1], SourceUnavailable)
    assert source.failure_transitions == 1
    assert [first.seq, second.seq, third.seq] == [0, 1, 2]


@pytest.mark.asyncio
async def test_timeout_counts_as_failure() -> None:
    async def slow_call():
        await asyncio.sleep(1.0)
        return {"attention": 50.0}

    source = InferenceSource(slow_call, timeout_s=0.01)
    sample = await source.next()
    assert sample.meta["fallback"] is True
    assert source.fallback_active


@pytest.mark.asyncio
async def test_second_call_while_in_flight_is_rejected() -> None:
    call = GatedCall()
    source = InferenceSource(call)
    first = asyncio.ensure_future(source.next())
    await asyncio.sleep(0)
    assert source.in_flight

    with pytest.raises(RuntimeError):
        await source.next()

    call.release()
    await first
    assert not source.in_flight
    assert call.calls == 1


@pytest.mark.asyncio
async def test_denied_device_skips_call_and_uses_fallback() -> None:
    call = GatedCall()
    changes = []
    source = InferenceSource(call, device=FakeDevice(deny=True))
    source.set_status_listener(lambda active, error: changes.append(active))

    source.open()
    sample = await source.next()
    source.close()

    assert sample.meta["fallback"] is True
    assert call.calls == 0
    assert changes == [True]
    assert not source.device_held


def test_device_is_claimed_by_one_source_at_a_time() -> None:
    device = FakeDevice()
    first = InferenceSource(GatedCall(), device=device)
    second = InferenceSource(GatedCall(), device=device)

    first.open()
    second.open()
    assert first.device_held
    assert not second.device_held
    assert second.fallback_active
    assert device.acquired == 1

    first.close()
    second.close()
    assert device.released == 1

    second.open()
    assert second.device_held
    second.close()
    assert device.released == 2


@pytest.mark.asyncio
async def test_call_outliving_close_does_not_change_fallback_state() -> None:
    call = GatedCall(error=RuntimeError("model crashed"))
    source = InferenceSource(call)
    changes = []
    source.set_status_listener(lambda active, error: changes.append(active))

    source.open()
    pending = asyncio.ensure_future(source.next())
    await asyncio.sleep(0)
    source.close()
    source.open()

    call.release()
    sample = await pending

    assert sample.meta["fallback"] is True
    assert changes == []
    assert not source.fallback_active
    assert source.failure_transitions == 0
    source.close()
