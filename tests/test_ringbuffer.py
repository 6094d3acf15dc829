import numpy as np
import pytest

from mindpulse.core.ringbuffer import RingBuffer


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        RingBuffer(0)


def test_push_keeps_most_recent_values_in_order() -> None:
    buf: RingBuffer[int] = RingBuffer(4)
    for value in range(1, 11):
        buf.push(value)

    assert buf.snapshot() == [7, 8, 9, 10]
    assert len(buf) == 4
    assert buf[0] == 7
    assert buf[-1] == 10


def test_partial_fill_preserves_insertion_order() -> None:
    buf: RingBuffer[str] = RingBuffer(5)
    for value in "abc":
        buf.push(value)
    assert buf.snapshot() == ["a", "b", "c"]


def test_length_never_exceeds_capacity() -> None:
    rng = np.random.default_rng(7)
    buf: RingBuffer[float] = RingBuffer(6)
    for _ in range(500):
        if rng.random() < 0.05:
            buf.clear()
        else:
            buf.push(float(rng.random()))
        assert len(buf) <= buf.capacity


def test_snapshot_is_a_copy() -> None:
    buf: RingBuffer[int] = RingBuffer(3)
    buf.push(1)
    snap = buf.snapshot()
    snap.append(99)
    buf.push(2)

    assert snap == [1, 99]
    assert buf.snapshot() == [1, 2]


def test_clear_empties_buffer() -> None:
    buf: RingBuffer[int] = RingBuffer(2)
    buf.push(1)
    buf.push(2)
    buf.clear()

    assert len(buf) == 0
    assert buf.snapshot() == []
    with pytest.raises(IndexError):
        buf[-1]
