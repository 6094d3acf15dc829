import pytest

from mindpulse.core.models import DEFAULT_CHANNELS, Sample
from mindpulse.errors import EmptyDataset
from mindpulse.sources.dataset import DatasetReplaySource
from mindpulse.sources.simulated import SimulatedSource


def _rows(n: int) -> list[Sample]:
    return [Sample({name: float(10 * i + 1) for name in DEFAULT_CHANNELS}, seq=i) for i in range(n)]


def test_simulated_values_stay_clamped_for_any_noise() -> None:
    source = SimulatedSource(noise_amplitude=1_000.0, oscillation_amplitude=500.0, seed=3)
    for _ in range(300):
        sample = source.next()
        assert set(sample.channels) == set(DEFAULT_CHANNELS)
        assert all(0.0 <= v <= 100.0 for v in sample.values.values())


def test_simulated_source_is_reproducible_with_seed() -> None:
    a = SimulatedSource(seed=42)
    b = SimulatedSource(seed=42)
    first = [a.next().values for _ in range(20)]
    assert first == [b.next().values for _ in range(20)]

    a.rewind()
    assert [a.next().values for _ in range(20)] == first


def test_simulated_cursor_and_explicit_tick_index() -> None:
    source = SimulatedSource(seed=1)
    assert source.next().seq == 0
    assert source.next().seq == 1
    assert source.next(tick_index=10).seq == 10
    assert source.cursor == 11


def test_simulated_without_noise_follows_base_and_oscillation() -> None:
    source = SimulatedSource(
        {"attention": 50.0},
        noise_amplitude=0.0,
        oscillation_amplitude=0.0,
        drift_amplitude=0.0,
        channels=("attention",),
    )
    assert source.next()["attention"] == pytest.approx(50.0)


def test_dataset_replay_wraps_cyclically() -> None:
    source = DatasetReplaySource(_rows(3))
    visited = []
    for _ in range(5):
        source.next()
        visited.append(source.last_index)
    assert visited == [0, 1, 2, 0, 1]

    sixth = source.next()
    assert source.last_index == 2
    assert sixth["attention"] == 21.0


def test_dataset_replay_sequence_numbers_stay_monotonic() -> None:
    source = DatasetReplaySource(_rows(2))
    seqs = [source.next().seq for _ in range(5)]
    assert seqs == [0, 1, 2, 3, 4]


def test_dataset_replay_rewind_restarts() -> None:
    source = DatasetReplaySource(_rows(3))
    source.next()
    source.next()
    source.rewind()
    assert source.cursor == 0
    assert source.next()["attention"] == 1.0


def test_dataset_replay_rejects_empty_rows() -> None:
    with pytest.raises(EmptyDataset):
        DatasetReplaySource([])


def test_dataset_replay_rejects_rows_missing_channels() -> None:
    rows = [Sample({"attention": 1.0})]
    with pytest.raises(ValueError):
        DatasetReplaySource(rows, channels=DEFAULT_CHANNELS)
