import math

import pytest

from mindpulse.core.models import Sample, SourceKind, clamp_value


def test_sample_rejects_out_of_range_values() -> None:
    with pytest.raises(ValueError):
        Sample({"attention": 101.0})
    with pytest.raises(ValueError):
        Sample({"attention": -0.5})


def test_sample_is_immutable() -> None:
    sample = Sample({"attention": 10.0}, seq=3)
    with pytest.raises(TypeError):
        sample.values["attention"] = 20.0  # type: ignore[index]
    with pytest.raises(AttributeError):
        sample.seq = 4  # type: ignore[misc]


def test_sample_copies_input_mapping() -> None:
    raw = {"attention": 10.0}
    sample = Sample(raw)
    raw["attention"] = 99.0
    assert sample["attention"] == 10.0


def test_clamped_constructor_and_clamp_value() -> None:
    sample = Sample.clamped({"attention": 140.0, "relaxation": -3.0})
    assert sample.values == {"attention": 100.0, "relaxation": 0.0}
    assert clamp_value(math.nan) == 0.0


def test_restamped_keeps_values_and_meta() -> None:
    sample = Sample({"attention": 42.0}, seq=1, meta={"emotion": "happy"})
    copy = sample.restamped(seq=9, timestamp=1.5)
    assert copy.values == sample.values
    assert copy.meta["emotion"] == "happy"
    assert (copy.seq, copy.timestamp) == (9, 1.5)


def test_source_kind_parse() -> None:
    assert SourceKind.parse(" Dataset ") is SourceKind.DATASET
    assert SourceKind.parse("bogus", default=SourceKind.SIMULATED) is SourceKind.SIMULATED
    with pytest.raises(ValueError):
        SourceKind.parse("bogus")
