from pathlib import Path

import pytest

from mindpulse.config import PipelineConfig, config_from_mapping, load_config
from mindpulse.core.models import Sample, SourceKind
from mindpulse.core.pipeline_wiring import build_pipeline
from mindpulse.sources.dataset import DatasetReplaySource
from mindpulse.sources.inference import InferenceSource
from mindpulse.sources.simulated import SimulatedSource


def test_defaults() -> None:
    cfg = PipelineConfig()
    assert cfg.tick_interval_ms == 100
    assert cfg.buffer_capacity == 800
    assert cfg.source is SourceKind.SIMULATED
    assert cfg.channels == ("attention", "relaxation", "drowsiness", "engagement")


def test_config_from_mapping_flattens_pipeline_block_and_ignores_unknown_keys() -> None:
    cfg = config_from_mapping(
        {
            "pipeline": {"tick_interval_ms": 250, "buffer_capacity": 200},
            "source": "Dataset",
            "theme": "dark",
            "simulation": {"seed": 7, "noise_amplitude": -3, "colour": "red"},
            "inference": {"timeout_s": 0},
        }
    )
    assert cfg.tick_interval_ms == 250
    assert cfg.buffer_capacity == 200
    assert cfg.source is SourceKind.DATASET
    assert cfg.simulation.seed == 7
    assert cfg.simulation.noise_amplitude == 3.0
    assert cfg.inference.timeout_s is None


def test_sanitized_applies_limits() -> None:
    cfg = PipelineConfig(tick_interval_ms=0, buffer_capacity=-4, source="mystery", channels=()).sanitized()
    assert cfg.tick_interval_ms == 1
    assert cfg.buffer_capacity == 1
    assert cfg.source is SourceKind.SIMULATED
    assert cfg.channels == PipelineConfig().channels


def test_load_config_from_yaml(tmp_path: Path) -> None:
    path = tmp_path / "pipeline.yaml"
    path.write_text(
        "tick_interval_ms: 50\n"
        "channels: [attention, drowsiness]\n"
        "rules:\n"
        "  - label: Drowsy\n"
        "    color: '#95E1D3'\n"
        "    when:\n"
        "      - {channel: drowsiness, op: '>', value: 70}\n",
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert cfg.tick_interval_ms == 50
    assert cfg.channels == ("attention", "drowsiness")
    assert cfg.rules[0]["label"] == "Drowsy"


def test_load_config_missing_file_and_bad_document(tmp_path: Path) -> None:
    assert load_config(tmp_path / "missing.yaml") == PipelineConfig()
    assert load_config(None) == PipelineConfig()

    bad = tmp_path / "bad.yaml"
    bad.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(bad)


def test_build_pipeline_for_each_source_kind() -> None:
    handles = build_pipeline(PipelineConfig(buffer_capacity=5, simulation={"seed": 1}))
    assert isinstance(handles.source, SimulatedSource)
    assert handles.controller.capacity == 5

    rows = [Sample({"attention": 1.0, "relaxation": 2.0, "drowsiness": 3.0, "engagement": 4.0})]
    handles = build_pipeline(PipelineConfig(source=SourceKind.DATASET), rows=rows)
    assert isinstance(handles.source, DatasetReplaySource)
    assert handles.controller.state.mode is SourceKind.DATASET

    async def call():
        return {"attention": 50.0}

    handles = build_pipeline(PipelineConfig(source=SourceKind.INFERENCE), inference_call=call)
    assert isinstance(handles.source, InferenceSource)


def test_build_pipeline_uses_configured_rules() -> None:
    cfg = PipelineConfig(rules=[{"label": "Alert", "when": [{"channel": "attention", "op": ">", "value": 10}]}])
    handles = build_pipeline(cfg)
    assert [r.label.name for r in handles.rules.rules] == ["Alert"]


def test_build_pipeline_rejects_incomplete_configuration() -> None:
    with pytest.raises(ValueError):
        build_pipeline(PipelineConfig(source=SourceKind.INFERENCE))
    with pytest.raises(ValueError):
        build_pipeline(PipelineConfig(source=SourceKind.DATASET))
