"""Factory helpers that wire a :class:`PipelineController` from configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from ..config import PipelineConfig
from ..dataio.dataset_loader import load_dataset
from ..sources.base import SignalSource
from ..sources.dataset import DatasetReplaySource
from ..sources.inference import CaptureDevice, InferenceCall, InferenceSource
from ..sources.simulated import SimulatedSource
from .classification import ClassificationRuleSet, rules_from_config
from .controller import PipelineController
from .models import Sample, SourceKind


@dataclass(slots=True)
class PipelineHandles:
    """Return value from :func:`build_pipeline` containing ready-to-use pieces."""

    controller: PipelineController
    source: SignalSource
    rules: ClassificationRuleSet
    tick_interval_ms: int


def build_simulated_source(cfg: PipelineConfig) -> SimulatedSource:
    sim = cfg.simulation
    return SimulatedSource(
        sim.base_values,
        sim.noise_amplitude,
        sim.frequencies_hz,
        channels=cfg.channels,
        oscillation_amplitude=sim.oscillation_amplitude,
        drift_amplitude=sim.drift_amplitude,
        drift_period_s=sim.drift_period_s,
        tick_seconds=cfg.tick_interval_ms / 1000.0,
        seed=sim.seed,
    )


def build_source(
    cfg: PipelineConfig,
    *,
    rows: Optional[Sequence[Sample]] = None,
    inference_call: Optional[InferenceCall] = None,
    device: Optional[CaptureDevice] = None,
) -> SignalSource:
    """
    Create the source selected by ``cfg.source``.

    Dataset mode uses ``rows`` when given, otherwise loads ``cfg.dataset_path``
    (raising :class:`~mindpulse.errors.EmptyDataset` before anything starts).
    """
    if cfg.source is SourceKind.DATASET:
        if rows is None:
            if cfg.dataset_path is None:
                raise ValueError("dataset source selected but no dataset_path configured")
            rows = load_dataset(cfg.dataset_path, cfg.channels)
        return DatasetReplaySource(rows, channels=cfg.channels)
    if cfg.source is SourceKind.INFERENCE:
        if inference_call is None:
            raise ValueError("inference source selected but no inference_call supplied")
        return InferenceSource(
            inference_call,
            build_simulated_source(cfg),
            device=device,
            channels=cfg.channels,
            timeout_s=cfg.inference.timeout_s,
        )
    return build_simulated_source(cfg)


def build_pipeline(
    cfg: PipelineConfig,
    *,
    rows: Optional[Sequence[Sample]] = None,
    inference_call: Optional[InferenceCall] = None,
    device: Optional[CaptureDevice] = None,
) -> PipelineHandles:
    """
    Build a controller plus the configured source; nothing is started yet.

    Parameters
    ----------
    cfg:
        Runtime configuration (usually loaded from YAML).
    rows:
        Pre-decoded dataset rows for dataset mode.
    inference_call:
        Coroutine function performing one capture+inference round trip.
    device:
        Capture device claimed by the inference source while running.
    """
    normalized = cfg.sanitized()
    rules = rules_from_config(normalized.rules)
    controller = PipelineController(
        rules,
        capacity=normalized.buffer_capacity,
        tick_interval_ms=normalized.tick_interval_ms,
        default_mode=normalized.source,
    )
    source = build_source(normalized, rows=rows, inference_call=inference_call, device=device)
    return PipelineHandles(
        controller=controller,
        source=source,
        rules=rules,
        tick_interval_ms=normalized.tick_interval_ms,
    )


__all__ = ["PipelineHandles", "build_pipeline", "build_source", "build_simulated_source"]
