"""Runtime configuration for the signal pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Tuple

import yaml

from ..core.models import DEFAULT_CHANNELS, SourceKind
from ..sources.simulated import DEFAULT_BASE_VALUES, DEFAULT_FREQUENCIES_HZ


@dataclass(slots=True)
class SimulationConfig:
    """Shape of the synthetic generator (see :class:`SimulatedSource`)."""

    base_values: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_BASE_VALUES))
    noise_amplitude: float = 5.0
    oscillation_amplitude: float = 15.0
    frequencies_hz: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_FREQUENCIES_HZ))
    drift_amplitude: float = 10.0
    drift_period_s: float = 60.0
    seed: Optional[int] = None

    def sanitized(self) -> SimulationConfig:
        return SimulationConfig(
            base_values={str(k): float(v) for k, v in dict(self.base_values or {}).items()},
            noise_amplitude=abs(float(self.noise_amplitude)),
            oscillation_amplitude=abs(float(self.oscillation_amplitude)),
            frequencies_hz={str(k): float(v) for k, v in dict(self.frequencies_hz or {}).items()},
            drift_amplitude=abs(float(self.drift_amplitude)),
            drift_period_s=max(1e-3, float(self.drift_period_s)),
            seed=None if self.seed is None else int(self.seed),
        )


@dataclass(slots=True)
class InferenceConfig:
    # None disables the per-call timeout.
    timeout_s: Optional[float] = None

    def sanitized(self) -> InferenceConfig:
        timeout = self.timeout_s
        if timeout is not None:
            timeout = float(timeout)
            if timeout <= 0:
                timeout = None
        return InferenceConfig(timeout_s=timeout)


@dataclass(slots=True)
class PipelineConfig:
    """
    Tuning knobs for sampling, buffering and classification.

    The defaults mirror the EEG view: 10 Hz ticks, 800 samples of history and
    the four brain-activity channels.
    """

    tick_interval_ms: int = 100
    buffer_capacity: int = 800
    channels: Tuple[str, ...] = DEFAULT_CHANNELS
    source: SourceKind = SourceKind.SIMULATED
    dataset_path: Optional[Path] = None
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    inference: InferenceConfig = field(default_factory=InferenceConfig)
    # Empty means the built-in brain-state rules.
    rules: List[Dict[str, Any]] = field(default_factory=list)

    def sanitized(self) -> PipelineConfig:
        """Return a copy with derived limits applied."""
        channels = tuple(str(c).strip() for c in (self.channels or ()) if str(c).strip())
        return PipelineConfig(
            tick_interval_ms=max(1, int(self.tick_interval_ms)),
            buffer_capacity=max(1, int(self.buffer_capacity)),
            channels=channels or DEFAULT_CHANNELS,
            source=SourceKind.parse(self.source, default=SourceKind.SIMULATED),
            dataset_path=None if self.dataset_path is None else Path(self.dataset_path).expanduser(),
            simulation=_coerce_section(self.simulation, SimulationConfig).sanitized(),
            inference=_coerce_section(self.inference, InferenceConfig).sanitized(),
            rules=[dict(rule) for rule in (self.rules or []) if isinstance(rule, Mapping)],
        )


def _coerce_section(value: Any, cls: type) -> Any:
    """Accept either a dataclass instance or a mapping for nested sections."""
    if isinstance(value, cls):
        return value
    if isinstance(value, Mapping):
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in value.items() if k in known})
    return cls()


def _recognized_fields() -> set[str]:
    """Return the dataclass field names accepted by :class:`PipelineConfig`."""
    return {f.name for f in fields(PipelineConfig)}


def _normalize_mapping(data: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """Flatten known nesting patterns (e.g. top-level ``pipeline`` key)."""
    if "pipeline" in data and isinstance(data["pipeline"], Mapping):
        merged: MutableMapping[str, Any] = {}
        for key, value in data.items():
            if key == "pipeline":
                merged.update(value)
            else:
                merged[key] = value
        return merged
    return dict(data)


def config_from_mapping(data: Mapping[str, Any] | None) -> PipelineConfig:
    """Build :class:`PipelineConfig` from ``data`` (ignoring unknown keys)."""
    if not data:
        return PipelineConfig()
    normalized = _normalize_mapping(data)
    known = _recognized_fields()
    payload = {key: normalized[key] for key in normalized.keys() & known}
    if "channels" in payload and payload["channels"] is not None:
        payload["channels"] = tuple(payload["channels"])
    return PipelineConfig(**payload).sanitized()


def load_config(path: str | Path | None) -> PipelineConfig:
    """
    Load configuration from ``path``.

    Missing files fall back to default :class:`PipelineConfig`.
    """
    if path is None:
        return PipelineConfig()
    cfg_path = Path(path)
    if not cfg_path.exists():
        return PipelineConfig()
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"Expected mapping in {cfg_path}, got {type(raw).__name__}")
    return config_from_mapping(raw)


__all__ = [
    "PipelineConfig",
    "SimulationConfig",
    "InferenceConfig",
    "config_from_mapping",
    "load_config",
]
