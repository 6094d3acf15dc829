"""Configuration objects and helpers for MindPulse.

Pipeline settings (tick interval, buffer capacity, channel set, source kind,
classification rules) live in a YAML file loaded by :mod:`runtime` into typed
dataclasses.
"""

from .runtime import InferenceConfig, PipelineConfig, SimulationConfig, config_from_mapping, load_config

__all__ = ["PipelineConfig", "SimulationConfig", "InferenceConfig", "config_from_mapping", "load_config"]
