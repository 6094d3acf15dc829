"""Core pipeline: samples, buffers, classification and the tick controller.

This package sits between the signal sources and whatever renders the result
(waveforms, badges, ambient audio, messages). It owns the recent history per
channel and the latest classification, nothing else.
"""

from .models import DEFAULT_CHANNELS, Sample, SourceKind
from .ringbuffer import RingBuffer
from .channel_buffers import ChannelBufferStore

from .classification import (
    NEUTRAL,
    ClassificationRule,
    ClassificationRuleSet,
    Label,
    Threshold,
    default_brain_state_rules,
    rules_from_config,
)
from .controller import PipelineController, PipelineState, SourceStatus, StatusEvent
from .stats import PipelineStats

__all__ = [
    "DEFAULT_CHANNELS",
    "Sample",
    "SourceKind",
    "RingBuffer",
    "ChannelBufferStore",
    "NEUTRAL",
    "Label",
    "Threshold",
    "ClassificationRule",
    "ClassificationRuleSet",
    "default_brain_state_rules",
    "rules_from_config",
    "PipelineController",
    "PipelineState",
    "SourceStatus",
    "StatusEvent",
    "PipelineStats",
]
