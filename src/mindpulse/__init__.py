"""MindPulse: real-time multi-source signal pipeline.

Sources produce one multi-channel :class:`~mindpulse.core.models.Sample` per
tick; the :class:`~mindpulse.core.controller.PipelineController` buffers,
classifies and fans each sample out to renderers and other consumers.
"""

__version__ = "0.1.0"
