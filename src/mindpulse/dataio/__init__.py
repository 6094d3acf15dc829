"""Data input helpers.

:mod:`dataset_loader` decodes uploaded CSV/JSON documents into rows that a
:class:`~mindpulse.sources.dataset.DatasetReplaySource` can replay.
"""
