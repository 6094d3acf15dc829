"""Utilities for loading uploaded CSV/JSON datasets into replayable samples."""

from __future__ import annotations

import csv
import io
import json
import logging
import math
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from ..core.models import DEFAULT_CHANNELS, VALUE_MAX, VALUE_MIN, Sample, clamp_value
from ..errors import EmptyDataset

logger = logging.getLogger(__name__)

TIMESTAMP_FIELD = "timestamp"


def _coerce_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def rows_to_samples(
    records: Iterable[Mapping[str, Any]],
    channels: Sequence[str] = DEFAULT_CHANNELS,
) -> List[Sample]:
    """
    Convert decoded records into samples.

    Keys are matched case-insensitively. Records missing any required channel
    are dropped; out-of-range values are clamped to ``[0, 100]``.
    """
    samples: List[Sample] = []
    dropped = 0
    clamped = 0
    for record in records:
        if not isinstance(record, Mapping):
            dropped += 1
            continue
        normalized = {str(k).strip().lower(): v for k, v in record.items()}
        values = {}
        for name in channels:
            number = _coerce_number(normalized.get(name.lower()))
            if number is None:
                break
            if not VALUE_MIN <= number <= VALUE_MAX:
                clamped += 1
            values[name] = clamp_value(number)
        else:
            meta = {}
            ts = _coerce_number(normalized.get(TIMESTAMP_FIELD))
            if ts is not None:
                meta["dataset_timestamp"] = ts
            samples.append(Sample(values, seq=len(samples), timestamp=ts, meta=meta))
            continue
        dropped += 1

    if dropped:
        logger.warning("Dropped %d dataset rows missing one of %s", dropped, ", ".join(channels))
    if clamped:
        logger.warning("Clamped %d out-of-range dataset values into [%g, %g]", clamped, VALUE_MIN, VALUE_MAX)
    return samples


def parse_csv_text(text: str, channels: Sequence[str] = DEFAULT_CHANNELS) -> List[Sample]:
    """Parse CSV text whose first non-empty line is a header row."""
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return []
    reader = csv.DictReader(io.StringIO("\n".join(lines)))
    return rows_to_samples(reader, channels)


def parse_json_text(text: str, channels: Sequence[str] = DEFAULT_CHANNELS) -> List[Sample]:
    """Parse a JSON list of objects (or a single object)."""
    payload = json.loads(text)
    records = payload if isinstance(payload, list) else [payload]
    return rows_to_samples(records, channels)


def load_dataset(path: Path | str, channels: Sequence[str] = DEFAULT_CHANNELS) -> List[Sample]:
    """
    Load a ``.csv`` or ``.json`` dataset file.

    Raises
    ------
    EmptyDataset
        When no row carries every required channel.
    ValueError
        For unsupported extensions or malformed JSON.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")

    if suffix == ".csv":
        samples = parse_csv_text(text, channels)
    elif suffix == ".json":
        try:
            samples = parse_json_text(text, channels)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Malformed JSON dataset {path}: {exc}") from exc
    else:
        raise ValueError(f"Unsupported dataset format {suffix!r}; expected .csv or .json")

    if not samples:
        raise EmptyDataset(f"No usable rows in {path}")
    logger.info("Loaded %d data points from %s", len(samples), path.name)
    return samples
