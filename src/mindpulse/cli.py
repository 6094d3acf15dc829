"""Headless runner: drive a pipeline session and print one line per sample."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Mapping, Optional, Sequence, TextIO

from .config import PipelineConfig, load_config
from .core.classification import Label
from .core.controller import SourceStatus
from .core.models import Sample, SourceKind
from .core.pipeline_wiring import build_pipeline
from .errors import MindPulseError
from .presentation import describe

logger = logging.getLogger(__name__)


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="MindPulse headless signal pipeline")
    parser.add_argument(
        "--config",
        type=Path,
        help="Optional YAML file describing PipelineConfig overrides",
    )
    parser.add_argument(
        "--source",
        choices=[SourceKind.SIMULATED.value, SourceKind.DATASET.value],
        help="Signal source to run (inference needs a model call and is library-only)",
    )
    parser.add_argument("--dataset", type=Path, help="CSV/JSON dataset to replay (implies --source dataset)")
    parser.add_argument("--seconds", type=float, default=5.0, help="How long to run before stopping")
    parser.add_argument("--interval-ms", type=int, help="Override tick_interval_ms")
    parser.add_argument("--capacity", type=int, help="Override buffer_capacity")
    parser.add_argument("--seed", type=int, help="Seed for the simulated generator")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    return parser


def _resolve_config(args: argparse.Namespace) -> PipelineConfig:
    cfg = load_config(args.config) if args.config else PipelineConfig()
    if args.dataset is not None:
        cfg.dataset_path = args.dataset
        cfg.source = SourceKind.DATASET
    if args.source is not None:
        cfg.source = SourceKind.parse(args.source)
    if args.interval_ms is not None:
        cfg.tick_interval_ms = int(args.interval_ms)
    if args.capacity is not None:
        cfg.buffer_capacity = int(args.capacity)
    if args.seed is not None:
        cfg.simulation.seed = int(args.seed)
    return cfg.sanitized()


def format_sample(sample: Sample, label: Label) -> str:
    values = " ".join(f"{name}={value:5.1f}" for name, value in sample.values.items())
    presentation = describe(label, sample.meta.get("emotion"))
    return f"#{sample.seq:05d} {values} -> {presentation.label} ({presentation.color})"


async def run_session(cfg: PipelineConfig, seconds: float, out: Optional[TextIO] = None) -> int:
    """Run one session for ``seconds``; returns the number of samples printed."""
    out = out or sys.stdout
    handles = build_pipeline(cfg)
    controller = handles.controller
    printed = 0

    def _print(sample: Sample, snapshot: Mapping[str, Sequence[float]], label: Label) -> None:
        nonlocal printed
        printed += 1
        print(format_sample(sample, label), file=out, flush=True)

    def _status(status: SourceStatus) -> None:
        logger.warning("Status change: %s (%s)", status.event.value, status.error)

    controller.subscribe(_print)
    controller.subscribe_status(_status)
    async with controller.session(handles.source, handles.tick_interval_ms):
        await asyncio.sleep(max(0.0, seconds))
    await controller.join()
    stats = controller.stats
    logger.info(
        "Session finished: %d samples, %d skipped ticks, %.1f Hz effective",
        stats.samples_accepted,
        stats.ticks_skipped,
        stats.effective_hz,
    )
    return printed


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        cfg = _resolve_config(args)
        asyncio.run(run_session(cfg, args.seconds))
    except (MindPulseError, ValueError, OSError) as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
