from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import cv2

from bbtxt.config.loader import load_loader_config
from bbtxt.monitoring import PeriodicStatsLogger, PipelineMetrics, configure_logging
from bbtxt.pipeline.annotate import denormalize, draw_label_rows
from bbtxt.pipeline.factory import create_batch_source
from bbtxt.pipeline.prefetch import PrefetchPipeline


def _cli_overrides(args: Any) -> dict[str, Any]:
    data = {
        "source": args.source,
        "image_root": args.image_root,
        "height": args.height,
        "width": args.width,
        "reference_size": args.reference_size,
        "batch_size": args.batch_size,
        "max_boxes_per_image": args.max_boxes,
        "mirror_probability": args.mirror_probability,
        "seed": args.seed,
        "shuffle": args.shuffle,
    }
    prefetch = {
        "queue_depth": args.queue_depth,
        "producer_count": args.producers,
    }
    monitoring: dict[str, Any] = {
        "log_level": args.log_level,
        "prometheus_port": args.prometheus_port,
    }
    if args.json_logs:
        monitoring["json_logs"] = True
    if args.prometheus:
        monitoring["prometheus_enabled"] = True

    overrides: dict[str, Any] = {}
    for section, values in (("data", data), ("prefetch", prefetch), ("monitoring", monitoring)):
        kept = {key: value for key, value in values.items() if value is not None}
        if kept:
            overrides[section] = kept
    return overrides


def run_preview(args: Any, repo_root: Path) -> int:
    try:
        config = load_loader_config(
            repo_root=repo_root,
            config_path=args.config,
            cli_overrides=_cli_overrides(args),
        )
    except Exception as exc:
        print(f"preview command failed: {exc}", file=sys.stderr)
        return 2

    configure_logging(
        config.monitoring.log_level,
        config.monitoring.json_logs,
        context=config.as_log_context(),
    )
    logger = logging.getLogger("bbtxt.preview")
    logger.info("starting preview with config=%s", config.as_log_context())

    metrics = PipelineMetrics()
    if config.monitoring.prometheus_enabled:
        if metrics.enable_prometheus(config.monitoring.prometheus_host, config.monitoring.prometheus_port):
            logger.info(
                "prometheus endpoint enabled at %s:%d",
                config.monitoring.prometheus_host,
                config.monitoring.prometheus_port,
            )
        else:
            logger.warning("prometheus requested but prometheus_client is not installed")

    dump_dir = Path(args.dump_dir) if args.dump_dir else None
    if dump_dir is not None:
        dump_dir.mkdir(parents=True, exist_ok=True)

    try:
        source = create_batch_source("bbtxt", config, metrics=metrics)
        stats_logger = PeriodicStatsLogger(
            metrics=metrics,
            decoder=source.decoder.name(),
            interval_seconds=config.monitoring.stats_interval_seconds,
        )
        pipeline = PrefetchPipeline(
            source,
            queue_depth=config.prefetch.queue_depth,
            producer_count=config.prefetch.producer_count,
            seed=config.data.seed,
            metrics=metrics,
        )
        with pipeline:
            for batch_no, batch in enumerate(pipeline.batches(max(1, int(args.batches)))):
                if dump_dir is not None:
                    for slot in range(batch.size):
                        image = draw_label_rows(denormalize(batch.images[slot]), batch.labels[slot])
                        cv2.imwrite(str(dump_dir / f"batch{batch_no:04d}_{slot:03d}.png"), image)
                stats_logger.maybe_emit()
        stats_logger.maybe_emit(force=True)
        return 0
    except Exception as exc:
        logger.error("preview failed: %s", exc)
        print(f"preview command failed: {exc}", file=sys.stderr)
        return 2
