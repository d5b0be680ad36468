from __future__ import annotations

import logging
import time

from bbtxt.monitoring.metrics import PipelineMetrics


class PeriodicStatsLogger:
    def __init__(
        self,
        metrics: PipelineMetrics,
        decoder: str,
        interval_seconds: float = 5.0,
    ) -> None:
        self._metrics = metrics
        self._decoder = decoder
        self._interval_seconds = max(0.5, interval_seconds)
        self._next_emit = time.monotonic() + self._interval_seconds
        self._logger = logging.getLogger("bbtxt.stats")

    def maybe_emit(self, force: bool = False) -> None:
        now = time.monotonic()
        if not force and now < self._next_emit:
            return

        snapshot = self._metrics.snapshot()
        self._logger.info(
            "stats images_per_s=%.2f batches_per_s=%.2f images=%d produced=%d consumed=%d reshuffles=%d queue_depth=%d wait_ms=%.1f decoder=%s",
            snapshot.images_per_second,
            snapshot.batches_per_second,
            snapshot.images_decoded,
            snapshot.batches_produced,
            snapshot.batches_consumed,
            snapshot.reshuffles,
            snapshot.queue_depth,
            snapshot.consumer_wait_ms,
            self._decoder,
        )

        self._next_emit = now + self._interval_seconds
