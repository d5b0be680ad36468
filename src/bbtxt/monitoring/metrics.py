from __future__ import annotations

import threading
import time
from dataclasses import dataclass


@dataclass
class MetricsSnapshot:
    images_per_second: float
    batches_per_second: float
    images_decoded: int
    batches_produced: int
    batches_consumed: int
    reshuffles: int
    queue_depth: int
    consumer_wait_ms: float


class PipelineMetrics:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._start = time.monotonic()
        self._images_decoded = 0
        self._batches_produced = 0
        self._batches_consumed = 0
        self._reshuffles = 0
        self._queue_depth = 0
        self._consumer_wait_ms = 0.0

        self._prometheus_started = False
        self._prometheus_counters = None

    def enable_prometheus(self, host: str, port: int) -> bool:
        try:
            from prometheus_client import Counter, Gauge, start_http_server
        except ImportError:
            return False

        if self._prometheus_started:
            return True

        start_http_server(port, addr=host)
        self._prometheus_started = True
        self._prometheus_counters = {
            "images": Counter("bbtxt_images_decoded_total", "Images decoded and augmented"),
            "produced": Counter("bbtxt_batches_produced_total", "Batches filled by producers"),
            "consumed": Counter("bbtxt_batches_consumed_total", "Batches handed to the consumer"),
            "queue_depth": Gauge("bbtxt_queue_depth", "Ready batches waiting for the consumer"),
            "wait_ms": Gauge("bbtxt_consumer_wait_ms", "Last consumer wait for a batch in milliseconds"),
        }
        return True

    def mark_image(self) -> None:
        with self._lock:
            self._images_decoded += 1
            if self._prometheus_counters:
                self._prometheus_counters["images"].inc()

    def mark_produced(self) -> None:
        with self._lock:
            self._batches_produced += 1
            if self._prometheus_counters:
                self._prometheus_counters["produced"].inc()

    def mark_consumed(self, wait_ms: float) -> None:
        with self._lock:
            self._batches_consumed += 1
            self._consumer_wait_ms = max(0.0, float(wait_ms))
            if self._prometheus_counters:
                self._prometheus_counters["consumed"].inc()
                self._prometheus_counters["wait_ms"].set(self._consumer_wait_ms)

    def set_reshuffles(self, count: int) -> None:
        with self._lock:
            self._reshuffles = max(self._reshuffles, count)

    def set_queue_depth(self, depth: int) -> None:
        with self._lock:
            self._queue_depth = depth
            if self._prometheus_counters:
                self._prometheus_counters["queue_depth"].set(depth)

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            elapsed = max(1e-6, time.monotonic() - self._start)
            return MetricsSnapshot(
                images_per_second=self._images_decoded / elapsed,
                batches_per_second=self._batches_produced / elapsed,
                images_decoded=self._images_decoded,
                batches_produced=self._batches_produced,
                batches_consumed=self._batches_consumed,
                reshuffles=self._reshuffles,
                queue_depth=self._queue_depth,
                consumer_wait_ms=self._consumer_wait_ms,
            )
