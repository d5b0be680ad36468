from __future__ import annotations

import threading
import time
import unittest

import numpy as np

from bbtxt.augment.engine import AugmentationEngine
from bbtxt.dataset.annotations import AnnotationStore
from bbtxt.errors import DecodeError, PipelineClosed
from bbtxt.io.decode import ImageDecoder
from bbtxt.monitoring.metrics import PipelineMetrics
from bbtxt.pipeline.assembler import BatchAssembler
from bbtxt.pipeline.prefetch import PrefetchPipeline
from bbtxt.types import BoundingBox, ImageRecord


class ValueDecoder(ImageDecoder):
    def __init__(self, fail_on: str | None = None, delay: float = 0.0) -> None:
        self.fail_on = fail_on
        self.delay = delay
        self.threads: set[str] = set()
        self._lock = threading.Lock()

    def decode(self, path: str) -> np.ndarray:
        with self._lock:
            self.threads.add(threading.current_thread().name)
        if self.delay:
            time.sleep(self.delay)
        if path == self.fail_on:
            raise DecodeError(f"Could not open {path}")
        return np.full((24, 24, 3), int(path), dtype=np.uint8)

    def name(self) -> str:
        return "value"


def _background_store(count: int) -> AnnotationStore:
    return AnnotationStore(
        [ImageRecord(str(i * 10), [BoundingBox.sentinel()]) for i in range(count)]
    )


def _boxed_store(count: int) -> AnnotationStore:
    return AnnotationStore(
        [
            ImageRecord(str(i), [BoundingBox(i, 2.0 + i, 3.0, 9.0 + i, 12.0), BoundingBox.sentinel()])
            for i in range(count)
        ]
    )


def _assembler(store: AnnotationStore, decoder: ImageDecoder, batch_size: int = 2, **kwargs) -> BatchAssembler:
    return BatchAssembler(
        store=store,
        decoder=decoder,
        engine=AugmentationEngine(width=8, height=8, reference_size=4),
        batch_size=batch_size,
        **kwargs,
    )


def _pixel_value(planar: np.ndarray) -> int:
    return int(round(float(planar[0, 0, 0]) * 128 + 128))


class PrefetchPipelineTests(unittest.TestCase):
    def test_single_producer_delivers_in_cursor_order(self) -> None:
        source = _assembler(_background_store(5), ValueDecoder())
        seen: list[int] = []

        with PrefetchPipeline(source, queue_depth=2, producer_count=1, seed=0) as pipeline:
            for batch in pipeline.batches(5):
                seen.extend(_pixel_value(image) for image in batch.images)

        self.assertEqual(seen, [0, 10, 20, 30, 40] * 2)

    def test_producer_failure_reaches_consumer(self) -> None:
        source = _assembler(_background_store(4), ValueDecoder(fail_on="20"))
        pipeline = PrefetchPipeline(source, queue_depth=2, producer_count=1)
        pipeline.start()
        try:
            with self.assertRaises(DecodeError):
                for _ in range(10):
                    pipeline.release(pipeline.get(timeout=2))
            self.assertFalse(pipeline.running)
        finally:
            pipeline.stop()

    def test_stop_closes_consumer_side(self) -> None:
        source = _assembler(_background_store(3), ValueDecoder())
        pipeline = PrefetchPipeline(source, queue_depth=1, producer_count=2)
        pipeline.start()
        pipeline.release(pipeline.get(timeout=2))
        pipeline.stop()

        with self.assertRaises(PipelineClosed):
            while True:
                pipeline.get(timeout=1)

    def test_get_before_start_raises(self) -> None:
        pipeline = PrefetchPipeline(_assembler(_background_store(1), ValueDecoder()))
        with self.assertRaises(PipelineClosed):
            pipeline.get(timeout=0.1)

    def test_multiple_producers_share_cursor_and_recycle_buffers(self) -> None:
        decoder = ValueDecoder(delay=0.002)
        source = _assembler(_background_store(7), decoder, shuffle=True, seed=1)
        metrics = PipelineMetrics()
        counts: dict[int, int] = {}
        buffer_ids: set[int] = set()

        with PrefetchPipeline(source, queue_depth=2, producer_count=3, seed=5, metrics=metrics) as pipeline:
            for batch in pipeline.batches(21):
                buffer_ids.add(batch.index)
                for image in batch.images:
                    value = _pixel_value(image)
                    counts[value] = counts.get(value, 0) + 1
            pool_size = pipeline.pool_size

        self.assertEqual(sum(counts.values()), 42)
        self.assertTrue(set(counts) <= {i * 10 for i in range(7)})
        self.assertLessEqual(len(buffer_ids), pool_size)
        self.assertEqual(pool_size, 6)
        snapshot = metrics.snapshot()
        self.assertEqual(snapshot.batches_consumed, 21)
        self.assertGreaterEqual(snapshot.batches_produced, 21)
        self.assertGreaterEqual(snapshot.images_decoded, 42)
        self.assertGreaterEqual(snapshot.reshuffles, 6)
        self.assertIs(source.metrics, metrics)

    def test_fixed_seed_reproduces_augmentation(self) -> None:
        def run() -> list[np.ndarray]:
            source = _assembler(_boxed_store(6), ValueDecoder(), shuffle=True, seed=42)
            with PrefetchPipeline(source, queue_depth=2, producer_count=1, seed=7) as pipeline:
                return [batch.labels.copy() for batch in pipeline.batches(4)]

        first = run()
        second = run()
        for a, b in zip(first, second):
            self.assertTrue(np.array_equal(a, b))


if __name__ == "__main__":
    unittest.main()
