from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Iterator

import numpy as np

from bbtxt.errors import PipelineClosed
from bbtxt.monitoring.logging import PRODUCER_THREAD_PREFIX
from bbtxt.monitoring.metrics import PipelineMetrics
from bbtxt.pipeline.base import BatchSource
from bbtxt.pipeline.batch_queue import BatchQueue, QueueClosed
from bbtxt.types import Batch


class PrefetchPipeline:
    """Fills batches on background threads and hands them out in FIFO order.

    Buffers come from a fixed pool of ``queue_depth + producer_count + 1``
    batches. Producers block when ``queue_depth`` batches are already waiting.
    The consumer must ``release`` each batch it got from ``get`` so the buffer
    can be refilled. A producer failure stops the pipeline and is re-raised on
    the consumer's next ``get``.
    """

    def __init__(
        self,
        source: BatchSource,
        queue_depth: int = 3,
        producer_count: int = 1,
        seed: int | None = None,
        metrics: PipelineMetrics | None = None,
    ) -> None:
        self._source = source
        self._queue_depth = max(1, queue_depth)
        self._producer_count = max(1, producer_count)
        self._seed = seed
        self._metrics = metrics
        self._logger = logging.getLogger("bbtxt.prefetch")

        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._error: BaseException | None = None
        self._threads: list[threading.Thread] = []
        self._free: BatchQueue[Batch] | None = None
        self._ready: BatchQueue[Batch] | None = None

    @property
    def pool_size(self) -> int:
        return self._queue_depth + self._producer_count + 1

    @property
    def running(self) -> bool:
        return bool(self._threads) and not self._stop.is_set()

    def start(self) -> None:
        if self._threads:
            return

        if self._metrics is not None:
            self._source.attach_metrics(self._metrics)
        shapes = self._source.setup()
        self._free = BatchQueue(maxsize=self.pool_size)
        self._ready = BatchQueue(maxsize=self._queue_depth)
        for index in range(self.pool_size):
            self._free.put(Batch.allocate(shapes, index=index))

        # One generator per producer so augmentation draws never cross threads.
        seeds = np.random.SeedSequence(self._seed).spawn(self._producer_count)
        for index, seed_seq in enumerate(seeds):
            thread = threading.Thread(
                target=self._produce,
                args=(np.random.default_rng(seed_seq),),
                name=f"{PRODUCER_THREAD_PREFIX}{index}",
                daemon=True,
            )
            self._threads.append(thread)

        self._logger.info(
            "prefetch started source=%s producers=%d queue_depth=%d pool=%d images=%s labels=%s",
            self._source.name(),
            self._producer_count,
            self._queue_depth,
            self.pool_size,
            shapes.images,
            shapes.labels,
        )
        for thread in self._threads:
            thread.start()

    def _produce(self, rng: np.random.Generator) -> None:
        while not self._stop.is_set():
            try:
                batch = self._free.get(timeout=0.1)
            except queue.Empty:
                continue
            except QueueClosed:
                return

            try:
                self._source.fill_batch(batch, rng)
            except Exception as exc:
                self._fail(exc)
                return

            if not self._ready.put(batch, self._stop):
                return
            if self._metrics is not None:
                self._metrics.mark_produced()
                self._metrics.set_queue_depth(self._ready.qsize())

    def _fail(self, exc: BaseException) -> None:
        self._logger.error(
            "producer %s failed, stopping pipeline: %s",
            threading.current_thread().name,
            exc,
        )
        self._stop.set()
        with self._lock:
            if self._error is None:
                self._error = exc
        self._ready.close()
        self._free.close()

    def get(self, timeout: float | None = None) -> Batch:
        """Next ready batch; raises queue.Empty on timeout, PipelineClosed once stopped."""
        if self._error is not None:
            raise self._error
        if self._ready is None:
            raise PipelineClosed("prefetch pipeline has not been started")

        started = time.monotonic()
        try:
            batch = self._ready.get(timeout=timeout)
        except QueueClosed:
            if self._error is not None:
                raise self._error
            raise PipelineClosed("prefetch pipeline is stopped") from None

        if self._metrics is not None:
            self._metrics.mark_consumed((time.monotonic() - started) * 1000.0)
            self._metrics.set_queue_depth(self._ready.qsize())
        return batch

    def release(self, batch: Batch) -> None:
        if self._free is not None:
            self._free.put(batch)

    def batches(self, count: int | None = None) -> Iterator[Batch]:
        """Yield ``count`` batches (forever when None), releasing each after use."""
        delivered = 0
        while count is None or delivered < count:
            batch = self.get()
            try:
                yield batch
            finally:
                self.release(batch)
            delivered += 1

    def stop(self) -> None:
        self._stop.set()
        if self._ready is not None:
            self._ready.close()
        if self._free is not None:
            self._free.close()
        for thread in self._threads:
            thread.join()
        if self._threads:
            self._logger.info("prefetch stopped producers=%d", len(self._threads))

    def __enter__(self) -> PrefetchPipeline:
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
