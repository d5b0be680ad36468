from __future__ import annotations

import queue
import threading
import unittest

from bbtxt.pipeline.batch_queue import BatchQueue, QueueClosed


class BatchQueueTests(unittest.TestCase):
    def test_fifo_order(self) -> None:
        batches = BatchQueue[int](maxsize=3)

        for item in (1, 2, 3):
            self.assertTrue(batches.put(item))

        self.assertTrue(batches.full())
        self.assertEqual([batches.get(timeout=0.1) for _ in range(3)], [1, 2, 3])

    def test_put_on_full_queue_gives_up_when_stopped(self) -> None:
        batches = BatchQueue[int](maxsize=1)
        batches.put(1)
        stop = threading.Event()
        result: list[bool] = []

        worker = threading.Thread(target=lambda: result.append(batches.put(2, stop)))
        worker.start()
        stop.set()
        worker.join(timeout=2)

        self.assertFalse(worker.is_alive())
        self.assertEqual(result, [False])
        self.assertEqual(batches.qsize(), 1)

    def test_blocked_put_resumes_when_space_frees(self) -> None:
        batches = BatchQueue[int](maxsize=1)
        batches.put(1)
        worker = threading.Thread(target=batches.put, args=(2,))
        worker.start()

        self.assertEqual(batches.get(timeout=1), 1)
        worker.join(timeout=2)

        self.assertEqual(batches.get(timeout=1), 2)

    def test_closed_queue_drains_then_raises(self) -> None:
        batches = BatchQueue[int](maxsize=2)
        batches.put(1)
        batches.close()

        self.assertFalse(batches.put(2))
        self.assertEqual(batches.get(timeout=0.1), 1)
        with self.assertRaises(QueueClosed):
            batches.get(timeout=0.1)

    def test_close_wakes_blocked_consumer(self) -> None:
        batches = BatchQueue[int](maxsize=1)
        raised: list[BaseException] = []

        def consume() -> None:
            try:
                batches.get()
            except QueueClosed as exc:
                raised.append(exc)

        worker = threading.Thread(target=consume)
        worker.start()
        batches.close()
        worker.join(timeout=2)

        self.assertFalse(worker.is_alive())
        self.assertEqual(len(raised), 1)

    def test_get_times_out_when_empty(self) -> None:
        batches = BatchQueue[int](maxsize=1)
        with self.assertRaises(queue.Empty):
            batches.get(timeout=0.05)


if __name__ == "__main__":
    unittest.main()
