from __future__ import annotations

import logging
import threading

import numpy as np

from bbtxt.dataset.annotations import AnnotationStore
from bbtxt.types import ImageRecord


class DatasetCursor:
    """Position into an AnnotationStore that wraps and reshuffles per epoch.

    Safe to share between producer threads: records are handed out under a
    lock, and the shuffle only happens while that lock is held.
    """

    def __init__(
        self,
        store: AnnotationStore,
        shuffle: bool = False,
        rng: np.random.Generator | None = None,
    ) -> None:
        self._store = store
        self._shuffle = shuffle
        self._rng = rng if rng is not None else np.random.default_rng()
        self._lock = threading.Lock()
        self._logger = logging.getLogger("bbtxt.cursor")
        self.position = 0
        self.epoch = 0
        self.reshuffles = 0

        if self._shuffle:
            self._store.shuffle(self._rng)

    def take(self, count: int) -> list[ImageRecord]:
        with self._lock:
            taken: list[ImageRecord] = []
            for _ in range(count):
                taken.append(self._store[self.position])
                self._advance()
            return taken

    def _advance(self) -> None:
        self.position += 1
        if self.position < len(self._store):
            return
        # Restart from the beginning of the (re-shuffled) record list.
        if self._shuffle:
            self._store.shuffle(self._rng)
            self.reshuffles += 1
        self.position = 0
        self.epoch += 1
        self._logger.debug("cursor wrapped epoch=%d reshuffles=%d", self.epoch, self.reshuffles)
