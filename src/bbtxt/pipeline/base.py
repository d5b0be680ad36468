from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from bbtxt.monitoring.metrics import PipelineMetrics
from bbtxt.types import Batch, OutputShapes


class BatchSource(ABC):
    metrics: PipelineMetrics | None = None

    @abstractmethod
    def setup(self) -> OutputShapes:
        """Prepare the source and report the batch tensor shapes."""

    @abstractmethod
    def fill_batch(self, batch: Batch, rng: np.random.Generator) -> None:
        """Overwrite every slot of ``batch`` with the next samples."""

    @abstractmethod
    def name(self) -> str:
        """Stable source name."""

    def attach_metrics(self, metrics: PipelineMetrics) -> None:
        self.metrics = metrics

    def new_batch(self, index: int = 0) -> Batch:
        return Batch.allocate(self.setup(), index=index)
