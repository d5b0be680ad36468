from __future__ import annotations

import logging

import numpy as np

from bbtxt.augment.engine import AugmentationEngine
from bbtxt.config.models import LoaderConfig
from bbtxt.dataset.annotations import AnnotationStore
from bbtxt.dataset.cursor import DatasetCursor
from bbtxt.errors import ConfigError, EmptyDatasetError, ShapeError
from bbtxt.io.decode import ImageDecoder, OpenCVImageDecoder
from bbtxt.monitoring.metrics import PipelineMetrics
from bbtxt.pipeline.base import BatchSource
from bbtxt.types import Batch, OutputShapes, label_rows


class BatchAssembler(BatchSource):
    """Fills image/label batches from BBTXT records, one cursor step per image."""

    def __init__(
        self,
        store: AnnotationStore,
        decoder: ImageDecoder,
        engine: AugmentationEngine,
        batch_size: int,
        shuffle: bool = False,
        cursor: DatasetCursor | None = None,
        seed: int | None = None,
        metrics: PipelineMetrics | None = None,
    ) -> None:
        if not len(store):
            raise EmptyDatasetError("Annotation store holds no images")
        self.store = store
        self.decoder = decoder
        self.engine = engine
        self.batch_size = batch_size
        self.cursor = cursor or DatasetCursor(
            store,
            shuffle=shuffle,
            rng=np.random.default_rng(seed),
        )
        self.metrics = metrics
        self.max_boxes = store[0].capacity
        self._logger = logging.getLogger("bbtxt.assembler")

    @classmethod
    def from_config(
        cls,
        config: LoaderConfig,
        decoder: ImageDecoder | None = None,
        metrics: PipelineMetrics | None = None,
    ) -> BatchAssembler:
        data = config.data
        if not data.source:
            raise ConfigError("Missing annotation source. Provide --source or data.source in config.")
        store = AnnotationStore.from_file(
            data.source,
            max_boxes=data.max_boxes_per_image,
            image_root=data.image_root,
        )
        engine = AugmentationEngine(
            width=data.width,
            height=data.height,
            reference_size=data.reference_size,
            mirror_probability=data.mirror_probability,
        )
        return cls(
            store=store,
            decoder=decoder or OpenCVImageDecoder(),
            engine=engine,
            batch_size=data.batch_size,
            shuffle=data.shuffle,
            seed=data.seed,
            metrics=metrics,
        )

    def setup(self) -> OutputShapes:
        return OutputShapes(
            images=(self.batch_size, 3, self.engine.height, self.engine.width),
            labels=(self.batch_size, self.max_boxes, 5),
        )

    def name(self) -> str:
        return "bbtxt"

    def fill_batch(self, batch: Batch, rng: np.random.Generator) -> None:
        shapes = self.setup()
        if batch.images.shape != shapes.images or batch.labels.shape != shapes.labels:
            raise ShapeError(
                f"Batch buffers {batch.images.shape}/{batch.labels.shape} do not match "
                f"{shapes.images}/{shapes.labels}"
            )

        records = self.cursor.take(self.batch_size)
        for slot, record in enumerate(records):
            image = self.decoder.decode(record.path)
            # Augmentation rewrites coordinates, so work on a copy of the boxes.
            boxes = record.copy_boxes()
            pixels, boxes = self.engine.augment(image, boxes, rng)
            batch.images[slot] = pixels
            batch.labels[slot] = label_rows(boxes, self.max_boxes)
            if self.metrics is not None:
                self.metrics.mark_image()

        if self.metrics is not None:
            self.metrics.set_reshuffles(self.cursor.reshuffles)
