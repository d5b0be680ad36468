from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

import cv2
import numpy as np

from bbtxt.augment.engine import AugmentationEngine
from bbtxt.config.models import DataConfig, LoaderConfig
from bbtxt.dataset.annotations import AnnotationStore
from bbtxt.errors import ConfigError, DecodeError, EmptyDatasetError, ShapeError
from bbtxt.io.decode import ImageDecoder
from bbtxt.pipeline.assembler import BatchAssembler
from bbtxt.pipeline.factory import create_batch_source
from bbtxt.types import Batch, BoundingBox, ImageRecord


class FakeDecoder(ImageDecoder):
    """Returns a constant image whose value is the integer in the path."""

    def __init__(self, size: tuple[int, int] = (40, 40)) -> None:
        self.size = size
        self.calls: list[str] = []

    def decode(self, path: str) -> np.ndarray:
        self.calls.append(path)
        height, width = self.size
        return np.full((height, width, 3), int(path), dtype=np.uint8)

    def name(self) -> str:
        return "fake"


class FailingDecoder(ImageDecoder):
    def decode(self, path: str) -> np.ndarray:
        raise DecodeError(f"Could not open {path}")

    def name(self) -> str:
        return "failing"


def _store() -> AnnotationStore:
    return AnnotationStore(
        [
            ImageRecord("10", [BoundingBox(1, 5.0, 5.0, 15.0, 15.0), BoundingBox.sentinel()]),
            ImageRecord("20", [BoundingBox.sentinel()]),
            ImageRecord(
                "30",
                [
                    BoundingBox(2, 0.0, 0.0, 8.0, 8.0),
                    BoundingBox(3, 20.0, 20.0, 30.0, 36.0),
                    BoundingBox.sentinel(),
                ],
            ),
        ]
    )


class BatchAssemblerTests(unittest.TestCase):
    def _assembler(self, decoder: ImageDecoder | None = None, batch_size: int = 2) -> BatchAssembler:
        return BatchAssembler(
            store=_store(),
            decoder=decoder or FakeDecoder(),
            engine=AugmentationEngine(width=16, height=12, reference_size=8),
            batch_size=batch_size,
            shuffle=False,
        )

    def test_setup_reports_output_shapes(self) -> None:
        shapes = self._assembler(batch_size=4).setup()
        self.assertEqual(shapes.images, (4, 3, 12, 16))
        self.assertEqual(shapes.labels, (4, 20, 5))

    def test_fill_batch_writes_pixels_and_labels(self) -> None:
        assembler = self._assembler()
        batch = assembler.new_batch()

        assembler.fill_batch(batch, np.random.default_rng(0))

        self.assertTrue(np.allclose(batch.images[0], (10 - 128) / 128))
        self.assertTrue(np.allclose(batch.images[1], (20 - 128) / 128))
        self.assertEqual(batch.labels[0, 0, 0], 1.0)
        self.assertTrue((batch.labels[0, 1:, 0] == -1).all())
        self.assertTrue((batch.labels[1, :, 0] == -1).all())
        self.assertEqual(assembler.cursor.position, 2)

    def test_cursor_wraps_between_batches(self) -> None:
        decoder = FakeDecoder()
        assembler = self._assembler(decoder=decoder)
        batch = assembler.new_batch()
        rng = np.random.default_rng(0)

        assembler.fill_batch(batch, rng)
        assembler.fill_batch(batch, rng)

        self.assertEqual(decoder.calls, ["10", "20", "30", "10"])
        self.assertEqual(assembler.cursor.epoch, 1)
        self.assertEqual(batch.labels[0, 0, 0], 2.0)
        self.assertEqual(batch.labels[0, 1, 0], 3.0)
        self.assertEqual(batch.labels[0, 2, 0], -1.0)

    def test_stored_boxes_are_not_mutated(self) -> None:
        assembler = self._assembler(batch_size=3)
        before = [[box.as_row() for box in record.boxes] for record in assembler.store]

        assembler.fill_batch(assembler.new_batch(), np.random.default_rng(1))

        after = [[box.as_row() for box in record.boxes] for record in assembler.store]
        self.assertEqual(before, after)

    def test_decode_failure_propagates(self) -> None:
        assembler = self._assembler(decoder=FailingDecoder())
        with self.assertRaises(DecodeError):
            assembler.fill_batch(assembler.new_batch(), np.random.default_rng(0))

    def test_mismatched_buffers_raise_shape_error(self) -> None:
        assembler = self._assembler()
        batch = Batch(
            images=np.zeros((2, 3, 8, 8), dtype=np.float32),
            labels=np.zeros((2, 20, 5), dtype=np.float32),
        )
        with self.assertRaises(ShapeError):
            assembler.fill_batch(batch, np.random.default_rng(0))

    def test_empty_store_raises_empty_dataset(self) -> None:
        with self.assertRaises(EmptyDatasetError):
            BatchAssembler(
                store=AnnotationStore([]),
                decoder=FakeDecoder(),
                engine=AugmentationEngine(width=16, height=12, reference_size=8),
                batch_size=2,
            )


class BatchSourceFactoryTests(unittest.TestCase):
    def test_builds_assembler_from_config_with_real_images(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            image = np.random.default_rng(0).integers(0, 256, size=(60, 80, 3), dtype=np.uint8)
            cv2.imwrite(str(root / "a.png"), image)
            cv2.imwrite(str(root / "b.png"), image)
            source = root / "train.bbtxt"
            source.write_text(
                "a.png 1 1.0 10 10 30 40\n"
                "b.png 0 1.0 40 5 70 25\n",
                encoding="utf-8",
            )
            config = LoaderConfig(
                data=DataConfig(
                    source=str(source),
                    image_root=str(root),
                    height=32,
                    width=48,
                    reference_size=16,
                    batch_size=2,
                    shuffle=True,
                    seed=3,
                )
            )

            assembler = create_batch_source("bbtxt", config)
            batch = assembler.new_batch()
            assembler.fill_batch(batch, np.random.default_rng(0))

            self.assertIsInstance(assembler, BatchAssembler)
            self.assertEqual(batch.images.shape, (2, 3, 32, 48))
            self.assertTrue((batch.images >= -1.0).all())
            self.assertTrue((batch.images < 1.0).all())
            self.assertEqual(sorted(batch.labels[:, 0, 0].tolist()), [0.0, 1.0])

    def test_unknown_source_name(self) -> None:
        with self.assertRaises(ValueError):
            create_batch_source("lmdb", LoaderConfig())

    def test_missing_source_path(self) -> None:
        with self.assertRaises(ConfigError):
            create_batch_source("bbtxt", LoaderConfig())


if __name__ == "__main__":
    unittest.main()
