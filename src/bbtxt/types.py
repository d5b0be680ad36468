from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

SENTINEL_LABEL = -1
MAX_BOXES = 20
LABEL_FIELDS = 5


@dataclass
class BoundingBox:
    """One annotated box in source image pixel coordinates."""

    label: int
    xmin: float
    ymin: float
    xmax: float
    ymax: float

    @classmethod
    def sentinel(cls) -> BoundingBox:
        return cls(SENTINEL_LABEL, 0.0, 0.0, 0.0, 0.0)

    @property
    def is_sentinel(self) -> bool:
        return self.label == SENTINEL_LABEL

    @property
    def width(self) -> float:
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin

    def as_row(self) -> list[float]:
        return [float(self.label), self.xmin, self.ymin, self.xmax, self.ymax]


@dataclass
class ImageRecord:
    """Image path plus a fixed-capacity box list terminated by a sentinel."""

    path: str
    boxes: list[BoundingBox] = field(default_factory=list)
    capacity: int = MAX_BOXES

    @property
    def num_boxes(self) -> int:
        for i, box in enumerate(self.boxes):
            if box.is_sentinel:
                return i
        return len(self.boxes)

    def real_boxes(self) -> list[BoundingBox]:
        return self.boxes[: self.num_boxes]

    def copy_boxes(self) -> list[BoundingBox]:
        return [
            BoundingBox(box.label, box.xmin, box.ymin, box.xmax, box.ymax)
            for box in self.boxes
        ]

    def label_rows(self) -> np.ndarray:
        return label_rows(self.boxes, self.capacity)


def label_rows(boxes: list[BoundingBox], capacity: int) -> np.ndarray:
    """Pack boxes into a [capacity, 5] array; rows past the last real box get label -1."""
    rows = np.zeros((capacity, LABEL_FIELDS), dtype=np.float32)
    rows[:, 0] = SENTINEL_LABEL
    for i, box in enumerate(boxes[:capacity]):
        if box.is_sentinel:
            break
        rows[i] = box.as_row()
    return rows


@dataclass
class OutputShapes:
    images: tuple[int, int, int, int]
    labels: tuple[int, int, int]


@dataclass
class Batch:
    """Reusable image/label buffers for one batch."""

    images: np.ndarray
    labels: np.ndarray
    index: int = 0

    @classmethod
    def allocate(cls, shapes: OutputShapes, index: int = 0) -> Batch:
        return cls(
            images=np.zeros(shapes.images, dtype=np.float32),
            labels=np.zeros(shapes.labels, dtype=np.float32),
            index=index,
        )

    @property
    def size(self) -> int:
        return int(self.images.shape[0])
