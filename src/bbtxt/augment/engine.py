from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import cv2
import numpy as np

from bbtxt.errors import ShapeError
from bbtxt.types import BoundingBox

PIXEL_MEAN = 128.0
PIXEL_SCALE = 128.0


@dataclass
class CropWindow:
    """Crop rectangle in source image coordinates; may extend past the image."""

    x: int
    y: int
    width: int
    height: int
    box_index: int

    def contains(self, box: BoundingBox) -> bool:
        return (
            self.x <= box.xmin
            and self.y <= box.ymin
            and box.xmax <= self.x + self.width
            and box.ymax <= self.y + self.height
        )


def count_real_boxes(boxes: list[BoundingBox]) -> int:
    for i, box in enumerate(boxes):
        if box.is_sentinel:
            return i
    return len(boxes)


def normalize(image: np.ndarray, height: int, width: int) -> np.ndarray:
    """Interleaved HxWx3 uint8 -> planar 3xHxW float32 with (v - 128) / 128."""
    if image.shape[0] != height or image.shape[1] != width:
        raise ShapeError(
            f"Wrong crop size {image.shape[1]}x{image.shape[0]}, network expects {width}x{height}"
        )
    planar = np.ascontiguousarray(image.transpose(2, 0, 1), dtype=np.float32)
    return (planar - PIXEL_MEAN) / PIXEL_SCALE


class AugmentationEngine:
    """Crops around one randomly chosen box so it ends up at the reference size.

    The crop origin is drawn so the chosen box lies fully inside the window.
    Parts of the window outside the source image are filled by edge
    replication. All real boxes are remapped into output pixel coordinates
    and left unclamped.
    """

    def __init__(
        self,
        width: int,
        height: int,
        reference_size: int,
        mirror_probability: float = 0.0,
    ) -> None:
        self.width = width
        self.height = height
        self.reference_size = reference_size
        self.mirror_probability = mirror_probability
        self._logger = logging.getLogger("bbtxt.augment")

    def crop_window(self, boxes: list[BoundingBox], rng: np.random.Generator) -> CropWindow:
        num_boxes = count_real_boxes(boxes)
        box_index = int(rng.integers(0, num_boxes))
        box = boxes[box_index]

        size = max(box.width, box.height)
        crop_w = int(self.width / self.reference_size * size)
        crop_h = int(self.height / self.reference_size * size)

        left, top = math.floor(box.xmin), math.floor(box.ymin)
        right, bottom = math.ceil(box.xmax), math.ceil(box.ymax)
        need_w = max(1, right - left)
        need_h = max(1, bottom - top)
        if crop_w < need_w or crop_h < need_h:
            scale = max(need_w / self.width, need_h / self.height)
            enlarged_w = max(need_w, math.ceil(self.width * scale))
            enlarged_h = max(need_h, math.ceil(self.height * scale))
            self._logger.debug(
                "crop %dx%d smaller than box %dx%d; enlarged to %dx%d",
                crop_w,
                crop_h,
                need_w,
                need_h,
                enlarged_w,
                enlarged_h,
            )
            crop_w, crop_h = enlarged_w, enlarged_h

        crop_x = int(rng.integers(right - crop_w, left + 1))
        crop_y = int(rng.integers(bottom - crop_h, top + 1))
        return CropWindow(crop_x, crop_y, crop_w, crop_h, box_index)

    @staticmethod
    def crop(image: np.ndarray, window: CropWindow) -> np.ndarray:
        rows, cols = image.shape[:2]
        border_left = max(0, -window.x)
        border_top = max(0, -window.y)
        border_right = max(0, window.x + window.width - cols)
        border_bottom = max(0, window.y + window.height - rows)

        padded = image
        if border_left or border_top or border_right or border_bottom:
            padded = cv2.copyMakeBorder(
                image,
                border_top,
                border_bottom,
                border_left,
                border_right,
                cv2.BORDER_REPLICATE,
            )

        x0 = window.x + border_left
        y0 = window.y + border_top
        return padded[y0 : y0 + window.height, x0 : x0 + window.width]

    def _remap(self, boxes: list[BoundingBox], window: CropWindow) -> None:
        x_scaling = self.width / window.width
        y_scaling = self.height / window.height
        for box in boxes[: count_real_boxes(boxes)]:
            box.xmin = (box.xmin - window.x) * x_scaling
            box.ymin = (box.ymin - window.y) * y_scaling
            box.xmax = (box.xmax - window.x) * x_scaling
            box.ymax = (box.ymax - window.y) * y_scaling

    def _mirror(self, image: np.ndarray, boxes: list[BoundingBox]) -> np.ndarray:
        for box in boxes[: count_real_boxes(boxes)]:
            box.xmin, box.xmax = self.width - box.xmax, self.width - box.xmin
        return cv2.flip(image, 1)

    def transform(
        self,
        image: np.ndarray,
        boxes: list[BoundingBox],
        rng: np.random.Generator,
    ) -> tuple[np.ndarray, CropWindow | None]:
        """Crop/resize (and maybe mirror) an image, mutating ``boxes`` in place."""
        if image is None or image.ndim != 3 or image.shape[2] != 3:
            shape = None if image is None else image.shape
            raise ShapeError(f"Image must have 3 color channels, got shape {shape}")

        window: CropWindow | None = None
        if not boxes or boxes[0].is_sentinel:
            resized = cv2.resize(image, (self.width, self.height))
        else:
            window = self.crop_window(boxes, rng)
            cropped = self.crop(image, window)
            resized = cv2.resize(cropped, (self.width, self.height))
            self._remap(boxes, window)

        if self.mirror_probability > 0 and rng.random() < self.mirror_probability:
            resized = self._mirror(resized, boxes)

        return resized, window

    def augment(
        self,
        image: np.ndarray,
        boxes: list[BoundingBox],
        rng: np.random.Generator,
    ) -> tuple[np.ndarray, list[BoundingBox]]:
        resized, _ = self.transform(image, boxes, rng)
        return normalize(resized, self.height, self.width), boxes
