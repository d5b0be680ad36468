from __future__ import annotations

import hashlib

import numpy as np

from bbtxt.augment.engine import PIXEL_MEAN, PIXEL_SCALE
from bbtxt.types import SENTINEL_LABEL


def _color_for_label(label: int) -> tuple[int, int, int]:
    # Stable per-class color across runs.
    digest = hashlib.sha1(str(label).encode("utf-8")).digest()
    b = 50 + (digest[0] % 180)
    g = 50 + (digest[1] % 180)
    r = 50 + (digest[2] % 180)
    return int(b), int(g), int(r)


def denormalize(planar: np.ndarray) -> np.ndarray:
    """Planar 3xHxW float32 back to an interleaved HxWx3 uint8 image."""
    pixels = planar * PIXEL_SCALE + PIXEL_MEAN
    return np.ascontiguousarray(np.clip(pixels, 0, 255).astype(np.uint8).transpose(1, 2, 0))


def draw_label_rows(image: np.ndarray, rows: np.ndarray) -> np.ndarray:
    import cv2

    for row in rows:
        label = int(row[0])
        if label == SENTINEL_LABEL:
            break
        color = _color_for_label(label)
        x1, y1, x2, y2 = (int(round(float(v))) for v in row[1:])
        cv2.rectangle(image, (x1, y1), (x2, y2), color, 1)
        cv2.putText(
            image,
            str(label),
            (x1, max(10, y1 - 4)),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.4,
            color,
            1,
            cv2.LINE_AA,
        )
    return image
