from __future__ import annotations

from abc import ABC, abstractmethod

import cv2
import numpy as np

from bbtxt.errors import DecodeError


class ImageDecoder(ABC):
    @abstractmethod
    def decode(self, path: str) -> np.ndarray:
        """Return an HxWx3 uint8 image or raise DecodeError."""

    @abstractmethod
    def name(self) -> str:
        """Stable decoder name."""


class OpenCVImageDecoder(ImageDecoder):
    def decode(self, path: str) -> np.ndarray:
        # Read bytes through numpy so non-UTF-8 filenames reach the filesystem unchanged.
        try:
            raw = np.fromfile(path, dtype=np.uint8)
        except OSError as exc:
            raise DecodeError(f"Could not open {path!r}: {exc}") from exc
        image = cv2.imdecode(raw, cv2.IMREAD_COLOR) if raw.size else None
        if image is None:
            raise DecodeError(f"Could not open {path!r}")
        return image

    def name(self) -> str:
        return "opencv"
