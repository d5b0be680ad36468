from __future__ import annotations

import logging
import math
from pathlib import Path

import numpy as np

from bbtxt.dataset.shuffle import shuffle_records
from bbtxt.errors import EmptyDatasetError, FormatError, NotFoundError
from bbtxt.types import MAX_BOXES, SENTINEL_LABEL, BoundingBox, ImageRecord

_FIELD_COUNT = 7

_logger = logging.getLogger("bbtxt.annotations")


def _parse_line(line: str, source: Path, line_no: int) -> tuple[str, int, BoundingBox] | None:
    parts = line.split()
    if not parts:
        return None
    if len(parts) != _FIELD_COUNT:
        raise FormatError(
            f"{source}:{line_no}: expected {_FIELD_COUNT} fields, got {len(parts)}: {line.strip()!r}"
        )
    filename = parts[0]
    try:
        values = [float(part) for part in parts[1:]]
    except ValueError as exc:
        raise FormatError(f"{source}:{line_no}: non-numeric field in {line.strip()!r}") from exc
    if not all(math.isfinite(value) for value in values):
        raise FormatError(f"{source}:{line_no}: non-finite field in {line.strip()!r}")
    label = int(values[0])
    xmin, ymin, xmax, ymax = values[2:]
    return filename, label, BoundingBox(label, xmin, ymin, xmax, ymax)


def _resolve_image(filename: str, image_root: Path | None) -> str:
    path = Path(filename)
    if image_root is not None and not path.is_absolute():
        path = image_root / path
    if not path.is_file():
        raise NotFoundError(f"Image file '{path}' not found")
    return str(path)


def _finalize(record: ImageRecord) -> None:
    if len(record.boxes) < record.capacity:
        record.boxes.append(BoundingBox.sentinel())


class AnnotationStore:
    """Ordered image records parsed from a BBTXT file."""

    def __init__(self, records: list[ImageRecord], source: str = "") -> None:
        self.records = records
        self.source = source
        self.line_count = 0
        self.dropped_boxes = 0
        self.repeated_filenames = 0

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        max_boxes: int = MAX_BOXES,
        image_root: str | Path | None = None,
    ) -> AnnotationStore:
        return parse_annotation_file(path, max_boxes=max_boxes, image_root=image_root)

    def __len__(self) -> int:
        return len(self.records)

    def __getitem__(self, index: int) -> ImageRecord:
        return self.records[index]

    def __iter__(self):
        return iter(self.records)

    @property
    def num_boxes(self) -> int:
        return sum(record.num_boxes for record in self.records)

    def shuffle(self, rng: np.random.Generator) -> None:
        shuffle_records(self.records, rng)


def parse_annotation_file(
    path: str | Path,
    max_boxes: int = MAX_BOXES,
    image_root: str | Path | None = None,
) -> AnnotationStore:
    source = Path(path)
    root = Path(image_root) if image_root else None

    try:
        handle = source.open("r", encoding="utf-8", errors="surrogateescape")
    except OSError as exc:
        raise NotFoundError(f"BBTXT file '{source}' could not be opened") from exc

    store = AnnotationStore([], source=str(source))
    seen: set[str] = set()
    current: ImageRecord | None = None
    current_filename: str | None = None

    with handle:
        for line_no, line in enumerate(handle, start=1):
            parsed = _parse_line(line, source, line_no)
            if parsed is None:
                continue
            store.line_count += 1
            filename, label, box = parsed

            if filename != current_filename:
                if current is not None:
                    _finalize(current)
                if filename in seen:
                    store.repeated_filenames += 1
                    _logger.warning(
                        "filename %s appears in a non-contiguous run; starting a new record",
                        filename,
                    )
                seen.add(filename)
                current = ImageRecord(
                    path=_resolve_image(filename, root),
                    capacity=max_boxes,
                )
                store.records.append(current)
                current_filename = filename

            # A -1 label only registers the image as a background sample.
            if label == SENTINEL_LABEL:
                continue

            if len(current.boxes) < max_boxes:
                current.boxes.append(box)
            else:
                store.dropped_boxes += 1
                _logger.warning(
                    "skipping box for %s: max number of boxes per image (%d) reached",
                    filename,
                    max_boxes,
                )

    if current is not None:
        _finalize(current)

    if not store.records:
        raise EmptyDatasetError(f"BBTXT file '{source}' contains no images")

    _logger.info(
        "There are %d images in the dataset (boxes=%d dropped=%d)",
        len(store.records),
        store.num_boxes,
        store.dropped_boxes,
    )
    return store
