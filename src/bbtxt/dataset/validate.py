from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from bbtxt.dataset.annotations import parse_annotation_file
from bbtxt.errors import BBTXTError
from bbtxt.types import MAX_BOXES


@dataclass
class ValidationIssue:
    severity: str
    code: str
    message: str
    image_path: str | None = None


def validate_annotation_file(
    source: Path,
    max_boxes: int = MAX_BOXES,
    image_root: Path | None = None,
) -> dict[str, Any]:
    issues: list[ValidationIssue] = []
    counts = {
        "images": 0,
        "boxes": 0,
        "background_images": 0,
        "full_images": 0,
        "dropped_boxes": 0,
        "repeated_filenames": 0,
        "degenerate_boxes": 0,
        "negative_coordinates": 0,
    }

    try:
        store = parse_annotation_file(source, max_boxes=max_boxes, image_root=image_root)
    except BBTXTError as exc:
        issues.append(
            ValidationIssue(
                severity="error",
                code=type(exc).__name__,
                message=str(exc),
            )
        )
        return {
            "status": "fail",
            "source": str(source),
            "counts": counts,
            "issues": [asdict(issue) for issue in issues],
        }

    counts["images"] = len(store)
    counts["boxes"] = store.num_boxes
    counts["dropped_boxes"] = store.dropped_boxes
    counts["repeated_filenames"] = store.repeated_filenames

    if store.dropped_boxes:
        issues.append(
            ValidationIssue(
                severity="warning",
                code="dropped_boxes",
                message=f"{store.dropped_boxes} boxes exceed max_boxes={max_boxes} and were dropped",
            )
        )
    if store.repeated_filenames:
        issues.append(
            ValidationIssue(
                severity="warning",
                code="non_contiguous",
                message="Some filenames appear in more than one run of lines",
            )
        )

    for record in store:
        boxes = record.real_boxes()
        if not boxes:
            counts["background_images"] += 1
            continue
        if len(boxes) == record.capacity:
            counts["full_images"] += 1
        for box in boxes:
            if box.width <= 0 or box.height <= 0:
                counts["degenerate_boxes"] += 1
                issues.append(
                    ValidationIssue(
                        severity="error",
                        code="degenerate_box",
                        message=f"Box with non-positive size: {box.as_row()}",
                        image_path=record.path,
                    )
                )
            if min(box.xmin, box.ymin) < 0:
                counts["negative_coordinates"] += 1
                issues.append(
                    ValidationIssue(
                        severity="warning",
                        code="negative_coordinate",
                        message=f"Box starts outside the image: {box.as_row()}",
                        image_path=record.path,
                    )
                )

    status = "fail" if any(issue.severity == "error" for issue in issues) else "pass"
    return {
        "status": status,
        "source": str(source),
        "counts": counts,
        "issues": [asdict(issue) for issue in issues],
    }
