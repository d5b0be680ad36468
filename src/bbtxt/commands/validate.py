from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from bbtxt.dataset.validate import validate_annotation_file
from bbtxt.utils.config_io import write_json


def run_validate(args: Any, repo_root: Path) -> int:
    try:
        source = Path(args.source)
        if not source.is_absolute():
            source = (repo_root / source).resolve()
        image_root = Path(args.image_root) if args.image_root else None

        report = validate_annotation_file(source, max_boxes=int(args.max_boxes), image_root=image_root)

        payload: dict[str, Any] = {
            "status": report["status"],
            "counts": report["counts"],
            "issue_count": len(report["issues"]),
        }
        if args.report:
            report_path = Path(args.report)
            if not report_path.is_absolute():
                report_path = (repo_root / report_path).resolve()
            write_json(report_path, report)
            payload["report_path"] = str(report_path)

        print(json.dumps(payload, ensure_ascii=True, indent=2))
        return 0 if report["status"] == "pass" else 1
    except Exception as exc:
        print(f"validate command failed: {exc}", file=sys.stderr)
        return 2
