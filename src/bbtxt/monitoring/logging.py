from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

PRODUCER_THREAD_PREFIX = "bbtxt-producer-"


def producer_index(thread_name: str) -> int | None:
    """Index of a prefetch producer thread, None for any other thread."""
    if not thread_name.startswith(PRODUCER_THREAD_PREFIX):
        return None
    suffix = thread_name[len(PRODUCER_THREAD_PREFIX) :]
    return int(suffix) if suffix.isdigit() else None


class JsonFormatter(logging.Formatter):
    """One JSON object per record, tagged with the run's loader settings.

    ``context`` holds static fields (source, shapes, queue depth) merged into
    every line so interleaved producer logs from several runs stay separable.
    """

    def __init__(self, context: dict[str, Any] | None = None) -> None:
        super().__init__()
        self.context = dict(context or {})

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
        }
        producer = producer_index(record.threadName or "")
        if producer is not None:
            payload["producer"] = producer
        payload.update(self.context)
        payload["message"] = record.getMessage()
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    context: dict[str, Any] | None = None,
) -> None:
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    handler = logging.StreamHandler()
    if json_logs:
        handler.setFormatter(JsonFormatter(context))
    else:
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s %(levelname)s %(name)s [%(threadName)s] - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root.addHandler(handler)
