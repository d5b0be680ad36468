from __future__ import annotations

from bbtxt.config.models import LoaderConfig
from bbtxt.io.decode import ImageDecoder
from bbtxt.monitoring.metrics import PipelineMetrics
from bbtxt.pipeline.base import BatchSource


def create_batch_source(
    name: str,
    config: LoaderConfig,
    decoder: ImageDecoder | None = None,
    metrics: PipelineMetrics | None = None,
) -> BatchSource:
    source = name.lower().strip()

    if source in {"bbtxt", "bbtxt-data"}:
        from bbtxt.pipeline.assembler import BatchAssembler

        return BatchAssembler.from_config(config, decoder=decoder, metrics=metrics)

    raise ValueError(f"Unknown batch source: {name}")
