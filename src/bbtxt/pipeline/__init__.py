from bbtxt.pipeline.assembler import BatchAssembler
from bbtxt.pipeline.base import BatchSource
from bbtxt.pipeline.batch_queue import BatchQueue, QueueClosed
from bbtxt.pipeline.factory import create_batch_source
from bbtxt.pipeline.prefetch import PrefetchPipeline

__all__ = [
    "BatchAssembler",
    "BatchQueue",
    "BatchSource",
    "PrefetchPipeline",
    "QueueClosed",
    "create_batch_source",
]
