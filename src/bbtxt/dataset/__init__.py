from bbtxt.dataset.annotations import AnnotationStore, parse_annotation_file
from bbtxt.dataset.cursor import DatasetCursor
from bbtxt.dataset.shuffle import shuffle_records

__all__ = [
    "AnnotationStore",
    "DatasetCursor",
    "parse_annotation_file",
    "shuffle_records",
]
