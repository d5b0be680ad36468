"""BBTXT annotation loading, crop augmentation and threaded batch prefetch."""

__version__ = "0.1.0"
