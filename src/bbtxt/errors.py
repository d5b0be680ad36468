class BBTXTError(RuntimeError):
    """Base class for data loading failures."""


class FormatError(BBTXTError):
    """Raised when an annotation line does not follow the 7-field layout."""


class NotFoundError(BBTXTError, FileNotFoundError):
    """Raised when the annotation file or a referenced image is missing."""


class EmptyDatasetError(BBTXTError):
    """Raised when an annotation file yields zero image records."""


class DecodeError(BBTXTError):
    """Raised when an image file cannot be decoded."""


class ShapeError(BBTXTError):
    """Raised when an image or buffer does not have the configured shape."""


class ConfigError(BBTXTError, ValueError):
    """Raised when loader configuration values are out of range."""


class PipelineClosed(BBTXTError):
    """Raised on the consumer side once the prefetch pipeline is stopped."""
