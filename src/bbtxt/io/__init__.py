from bbtxt.io.decode import ImageDecoder, OpenCVImageDecoder

__all__ = ["ImageDecoder", "OpenCVImageDecoder"]
