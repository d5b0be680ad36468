from bbtxt.augment.engine import AugmentationEngine, CropWindow, normalize

__all__ = ["AugmentationEngine", "CropWindow", "normalize"]
