"""
Processing Module - Frame Preprocessing for the Shape Classifier

This module converts camera frames into the model input tensor:
- Non-uniform resize to 224x224
- RGB to luminance with BT.601 weights
- Row-major packing of luminance / 255 as float32
"""

from shapecam.processing.transforms import (
    LUMA_WEIGHTS,
    load_image,
    load_image_from_bytes,
    normalize_frame,
    pack_tensor,
    resize_frame,
    to_luminance,
)

from shapecam.processing.shape_preprocess import (
    SHAPE_INPUT_SIZE,
    ShapePreprocessor,
    ShapePreprocessResult,
)

__all__ = [
    # Low-level transforms
    "LUMA_WEIGHTS",
    "load_image",
    "load_image_from_bytes",
    "normalize_frame",
    "pack_tensor",
    "resize_frame",
    "to_luminance",
    # High-level preprocessor
    "SHAPE_INPUT_SIZE",
    "ShapePreprocessor",
    "ShapePreprocessResult",
]
