"""
Shape Classifier Preprocessing Pipeline

This module provides the ShapePreprocessor class for turning raw camera
frames into the flat luminance tensor the shape classifier expects.

Pipeline:
    1. Resize frame to 224x224 (independent x/y scale, bilinear)
    2. Convert RGB to luminance (0.299 R + 0.587 G + 0.114 B)
    3. Divide by 255 and flatten row-major -> [50176] float32
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from shapecam.errors import FrameConversionError
from shapecam.processing.transforms import (
    LUMA_WEIGHTS,
    PIXEL_SCALE,
    normalize_frame,
    pack_tensor,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

SHAPE_INPUT_SIZE: int = 224
"""Shape classifier input dimension (square)."""


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class ShapePreprocessResult:
    """
    Result container for shape classifier preprocessing.

    Attributes:
        tensor: Packed input tensor [H * W], float32 in [0, 1]
        normalized: Luminance plane [H, W], float32 in [0, 255]
        original_shape: (height, width) of the input frame
    """

    tensor: np.ndarray
    normalized: np.ndarray
    original_shape: Tuple[int, int]


# =============================================================================
# Preprocessor Class
# =============================================================================

class ShapePreprocessor:
    """
    Preprocessor for the grayscale shape classification model.

    Conversion failures are reported by logging and returning None from
    preprocess(), so the caller can skip the frame and wait for the next.

    Attributes:
        target_width: Model input width (default: 224)
        target_height: Model input height (default: 224)
        weights: Luma weights [R, G, B]
        input_scale: Full-scale value of float32 frames (255.0 or 1.0)

    Example:
        >>> preprocessor = ShapePreprocessor()
        >>> frame = np.random.randint(0, 256, (480, 640, 3), dtype=np.uint8)
        >>> result = preprocessor(frame)
        >>> result.tensor.shape
        (50176,)
        >>> 0.0 <= result.tensor.min() <= result.tensor.max() <= 1.0
        True
    """

    def __init__(
        self,
        target_width: int = SHAPE_INPUT_SIZE,
        target_height: int = SHAPE_INPUT_SIZE,
        weights: Sequence[float] = LUMA_WEIGHTS,
        input_scale: float = PIXEL_SCALE,
    ) -> None:
        if input_scale <= 0:
            raise ValueError(f"input_scale must be positive, got {input_scale}")

        self.target_width = target_width
        self.target_height = target_height
        self.weights = np.asarray(weights, dtype=np.float32)
        self.input_scale = float(input_scale)

    def __call__(self, frame: np.ndarray) -> Optional[ShapePreprocessResult]:
        return self.preprocess(frame)

    @property
    def tensor_size(self) -> int:
        """Length of the packed tensor produced by this preprocessor."""
        return self.target_width * self.target_height

    def normalize(self, frame: np.ndarray) -> np.ndarray:
        """
        Resize and reduce a frame to luminance.

        Raises:
            FrameConversionError: If the frame cannot be converted
        """
        return normalize_frame(
            frame,
            self.target_width,
            self.target_height,
            self.weights,
            self.input_scale,
        )

    @staticmethod
    def pack(normalized: np.ndarray) -> np.ndarray:
        """Pack a luminance plane into a flat row-major tensor."""
        return pack_tensor(normalized)

    def preprocess(self, frame: np.ndarray) -> Optional[ShapePreprocessResult]:
        """
        Preprocess a frame for shape classification.

        Args:
            frame: RGB(A) array [H, W, 3|4], uint8 or float32

        Returns:
            ShapePreprocessResult, or None if the frame could not be converted
        """
        try:
            normalized = self.normalize(frame)
        except FrameConversionError as e:
            shape = getattr(frame, "shape", None)
            logger.warning(
                f"Skipping frame: {e} (input shape={shape})",
                extra={"error_kind": e.kind},
            )
            return None

        return ShapePreprocessResult(
            tensor=self.pack(normalized),
            normalized=normalized,
            original_shape=(frame.shape[0], frame.shape[1]),
        )
