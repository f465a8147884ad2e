"""
Low-Level Frame Transforms

This module contains atomic transformation functions used by
ShapePreprocessor.

Functions:
    load_image: Load image file as RGB numpy array
    load_image_from_bytes: Decode image bytes as RGB numpy array
    resize_frame: Non-uniform scale to a fixed resolution
    to_luminance: Weighted RGB to single-channel luminance
    normalize_frame: Validate, resize and convert a frame to luminance
    pack_tensor: Flatten a normalized frame into the model input vector

Constants:
    LUMA_WEIGHTS: Perceptual luma weights [R, G, B]
    PIXEL_SCALE: Divisor mapping [0, 255] luminance to [0, 1]
"""

from typing import Sequence

import cv2
import numpy as np

from shapecam.errors import FrameConversionError


# =============================================================================
# Constants
# =============================================================================

# ITU-R BT.601 luma coefficients
LUMA_WEIGHTS: np.ndarray = np.array([0.299, 0.587, 0.114], dtype=np.float32)

PIXEL_SCALE: float = 255.0


# =============================================================================
# Image Loading
# =============================================================================

def load_image(image_path: str) -> np.ndarray:
    """
    Load an image file as an RGB numpy array.

    Args:
        image_path: Path to image file (JPEG, PNG, etc.)

    Returns:
        RGB uint8 array with shape [H, W, 3]

    Raises:
        ValueError: If image cannot be loaded (file not found or corrupted)
    """
    bgr = cv2.imread(str(image_path), cv2.IMREAD_COLOR)

    if bgr is None:
        raise ValueError(f"Failed to load image: {image_path}")

    return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)


def load_image_from_bytes(image_bytes: bytes) -> np.ndarray:
    """
    Decode image bytes as an RGB numpy array.

    Args:
        image_bytes: Raw image bytes (JPEG, PNG, etc.)

    Returns:
        RGB uint8 array with shape [H, W, 3]

    Raises:
        ValueError: If image cannot be decoded
    """
    if not image_bytes:
        raise ValueError("Failed to decode image from bytes: empty input")

    nparr = np.frombuffer(image_bytes, np.uint8)
    bgr = cv2.imdecode(nparr, cv2.IMREAD_COLOR)

    if bgr is None:
        raise ValueError("Failed to decode image from bytes")

    return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)


# =============================================================================
# Geometric Transforms
# =============================================================================

def resize_frame(
    frame: np.ndarray,
    target_width: int,
    target_height: int,
) -> np.ndarray:
    """
    Scale a frame to exactly target_width x target_height.

    Width and height are scaled independently, so the aspect ratio is not
    preserved and nothing is cropped or padded.

    Args:
        frame: Array with shape [H, W, C]
        target_width: Output width in pixels
        target_height: Output height in pixels

    Returns:
        Resized array with shape [target_height, target_width, C]

    Example:
        >>> frame = np.zeros((1080, 1920, 3), dtype=np.uint8)
        >>> resize_frame(frame, 224, 224).shape
        (224, 224, 3)
    """
    return cv2.resize(
        frame,
        (target_width, target_height),
        interpolation=cv2.INTER_LINEAR,
    )


# =============================================================================
# Intensity Transforms
# =============================================================================

def to_luminance(
    rgb: np.ndarray,
    weights: Sequence[float] = LUMA_WEIGHTS,
) -> np.ndarray:
    """
    Convert an RGB image to single-channel luminance.

    Formula: Y = 0.299 * R + 0.587 * G + 0.114 * B

    Args:
        rgb: float32 array with shape [H, W, 3], values in [0, 255]
        weights: Per-channel weights [R, G, B]

    Returns:
        float32 array with shape [H, W], values in [0, 255]
    """
    weights = np.asarray(weights, dtype=np.float32)
    return np.tensordot(rgb.astype(np.float32), weights, axes=([2], [0])).astype(
        np.float32
    )


def normalize_frame(
    frame: np.ndarray,
    target_width: int,
    target_height: int,
    weights: Sequence[float] = LUMA_WEIGHTS,
    input_scale: float = PIXEL_SCALE,
) -> np.ndarray:
    """
    Resize a camera frame and reduce it to luminance.

    Pipeline:
        1. Validate array type, shape and dtype
        2. Drop alpha channel if present
        3. Rescale float input from [0, input_scale] to [0, 255]
        4. Resize to target_width x target_height
        5. Weighted RGB -> luminance

    Args:
        frame: RGB(A) array with shape [H, W, 3|4], uint8 or float32
        target_width: Output width
        target_height: Output height
        weights: Luma weights [R, G, B]
        input_scale: Full-scale value of float32 frames, 255.0 for [0, 255]
            or 1.0 for [0, 1]. uint8 frames are always [0, 255].

    Returns:
        float32 luminance array [target_height, target_width] in [0, 255]

    Raises:
        FrameConversionError: If the frame cannot be converted
    """
    _validate_frame(frame)

    rgb = frame[:, :, :3]

    if input_scale <= 0:
        raise FrameConversionError(f"input_scale must be positive, got {input_scale}")

    rgb = rgb.astype(np.float32)
    if frame.dtype != np.uint8 and input_scale != PIXEL_SCALE:
        rgb *= np.float32(PIXEL_SCALE / input_scale)

    try:
        resized = resize_frame(rgb, target_width, target_height)
    except cv2.error as e:
        raise FrameConversionError(f"Could not resize frame: {e}") from e

    luminance = to_luminance(resized, weights)

    if luminance.shape != (target_height, target_width):
        raise FrameConversionError(
            f"Resize produced {luminance.shape}, expected "
            f"{(target_height, target_width)}"
        )

    return luminance


def pack_tensor(normalized: np.ndarray) -> np.ndarray:
    """
    Serialize a normalized frame into the flat model input vector.

    Rows are emitted top to bottom and columns left to right, each value
    luminance / 255 as float32. The model consumes an untyped flat buffer:
    a transposed or column-major packing still runs and silently yields
    wrong classifications, so this ordering must match the training layout.

    Args:
        normalized: float32 luminance [H, W] in [0, 255]

    Returns:
        Contiguous float32 array with shape [H * W], values in [0, 1]

    Example:
        >>> pack_tensor(np.full((224, 224), 255.0, dtype=np.float32)).shape
        (50176,)
    """
    flat = np.asarray(normalized, dtype=np.float32).reshape(-1, order="C")
    return np.ascontiguousarray(flat / np.float32(PIXEL_SCALE), dtype=np.float32)


def _validate_frame(frame: np.ndarray) -> None:
    """
    Validate input frame.

    Raises:
        FrameConversionError: If frame has invalid type, shape or dtype
    """
    if not isinstance(frame, np.ndarray):
        raise FrameConversionError(f"Expected numpy array, got {type(frame)}")

    if frame.ndim != 3:
        raise FrameConversionError(f"Expected 3D array [H, W, C], got {frame.ndim}D")

    if frame.shape[2] not in (3, 4):
        raise FrameConversionError(f"Expected 3 or 4 channels, got {frame.shape[2]}")

    if frame.dtype not in (np.uint8, np.float32):
        raise FrameConversionError(f"Unsupported frame dtype: {frame.dtype}")

    if frame.shape[0] < 1 or frame.shape[1] < 1:
        raise FrameConversionError(f"Invalid frame dimensions: {frame.shape[:2]}")
