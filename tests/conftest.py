"""
Pytest Fixtures - Shared Test Fixtures for shapecam

This module provides reusable fixtures for all test modules.

Fixtures:
    sample_frame: Random RGB camera frame (480x640)
    sample_frame_portrait: Random RGB frame (1920x1080)
    white_frame / black_frame: Uniform RGB frames
    circle_frame: Rendered black circle on a white background
    labels: The shipped 8-entry label table
    pipeline_config: PipelineConfig with default 224x224 input
    make_stub_model: Builder for models backed by a scripted stub engine
    onnx_model_path: Tiny ONNX classifier written to a temp directory
"""

import tempfile
import threading
from pathlib import Path

import cv2
import numpy as np
import pytest

from shapecam.config import PipelineConfig
from shapecam.model.engine import LoadedModel

LABELS = (
    "Circle",
    "Kite",
    "Parallelogram",
    "Rectangle",
    "Rhombus",
    "Square",
    "Trapezoid",
    "Rhombus",
)

INPUT_SIZE = 224


# =============================================================================
# Frame Fixtures
# =============================================================================

@pytest.fixture
def sample_frame() -> np.ndarray:
    """
    Sample VGA RGB frame for testing.

    Returns:
        RGB uint8 array with shape [480, 640, 3]
    """
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, (480, 640, 3), dtype=np.uint8)


@pytest.fixture
def sample_frame_portrait() -> np.ndarray:
    """
    Sample portrait 1080p RGB frame for testing non-uniform scaling.

    Returns:
        RGB uint8 array with shape [1920, 1080, 3]
    """
    rng = np.random.default_rng(43)
    return rng.integers(0, 256, (1920, 1080, 3), dtype=np.uint8)


@pytest.fixture
def white_frame() -> np.ndarray:
    """All-white RGB frame (R=G=B=255)."""
    return np.full((480, 640, 3), 255, dtype=np.uint8)


@pytest.fixture
def black_frame() -> np.ndarray:
    """All-black RGB frame."""
    return np.zeros((480, 640, 3), dtype=np.uint8)


@pytest.fixture
def circle_frame() -> np.ndarray:
    """
    Synthetic frame showing a filled black circle on white.

    Returns:
        RGB uint8 array with shape [480, 640, 3]
    """
    frame = np.full((480, 640, 3), 255, dtype=np.uint8)
    cv2.circle(frame, (320, 240), 150, (0, 0, 0), thickness=-1)
    return frame


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def labels() -> tuple[str, ...]:
    """Shipped label table (order matches model output)."""
    return LABELS


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    """Default 224x224 pipeline configuration."""
    return PipelineConfig(
        target_width=INPUT_SIZE,
        target_height=INPUT_SIZE,
        labels=LABELS,
    )


@pytest.fixture
def temp_dir() -> Path:
    """Create temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# =============================================================================
# Stub Engine
# =============================================================================

class StubEngine:
    """
    Scripted stand-in for an inference runtime.

    Records every call; optionally blocks inside invoke() until released,
    or raises a configured error.
    """

    def __init__(self, scores, error: Exception | None = None, block: bool = False):
        self.scores = np.asarray(scores, dtype=np.float32)
        self.error = error
        self.inputs: list[np.ndarray] = []
        self.invoke_calls = 0
        self.active = 0
        self.max_active = 0
        self.started = threading.Event()
        self.release = threading.Event()
        if not block:
            self.release.set()

    def load(self, path, name=None):
        raise NotImplementedError

    def set_input(self, model, tensor):
        self.inputs.append(np.array(tensor, copy=True))

    def invoke(self, model):
        self.invoke_calls += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            self.started.set()
            self.release.wait(timeout=5)
            if self.error is not None:
                raise self.error
            return self.scores.copy()
        finally:
            self.active -= 1


@pytest.fixture
def make_stub_model():
    """
    Builder for LoadedModel instances backed by StubEngine.

    Usage:
        model = make_stub_model([0.9, 0.1, ...])
        model.engine.invoke_calls
    """

    def _make(
        scores=(0.9, 0.01, 0.01, 0.01, 0.01, 0.01, 0.01, 0.01),
        input_shape=(1, INPUT_SIZE, INPUT_SIZE, 1),
        output_shape=None,
        error: Exception | None = None,
        block: bool = False,
    ) -> LoadedModel:
        engine = StubEngine(scores, error=error, block=block)
        if output_shape is None:
            output_shape = (1, len(engine.scores))

        return LoadedModel(
            name="stub",
            path=Path("stub.onnx"),
            input_name="input",
            input_shape=tuple(input_shape),
            input_dtype=np.float32,
            output_name="output",
            output_shape=tuple(output_shape),
            engine=engine,
            handle=None,
        )

    return _make


# =============================================================================
# ONNX Model Fixture
# =============================================================================

def write_mean_luminance_model(path: Path) -> Path:
    """
    Write a tiny ONNX classifier over the packed luminance tensor.

    scores[0] = mean(x)          -> "Circle" wins for bright frames
    scores[5] = 1 - mean(x)      -> "Square" wins for dark frames
    all other scores = 0

    Uses IR version 9 for onnxruntime compatibility.
    """
    onnx = pytest.importorskip("onnx")
    from onnx import TensorProto, helper, numpy_helper

    n = INPUT_SIZE * INPUT_SIZE

    weights = np.zeros((n, len(LABELS)), dtype=np.float32)
    weights[:, 0] = 1.0 / n
    weights[:, 5] = -1.0 / n
    bias = np.zeros((1, len(LABELS)), dtype=np.float32)
    bias[0, 5] = 1.0

    X = helper.make_tensor_value_info("input", TensorProto.FLOAT, [1, INPUT_SIZE, INPUT_SIZE, 1])
    Y = helper.make_tensor_value_info("output", TensorProto.FLOAT, [1, len(LABELS)])

    initializers = [
        numpy_helper.from_array(np.array([1, n], dtype=np.int64), name="flat_shape"),
        numpy_helper.from_array(weights, name="W"),
        numpy_helper.from_array(bias, name="B"),
    ]

    nodes = [
        helper.make_node("Reshape", ["input", "flat_shape"], ["flat"]),
        helper.make_node("MatMul", ["flat", "W"], ["logits"]),
        helper.make_node("Add", ["logits", "B"], ["output"]),
    ]

    graph = helper.make_graph(nodes, "shape_classifier", [X], [Y], initializer=initializers)
    model = helper.make_model(graph, opset_imports=[helper.make_opsetid("", 17)])
    model.ir_version = 9

    onnx.save(model, str(path))
    return path


@pytest.fixture
def onnx_model_path(temp_dir: Path) -> Path:
    """Tiny ONNX shape classifier saved as shape_classification_model.onnx."""
    pytest.importorskip("onnxruntime")
    return write_mean_luminance_model(temp_dir / "shape_classification_model.onnx")
