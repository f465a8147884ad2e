"""Inference engine adapters.

The model is an opaque artifact executed by an external runtime. This module
defines the narrow capability the pipeline needs from any runtime:

    load(path) -> LoadedModel
    set_input(model, tensor)
    invoke(model) -> output vector

and provides two implementations:
- OnnxRuntimeEngine: ONNX Runtime (default)
- TFLiteEngine: TensorFlow Lite via tflite-runtime (optional extra)
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import numpy as np

from shapecam.errors import ModelLoadError

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DEFAULT_INTRA_OP_THREADS: int = 1
"""ONNX Runtime intra-op parallelism (within single operator)."""

DEFAULT_INTER_OP_THREADS: int = 1
"""ONNX Runtime inter-op parallelism (across operators)."""

# Map ONNX dtype to numpy dtype
ONNX_TO_NUMPY: dict[str, type] = {
    "tensor(float)": np.float32,
    "tensor(float16)": np.float16,
    "tensor(double)": np.float64,
}


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class SessionConfig:
    """Configuration for ONNX Runtime inference session.

    Attributes:
        intra_op_threads: Number of threads for intra-op parallelism
        inter_op_threads: Number of threads for inter-op parallelism
        providers: Execution providers (default: CPUExecutionProvider)
    """

    intra_op_threads: int = DEFAULT_INTRA_OP_THREADS
    inter_op_threads: int = DEFAULT_INTER_OP_THREADS
    providers: list[str] = field(default_factory=lambda: ["CPUExecutionProvider"])


@dataclass
class LoadedModel:
    """A model loaded by an engine, with its declared tensor layout.

    Attributes:
        name: Model identifier
        path: Path to the model file
        input_name: Name (or index) of the input tensor
        input_shape: Declared input shape, dynamic dims resolved to 1
        input_dtype: Expected input dtype
        output_name: Name (or index) of the output tensor
        output_shape: Declared output shape, dynamic dims resolved to 1
        engine: Engine that owns the runtime handle
        handle: Runtime object (InferenceSession, Interpreter, ...)
        input_buffer: Preallocated input slot, when the engine uses one
    """

    name: str
    path: Path
    input_name: Any
    input_shape: tuple[int, ...]
    input_dtype: type
    output_name: Any
    output_shape: tuple[int, ...]
    engine: "InferenceEngine" = field(repr=False)
    handle: Any = field(repr=False)
    input_buffer: np.ndarray | None = field(default=None, repr=False)

    @property
    def input_size(self) -> int:
        """Number of scalar values in one input tensor."""
        return int(np.prod(self.input_shape))

    @property
    def output_size(self) -> int:
        """Number of scalar values in the output vector."""
        return int(np.prod(self.output_shape))


class InferenceEngine(Protocol):
    """Capability interface every inference runtime adapter provides."""

    def load(self, path: Path, name: str | None = None) -> LoadedModel:
        ...

    def set_input(self, model: LoadedModel, tensor: np.ndarray) -> None:
        ...

    def invoke(self, model: LoadedModel) -> np.ndarray:
        ...


def _resolve_shape(shape: Any) -> tuple[int, ...]:
    """Replace dynamic dimensions (None, symbolic names, -1) with 1."""
    return tuple(dim if isinstance(dim, int) and dim > 0 else 1 for dim in shape)


# =============================================================================
# ONNX Runtime
# =============================================================================


class OnnxRuntimeEngine:
    """Runs ONNX models with a preallocated input buffer.

    Example:
        >>> engine = OnnxRuntimeEngine()
        >>> model = engine.load(Path("models/shape_classification_model.onnx"))
        >>> engine.set_input(model, tensor)
        >>> scores = engine.invoke(model)
    """

    suffix = ".onnx"

    def __init__(self, config: SessionConfig | None = None) -> None:
        self.config = config or SessionConfig()

    def load(self, path: Path, name: str | None = None) -> LoadedModel:
        """Create an inference session and allocate the input slot.

        Raises:
            ModelLoadError: If the session cannot be created
        """
        import onnxruntime as ort

        path = Path(path)

        sess_options = ort.SessionOptions()
        sess_options.intra_op_num_threads = self.config.intra_op_threads
        sess_options.inter_op_num_threads = self.config.inter_op_threads

        try:
            session = ort.InferenceSession(
                str(path),
                sess_options,
                providers=self.config.providers,
            )
        except Exception as e:
            raise ModelLoadError(f"Failed to load ONNX model {path}: {e}") from e

        input_meta = session.get_inputs()[0]
        output_meta = session.get_outputs()[0]

        input_shape = _resolve_shape(input_meta.shape)
        input_dtype = ONNX_TO_NUMPY.get(input_meta.type)
        if input_dtype is None:
            raise ModelLoadError(
                f"Unsupported model input type {input_meta.type}; expected a float tensor"
            )

        return LoadedModel(
            name=name or path.stem,
            path=path,
            input_name=input_meta.name,
            input_shape=input_shape,
            input_dtype=input_dtype,
            output_name=output_meta.name,
            output_shape=_resolve_shape(output_meta.shape),
            engine=self,
            handle=session,
            input_buffer=np.zeros(input_shape, dtype=input_dtype),
        )

    def set_input(self, model: LoadedModel, tensor: np.ndarray) -> None:
        """Copy a flat tensor into the model's input slot."""
        np.copyto(
            model.input_buffer,
            np.asarray(tensor).reshape(model.input_shape),
            casting="same_kind",
        )

    def invoke(self, model: LoadedModel) -> np.ndarray:
        """Run the session on the current input slot."""
        outputs = model.handle.run(
            [model.output_name],
            {model.input_name: model.input_buffer},
        )
        return np.asarray(outputs[0], dtype=np.float32).reshape(-1)


# =============================================================================
# TensorFlow Lite
# =============================================================================


class TFLiteEngine:
    """Runs TensorFlow Lite models through tflite-runtime.

    Tensors are allocated once at load time; the interpreter owns the
    input and output slots.
    """

    suffix = ".tflite"

    def __init__(self, num_threads: int | None = None) -> None:
        self.num_threads = num_threads

    def load(self, path: Path, name: str | None = None) -> LoadedModel:
        """Create an interpreter and allocate its tensors.

        Raises:
            ModelLoadError: If tflite-runtime is missing or the interpreter
                cannot be created or allocated
        """
        path = Path(path)

        try:
            from tflite_runtime.interpreter import Interpreter
        except ImportError as e:
            raise ModelLoadError(
                f"tflite-runtime is not installed, cannot load {path}; "
                "install shapecam[tflite] or provide an ONNX model"
            ) from e

        try:
            interpreter = Interpreter(
                model_path=str(path),
                num_threads=self.num_threads,
            )
            interpreter.allocate_tensors()
        except (ValueError, RuntimeError) as e:
            raise ModelLoadError(f"Failed to load TFLite model {path}: {e}") from e

        input_details = interpreter.get_input_details()[0]
        output_details = interpreter.get_output_details()[0]

        return LoadedModel(
            name=name or path.stem,
            path=path,
            input_name=input_details["index"],
            input_shape=_resolve_shape(input_details["shape"].tolist()),
            input_dtype=input_details["dtype"],
            output_name=output_details["index"],
            output_shape=_resolve_shape(output_details["shape"].tolist()),
            engine=self,
            handle=interpreter,
        )

    def set_input(self, model: LoadedModel, tensor: np.ndarray) -> None:
        """Copy a flat tensor into the interpreter's input tensor."""
        data = np.asarray(tensor).reshape(model.input_shape).astype(model.input_dtype)
        model.handle.set_tensor(model.input_name, data)

    def invoke(self, model: LoadedModel) -> np.ndarray:
        """Invoke the interpreter and read the output tensor."""
        model.handle.invoke()
        output = model.handle.get_tensor(model.output_name)
        return np.array(output, dtype=np.float32).reshape(-1)
