"""Error taxonomy for the shape classification pipeline.

Two families:
- StartupError: the application cannot run (missing model, bad configuration)
- FrameError: one frame failed; the next frame is attempted independently

Only StartupError halts the application.
"""


class ShapecamError(Exception):
    """Base class for all shapecam errors."""


# =============================================================================
# Startup Failures
# =============================================================================

class StartupError(ShapecamError):
    """Fatal condition detected before frame processing can begin."""


class ModelNotFoundError(StartupError, FileNotFoundError):
    """Named model resource could not be resolved to a file."""


class ModelLoadError(StartupError):
    """Model file exists but the engine failed to load or allocate it."""


class ConfigurationError(StartupError, ValueError):
    """Pipeline configuration disagrees with the loaded model."""


# =============================================================================
# Per-Frame Failures
# =============================================================================

class FrameError(ShapecamError):
    """Recoverable failure scoped to a single frame.

    Attributes:
        kind: Short machine-readable error kind for structured logs
    """

    kind: str = "frame_error"

    @property
    def display_message(self) -> str:
        """Human-readable text for the display collaborator."""
        return str(self)


class FrameConversionError(FrameError, ValueError):
    """Resize or colour conversion could not produce a buffer."""

    kind = "frame_conversion"


class ShapeMismatchError(FrameError, ValueError):
    """Packed tensor length differs from the model's declared input size."""

    kind = "shape_mismatch"

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Input tensor has {actual} values, model expects {expected}"
        )


class ExecutionError(FrameError, RuntimeError):
    """Inference engine raised while executing the model."""

    kind = "execution"

    @property
    def display_message(self) -> str:
        return f"Failed to invoke model: {self}"


class InterpretationError(FrameError, ValueError):
    """Output vector was empty or malformed."""

    kind = "interpretation"

    @property
    def display_message(self) -> str:
        return f"Failed to interpret results: {self}"
