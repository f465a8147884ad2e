"""Per-frame classification pipeline and background dispatch.

ShapeClassificationPipeline turns one frame into one display string.
FrameDispatcher runs the pipeline on a single background worker behind a
drop-if-busy gate and publishes each result to a ResultDisplay.
"""

import itertools
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from threading import Lock
from typing import Callable, Iterator

import numpy as np

from shapecam.config import PipelineConfig
from shapecam.errors import ConfigurationError, FrameError, ShapeMismatchError
from shapecam.inference import Prediction, classify, infer
from shapecam.logger import frame_id_var
from shapecam.model.engine import LoadedModel
from shapecam.processing import ShapePreprocessor

logger = logging.getLogger(__name__)

INITIAL_DISPLAY_TEXT = "No result yet"


# =============================================================================
# Pipeline
# =============================================================================


class ShapeClassificationPipeline:
    """Frame -> normalize -> pack -> infer -> decode.

    The label table is checked against the model output size once, here;
    after construction every decoded index is within the table.

    Attributes:
        model: Loaded model (owns the inference handle)
        config: Immutable pipeline configuration
        preprocessor: Frame preprocessor sized from config
    """

    def __init__(
        self,
        model: LoadedModel,
        config: PipelineConfig,
        preprocessor: ShapePreprocessor | None = None,
    ) -> None:
        if model.output_size != len(config.labels):
            raise ConfigurationError(
                f"Model '{model.name}' outputs {model.output_size} scores but "
                f"{len(config.labels)} labels are configured"
            )

        duplicates = config.duplicate_labels()
        if duplicates:
            logger.warning(
                f"Label table contains duplicate entries: {duplicates}; "
                "distinct classes will be reported under the same name"
            )

        if model.input_size != config.input_size:
            logger.warning(
                f"Model '{model.name}' expects {model.input_size} input values, "
                f"preprocessing produces {config.input_size}; every frame will fail"
            )

        self.model = model
        self.config = config
        self.preprocessor = preprocessor or ShapePreprocessor(
            config.target_width,
            config.target_height,
        )

    def classify_frame(self, frame: np.ndarray) -> Prediction | None:
        """Classify a frame.

        Returns:
            Prediction, or None if the frame could not be converted

        Raises:
            ShapeMismatchError, ExecutionError, InterpretationError
        """
        result = self.preprocessor(frame)
        if result is None:
            return None

        scores = infer(self.model, result.tensor)
        return classify(scores, self.config.labels)

    def process_frame(self, frame: np.ndarray) -> str | None:
        """Classify a frame and render the outcome as display text.

        Returns:
            The label, an error message for per-frame failures, or None
            when the frame was skipped
        """
        start = time.perf_counter()

        try:
            prediction = self.classify_frame(frame)
        except ShapeMismatchError as e:
            # Systemic: preprocessing and model disagree on input layout
            logger.error(
                f"Input shape mismatch, check model/config pairing: {e}",
                extra={"error_kind": e.kind},
            )
            return e.display_message
        except FrameError as e:
            logger.warning(f"Frame failed: {e}", extra={"error_kind": e.kind})
            return e.display_message

        if prediction is None:
            return None

        latency_ms = (time.perf_counter() - start) * 1000
        logger.debug(
            f"Classified frame as {prediction.label} ({prediction.confidence:.3f})",
            extra={"label": prediction.label, "latency_ms": round(latency_ms, 2)},
        )
        return prediction.label


# =============================================================================
# Single-Flight Gate
# =============================================================================


class SingleFlightGate:
    """Admits at most one holder; callers that find it busy do not wait."""

    def __init__(self) -> None:
        self._lock = Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def try_enter(self) -> bool:
        """Take the gate if free; return False immediately if held."""
        return self._lock.acquire(blocking=False)

    def leave(self) -> None:
        self._lock.release()

    @contextmanager
    def hold(self) -> Iterator[bool]:
        """Context manager yielding whether the gate was entered."""
        entered = self.try_enter()
        try:
            yield entered
        finally:
            if entered:
                self.leave()


# =============================================================================
# Display Handoff
# =============================================================================


class ResultDisplay:
    """Latest-value text slot shared with the UI.

    Each publish overwrites the previous text; nothing is buffered.
    """

    def __init__(
        self,
        initial: str = INITIAL_DISPLAY_TEXT,
        listener: Callable[[str], None] | None = None,
    ) -> None:
        self._text = initial
        self._lock = Lock()
        self.listener = listener
        self.publish_count = 0

    @property
    def text(self) -> str:
        with self._lock:
            return self._text

    def publish(self, text: str) -> None:
        with self._lock:
            self._text = text
            self.publish_count += 1

        if self.listener is not None:
            self.listener(text)


# =============================================================================
# Dispatcher
# =============================================================================


class FrameDispatcher:
    """Runs frames through the pipeline on one background worker.

    Frames arriving while a frame is in flight are dropped. Every processed
    frame publishes exactly once; skipped frames publish nothing.

    Example:
        >>> display = ResultDisplay()
        >>> with FrameDispatcher(pipeline, display) as dispatcher:
        ...     dispatcher.submit(frame)
        >>> display.text
        'Circle'
    """

    def __init__(
        self,
        pipeline: ShapeClassificationPipeline,
        display: ResultDisplay,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self.pipeline = pipeline
        self.display = display
        self.gate = SingleFlightGate()

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="shapecam-inference",
        )
        self._frame_ids = itertools.count(1)
        self._in_flight: Future | None = None

        self.submitted = 0
        self.dropped = 0

    def __enter__(self) -> "FrameDispatcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    def submit(self, frame: np.ndarray) -> bool:
        """Hand a frame to the background worker.

        Returns:
            True if the frame was accepted, False if dropped because busy
        """
        if not self.gate.try_enter():
            self.dropped += 1
            logger.debug("Dropped frame: inference busy", extra={"dropped": self.dropped})
            return False

        frame_id = next(self._frame_ids)
        try:
            self._in_flight = self._executor.submit(self._run, frame, frame_id)
        except RuntimeError:
            self.gate.leave()
            raise

        self.submitted += 1
        return True

    def _run(self, frame: np.ndarray, frame_id: int) -> str | None:
        token = frame_id_var.set(frame_id)
        try:
            text = self.pipeline.process_frame(frame)
            if text is not None:
                self.display.publish(text)
            return text
        except Exception:
            logger.exception("Unexpected failure while processing frame")
            raise
        finally:
            frame_id_var.reset(token)
            self.gate.leave()

    def wait(self, timeout: float | None = None) -> str | None:
        """Block until the most recently accepted frame finishes."""
        if self._in_flight is None:
            return None
        return self._in_flight.result(timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting frames; the in-flight frame runs to completion."""
        if self._owns_executor:
            self._executor.shutdown(wait=wait)
        logger.info(
            f"Dispatcher stopped: {self.submitted} processed, {self.dropped} dropped",
            extra={"dropped": self.dropped},
        )
