"""Shape classification inference and result decoding.

infer() feeds one packed tensor through a loaded model; decode() maps the
resulting score vector to a label. Neither retries: each frame is an
independent unit of work.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from shapecam.errors import ExecutionError, InterpretationError, ShapeMismatchError
from shapecam.model.engine import LoadedModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Prediction:
    """Top-1 classification for one frame.

    Attributes:
        class_id: Index into the label table
        label: Class label
        confidence: Softmax probability of the class
    """

    class_id: int
    label: str
    confidence: float


def infer(model: LoadedModel, tensor: np.ndarray) -> np.ndarray:
    """Run the model on a packed input tensor.

    Args:
        model: Loaded model (carries its engine)
        tensor: Flat float32 input tensor

    Returns:
        Flat float32 score vector

    Raises:
        ShapeMismatchError: If tensor length differs from the model input
            size; the engine is not touched
        ExecutionError: If the engine fails while copying input or executing
    """
    tensor = np.asarray(tensor)
    if tensor.size != model.input_size:
        raise ShapeMismatchError(expected=model.input_size, actual=tensor.size)

    engine = model.engine
    try:
        engine.set_input(model, tensor)
        return engine.invoke(model)
    except Exception as e:
        raise ExecutionError(str(e) or type(e).__name__) from e


def _checked_scores(scores: Sequence[float], labels: Sequence[str]) -> np.ndarray:
    scores = np.asarray(scores, dtype=np.float32).reshape(-1)

    if scores.size == 0:
        raise InterpretationError("empty output vector")

    if not np.all(np.isfinite(scores)):
        raise InterpretationError("output vector contains non-finite scores")

    # Label count is validated against the model at startup
    if scores.size > len(labels):
        raise ValueError(
            f"Output vector has {scores.size} scores but only {len(labels)} labels"
        )

    return scores


def decode(scores: Sequence[float], labels: Sequence[str]) -> str:
    """Map a score vector to the highest-scoring label.

    Ties resolve to the lowest index.

    Example:
        >>> decode([0.1, 0.9, 0.05], ["Circle", "Kite", "Square"])
        'Kite'

    Raises:
        InterpretationError: If scores are empty or non-finite
    """
    scores = _checked_scores(scores, labels)
    return labels[int(np.argmax(scores))]


def softmax(scores: Sequence[float]) -> np.ndarray:
    """Numerically stable softmax over a score vector."""
    scores = np.asarray(scores, dtype=np.float32)
    exp_scores = np.exp(scores - np.max(scores))
    return exp_scores / exp_scores.sum()


def classify(scores: Sequence[float], labels: Sequence[str]) -> Prediction:
    """Decode scores into a Prediction with softmax confidence.

    Raises:
        InterpretationError: If scores are empty or non-finite
    """
    scores = _checked_scores(scores, labels)
    class_id = int(np.argmax(scores))
    probs = softmax(scores)

    return Prediction(
        class_id=class_id,
        label=labels[class_id],
        confidence=float(probs[class_id]),
    )


def top_k(
    scores: Sequence[float],
    labels: Sequence[str],
    k: int = 3,
) -> list[Prediction]:
    """Return the k most likely classes, highest first.

    Equal scores keep label-table order.
    """
    scores = _checked_scores(scores, labels)
    probs = softmax(scores)

    # Stable sort on negated scores keeps first-occurrence order for ties
    order = np.argsort(-scores, kind="stable")[:k]

    return [
        Prediction(class_id=int(idx), label=labels[idx], confidence=float(probs[idx]))
        for idx in order
    ]
