"""
Unit Tests for Inference Module

This module tests:
- infer(): shape checking, engine delegation, error wrapping
- decode(): argmax, first-occurrence tie-break, empty/malformed vectors
- classify() / top_k(): softmax confidence and ranking
"""

import numpy as np
import pytest

from shapecam.errors import ExecutionError, FrameError, InterpretationError, ShapeMismatchError
from shapecam.inference import Prediction, classify, decode, infer, softmax, top_k


# =============================================================================
# Tests for infer()
# =============================================================================


class TestInfer:
    """Tests for the inference invoker."""

    def test_returns_engine_output(self, make_stub_model) -> None:
        """infer() returns the engine's score vector."""
        model = make_stub_model(scores=[0.1, 0.9, 0, 0, 0, 0, 0, 0])
        tensor = np.zeros(224 * 224, dtype=np.float32)

        scores = infer(model, tensor)

        assert np.allclose(scores, [0.1, 0.9, 0, 0, 0, 0, 0, 0])
        assert model.engine.invoke_calls == 1

    def test_copies_tensor_into_engine(self, make_stub_model) -> None:
        """The exact tensor is handed to set_input."""
        model = make_stub_model()
        tensor = np.linspace(0, 1, 224 * 224, dtype=np.float32)

        infer(model, tensor)

        assert np.array_equal(model.engine.inputs[0], tensor)

    @pytest.mark.parametrize("length", [0, 1, 224 * 224 - 1, 224 * 224 + 1, 3 * 224 * 224])
    def test_shape_mismatch_does_not_invoke(self, make_stub_model, length: int) -> None:
        """Wrong tensor length fails before the engine is touched."""
        model = make_stub_model()

        with pytest.raises(ShapeMismatchError) as exc_info:
            infer(model, np.zeros(length, dtype=np.float32))

        assert exc_info.value.expected == 224 * 224
        assert exc_info.value.actual == length
        assert model.engine.inputs == []
        assert model.engine.invoke_calls == 0

    def test_engine_failure_becomes_execution_error(self, make_stub_model) -> None:
        """Engine exceptions are reported as ExecutionError."""
        model = make_stub_model(error=RuntimeError("graph exploded"))

        with pytest.raises(ExecutionError, match="graph exploded"):
            infer(model, np.zeros(224 * 224, dtype=np.float32))

    def test_errors_are_frame_errors(self) -> None:
        """Per-frame errors share the FrameError base."""
        assert issubclass(ShapeMismatchError, FrameError)
        assert issubclass(ExecutionError, FrameError)
        assert issubclass(InterpretationError, FrameError)


# =============================================================================
# Tests for decode()
# =============================================================================


class TestDecode:
    """Tests for the result decoder."""

    def test_argmax_label(self, labels) -> None:
        """Highest score selects its label."""
        scores = [0.1, 0.9, 0.05, 0.0, 0.0, 0.0, 0.0, 0.0]

        assert decode(scores, labels) == labels[1] == "Kite"

    def test_all_equal_returns_first(self, labels) -> None:
        """Ties resolve to the lowest index."""
        assert decode([0.125] * 8, labels) == "Circle"

    def test_tie_between_later_indices(self, labels) -> None:
        """First of several equal maxima wins."""
        scores = [0.0, 0.0, 0.0, 0.5, 0.0, 0.5, 0.0, 0.0]

        assert decode(scores, labels) == "Rectangle"

    def test_duplicate_label_positions(self, labels) -> None:
        """Index 7 maps to the duplicated 'Rhombus' entry."""
        scores = [0.0] * 7 + [1.0]

        assert decode(scores, labels) == "Rhombus"

    def test_negative_scores(self, labels) -> None:
        """Raw logits may be negative."""
        scores = [-3.0, -1.0, -2.0, -5.0, -4.0, -6.0, -7.0, -8.0]

        assert decode(scores, labels) == "Kite"

    def test_accepts_numpy(self, labels) -> None:
        """Accepts numpy arrays of any shape holding 8 values."""
        scores = np.zeros((1, 8), dtype=np.float32)
        scores[0, 6] = 1.0

        assert decode(scores, labels) == "Trapezoid"

    @pytest.mark.parametrize("scores", [[], np.array([], dtype=np.float32)])
    def test_empty_raises_interpretation_error(self, labels, scores) -> None:
        """Empty vectors fail with InterpretationError."""
        with pytest.raises(InterpretationError):
            decode(scores, labels)

    def test_nan_raises_interpretation_error(self, labels) -> None:
        """Non-finite scores are malformed output."""
        scores = [0.1, float("nan"), 0, 0, 0, 0, 0, 0]

        with pytest.raises(InterpretationError):
            decode(scores, labels)

    def test_more_scores_than_labels_is_internal_error(self, labels) -> None:
        """Out-of-range index is not a per-frame error."""
        with pytest.raises(ValueError) as exc_info:
            decode([0.0] * 8 + [1.0], labels)

        assert not isinstance(exc_info.value, FrameError)


# =============================================================================
# Tests for classify() / top_k() / softmax()
# =============================================================================


class TestClassify:
    """Tests for Prediction construction."""

    def test_softmax_sums_to_one(self) -> None:
        """Softmax output is a probability distribution."""
        probs = softmax([1.0, 2.0, 3.0])

        assert probs.sum() == pytest.approx(1.0)
        assert np.all(probs > 0)

    def test_softmax_large_values_stable(self) -> None:
        """Large logits do not overflow."""
        probs = softmax([1000.0, 1000.0])

        assert np.allclose(probs, [0.5, 0.5])

    def test_classify_prediction(self, labels) -> None:
        """classify() returns id, label and confidence."""
        prediction = classify([0.0, 0.0, 0.0, 0.0, 0.0, 5.0, 0.0, 0.0], labels)

        assert isinstance(prediction, Prediction)
        assert prediction.class_id == 5
        assert prediction.label == "Square"
        assert 0.9 < prediction.confidence <= 1.0

    def test_classify_empty(self, labels) -> None:
        """classify() shares decode()'s error handling."""
        with pytest.raises(InterpretationError):
            classify([], labels)

    def test_top_k_order(self, labels) -> None:
        """top_k() ranks by score, highest first."""
        scores = [0.1, 0.5, 0.3, 0.0, 0.0, 0.0, 0.0, 0.0]

        ranked = top_k(scores, labels, k=3)

        assert [p.label for p in ranked] == ["Kite", "Parallelogram", "Circle"]
        assert ranked[0].confidence >= ranked[1].confidence >= ranked[2].confidence

    def test_top_k_ties_keep_table_order(self, labels) -> None:
        """Equal scores keep first-occurrence order."""
        ranked = top_k([0.2] * 8, labels, k=8)

        assert [p.class_id for p in ranked] == list(range(8))

    def test_top_1_matches_decode(self, labels) -> None:
        """top_k(k=1) agrees with decode()."""
        rng = np.random.default_rng(3)
        scores = rng.random(8).astype(np.float32)

        assert top_k(scores, labels, k=1)[0].label == decode(scores, labels)
