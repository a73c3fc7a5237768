"""
Unit tests for LetterClassifier
Tests the keypoint adapter with a mocked TFLite interpreter.
"""

import numpy as np
import pytest
from unittest.mock import MagicMock
from services.errors import ModelNotReadyError
from services.letter_classifier import LetterClassifier, DEFAULT_LABELS


def probabilities(index, confidence, size=len(DEFAULT_LABELS)):
    rest = (1.0 - confidence) / (size - 1)
    probs = np.full(size, rest, dtype=np.float32)
    probs[index] = confidence
    return np.array([probs])


@pytest.fixture
def mock_interpreter():
    """Mock TFLite interpreter that predicts 'B' with 0.95 confidence"""
    interpreter = MagicMock()
    interpreter.get_input_details.return_value = [{'index': 0}]
    interpreter.get_output_details.return_value = [{'index': 1}]
    interpreter.get_tensor.return_value = probabilities(1, 0.95)
    return interpreter


@pytest.fixture
def classifier(mock_interpreter, tmp_path):
    """Create LetterClassifier with the mocked interpreter and built-in labels"""
    return LetterClassifier(
        label_path=str(tmp_path / "missing.csv"),
        interpreter=mock_interpreter
    )


@pytest.fixture
def sample_landmarks():
    """Sample landmark data for testing (21 landmarks with x, y coordinates)"""
    return [[0.1 + i * 0.01, 0.2 + i * 0.01] for i in range(21)]


class TestLetterClassifier:
    """Test suite for LetterClassifier"""

    def test_predict_success(self, classifier, mock_interpreter, sample_landmarks):
        letter, confidence = classifier.predict(sample_landmarks)

        assert letter == "B"
        assert confidence == pytest.approx(0.95)
        mock_interpreter.invoke.assert_called_once()
        features = mock_interpreter.set_tensor.call_args[0][1]
        assert features.shape == (1, 42)
        assert features.dtype == np.float32

    def test_predict_accepts_3d_points(self, classifier, sample_landmarks):
        points = [[x, y, 0.5] for x, y in sample_landmarks]

        assert classifier.predict(points)[0] == "B"

    def test_predict_wrong_arity_is_no_prediction(self, classifier, mock_interpreter):
        """Malformed vectors are treated as no prediction"""
        assert classifier.predict([[0.1, 0.2], [0.3, 0.4]]) is None
        assert classifier.predict([]) is None
        mock_interpreter.invoke.assert_not_called()

    def test_predict_low_confidence(self, classifier, mock_interpreter, sample_landmarks):
        mock_interpreter.get_tensor.return_value = probabilities(3, 0.25)

        assert classifier.predict(sample_landmarks) is None

    def test_predict_unknown_class(self, mock_interpreter, tmp_path, sample_landmarks):
        """Class ids beyond the label list yield no prediction"""
        label_path = tmp_path / "labels.csv"
        label_path.write_text("ASL A\n", encoding="utf-8")
        classifier = LetterClassifier(label_path=str(label_path), interpreter=mock_interpreter)

        assert classifier.predict(sample_landmarks) is None

    def test_labels_from_csv_strip_prefix(self, mock_interpreter, tmp_path):
        label_path = tmp_path / "labels.csv"
        label_path.write_text("ASL A\nASL B\nSPACE\n", encoding="utf-8")

        classifier = LetterClassifier(label_path=str(label_path), interpreter=mock_interpreter)

        assert classifier.labels == ["A", "B", "SPACE"]

    def test_default_labels(self, classifier):
        assert classifier.labels[:3] == ["A", "B", "C"]
        assert classifier.labels[-2:] == ["SPACE", "DELETE"]

    def test_is_ready(self, classifier):
        assert classifier.is_ready() is True

    def test_initialization_failure(self, mock_interpreter):
        mock_interpreter.allocate_tensors.side_effect = RuntimeError("bad model")

        with pytest.raises(ModelNotReadyError) as exc_info:
            LetterClassifier(interpreter=mock_interpreter)

        assert "Failed to initialize letter classifier" in str(exc_info.value)

    def test_predict_model_not_initialized(self, sample_landmarks):
        classifier = LetterClassifier.__new__(LetterClassifier)  # Create without __init__
        classifier.model_initialized = False

        assert classifier.is_ready() is False
        with pytest.raises(ModelNotReadyError):
            classifier.predict(sample_landmarks)

    def test_interpreter_error_propagates(self, classifier, mock_interpreter, sample_landmarks):
        mock_interpreter.invoke.side_effect = RuntimeError("Interpreter error")

        with pytest.raises(RuntimeError):
            classifier.predict(sample_landmarks)

    def test_pre_process_landmark(self, sample_landmarks):
        result = LetterClassifier.pre_process_landmark(sample_landmarks)

        assert len(result) == 42
        assert result[:2] == [0.0, 0.0]
        assert all(-1 <= x <= 1 for x in result)
        assert max(map(abs, result)) == pytest.approx(1.0)

    def test_pre_process_landmark_single_point(self):
        assert LetterClassifier.pre_process_landmark([[0.5, 0.5]]) == [0.0, 0.0]
