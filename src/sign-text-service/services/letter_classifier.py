"""Letter Classifier - Keypoint classifier adapter for single-hand fingerspelling"""
import copy
import csv
import itertools
import logging
import os
from contextlib import nullcontext
from typing import List, Optional, Sequence, Tuple
import numpy as np
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from config import settings
from services.errors import ModelNotReadyError

logger = logging.getLogger(__name__)

HAND_LANDMARKS = 21
FEATURE_COUNT = HAND_LANDMARKS * 2

# ASL alphabet labels (A-Z, plus space and delete)
DEFAULT_LABELS = [
    "A", "B", "C", "D", "E", "F", "G", "H", "I", "J", "K", "L", "M",
    "N", "O", "P", "Q", "R", "S", "T", "U", "V", "W", "X", "Y", "Z",
    "SPACE", "DELETE"
]


class LetterClassifier:
    """
    Wraps a TFLite keypoint classifier behind the predict() contract:
    21 hand landmarks in, (letter, confidence) or None out.
    """

    def __init__(
        self,
        model_path: Optional[str] = None,
        label_path: Optional[str] = None,
        interpreter=None,
        min_confidence: Optional[float] = None,
        num_threads: Optional[int] = None
    ):
        self.model_path = model_path or settings.model_path
        self.label_path = label_path or settings.label_path
        self.min_confidence = (
            settings.min_prediction_confidence if min_confidence is None else min_confidence
        )
        self.num_threads = num_threads or settings.num_threads
        self.labels: List[str] = []
        self.interpreter = interpreter
        self.model_initialized = False

        self.tracing_enabled = settings.enable_tracing
        self.tracer = trace.get_tracer(__name__) if self.tracing_enabled else None

        self._initialize_model()

    def _create_span(self, name: str):
        """Create a span only if tracing is enabled, otherwise return a no-op context manager."""
        if self.tracing_enabled and self.tracer:
            return self.tracer.start_as_current_span(name)
        return nullcontext()

    def _initialize_model(self) -> None:
        """Initialize the interpreter and load labels."""
        try:
            if self.interpreter is None:
                import tensorflow as tf
                self.interpreter = tf.lite.Interpreter(
                    model_path=self.model_path,
                    num_threads=self.num_threads
                )
            self.interpreter.allocate_tensors()
            self.input_details = self.interpreter.get_input_details()
            self.output_details = self.interpreter.get_output_details()
            self.labels = self._load_labels()
            self.model_initialized = True
            logger.info(f"✓ Letter classifier ready ({len(self.labels)} labels)")
        except Exception as e:
            logger.error(f"✗ Failed to initialize letter classifier: {e}")
            self.model_initialized = False
            raise ModelNotReadyError(f"Failed to initialize letter classifier: {e}") from e

    def _load_labels(self) -> List[str]:
        if not os.path.exists(self.label_path):
            logger.debug(f"Label file {self.label_path} not found, using built-in labels")
            return list(DEFAULT_LABELS)

        with open(self.label_path, encoding="utf-8-sig") as f:
            labels = []
            for row in csv.reader(f):
                if not row:
                    continue
                label = row[0].strip()
                # Model was trained with an "ASL " prefix
                if label.startswith("ASL "):
                    label = label[4:]
                labels.append(label)
        return labels

    def is_ready(self) -> bool:
        return self.model_initialized

    @staticmethod
    def pre_process_landmark(landmark_list: Sequence[Sequence[float]]) -> List[float]:
        """
        Convert landmarks to wrist-relative coordinates, flatten, and scale
        by the largest absolute value.
        """
        temp_landmark_list = [list(point[:2]) for point in copy.deepcopy(landmark_list)]
        if not temp_landmark_list:
            return []

        base_x, base_y = temp_landmark_list[0][0], temp_landmark_list[0][1]
        for point in temp_landmark_list:
            point[0] = point[0] - base_x
            point[1] = point[1] - base_y

        flat = list(itertools.chain.from_iterable(temp_landmark_list))
        max_value = max(map(abs, flat))

        def normalize_(n):
            return n / max_value if max_value != 0 else 0.0

        return [float(normalize_(n)) for n in flat]

    def predict(self, landmarks: Sequence[Sequence[float]]) -> Optional[Tuple[str, float]]:
        """
        Classify one hand.

        Returns:
            (letter, confidence) or None for malformed input, unknown class
            or low confidence
        """
        if not self.model_initialized:
            raise ModelNotReadyError("Letter classifier not initialized")

        with self._create_span("letter_prediction") as span:
            features = self.pre_process_landmark(landmarks) if landmarks else []
            if len(features) != FEATURE_COUNT:
                logger.debug(f"Expected {FEATURE_COUNT} landmark coordinates, got {len(features)}")
                if span is not None:
                    span.set_attribute("prediction.skip_reason", "invalid_input_length")
                return None

            try:
                self.interpreter.set_tensor(
                    self.input_details[0]['index'],
                    np.array([features], dtype=np.float32)
                )
                self.interpreter.invoke()
                result = self.interpreter.get_tensor(self.output_details[0]['index'])
            except Exception as e:
                if span is not None:
                    span.record_exception(e)
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                raise

            probabilities = np.squeeze(result)
            index = int(np.argmax(probabilities))
            confidence = float(probabilities[index])

            if span is not None:
                span.set_attribute("model.output.class_id", index)
                span.set_attribute("model.output.confidence", confidence)

            if index >= len(self.labels):
                logger.debug(f"Unknown class id {index}")
                return None
            if confidence <= self.min_confidence:
                return None
            return self.labels[index], confidence
