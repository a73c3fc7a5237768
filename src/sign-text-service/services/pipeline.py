"""Recognition Session - Wires stabilizer, segmenter and analyzer for one user session"""
import logging
import threading
import time
from contextlib import nullcontext
from typing import Callable, Optional, Protocol, Sequence, Tuple
from opentelemetry import trace
from config import settings, PipelineConfig
from models import (
    AnalysisReport, RawSample, ReportData, SessionLifecycle, SessionSnapshot,
    SessionStats, StableLetterEvent, WordRecord, NO_LETTER, SPACE, DELETE
)
from services.errors import ModelNotReadyError, SessionNotReadyError, SignTextError
from services.letter_stabilizer import LetterStabilizer
from services.lexicon import Lexicon, load_lexicon
from services.text_analyzer import TextAnalyzer
from services.word_segmenter import WordSegmenter

logger = logging.getLogger(__name__)


class Classifier(Protocol):
    def is_ready(self) -> bool:
        ...

    def predict(self, landmarks: Sequence[Sequence[float]]) -> Optional[Tuple[str, float]]:
        ...


class RecognitionSession:
    """
    Owns one LetterStabilizer, WordSegmenter and TextAnalyzer.

    Frame path: landmarks → classifier → stabilizer → segmenter → analyzer.
    Manual edits go straight to the segmenter/analyzer. All component state is
    guarded by one session lock; frames arriving while the previous frame is
    still being processed are dropped.
    """

    def __init__(
        self,
        classifier: Classifier,
        lexicon: Optional[Lexicon] = None,
        config: Optional[PipelineConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        timer_factory: Callable = threading.Timer
    ):
        self.classifier = classifier
        self.lexicon = lexicon if lexicon is not None else load_lexicon()
        self.config = config or settings.pipeline_config()
        self._clock = clock
        self._timer_factory = timer_factory

        self._lock = threading.RLock()
        self._frame_guard = threading.Lock()
        self._lifecycle = SessionLifecycle.UNINITIALIZED

        self.tracing_enabled = settings.enable_tracing
        self.tracer = trace.get_tracer(__name__) if self.tracing_enabled else None

        self._build_components()

    def _build_components(self) -> None:
        self.stabilizer = LetterStabilizer(self.config)
        self.analyzer = TextAnalyzer(self.lexicon, self.config, lock=self._lock)
        self.segmenter = WordSegmenter(
            self.lexicon,
            self.config,
            on_word=self.analyzer.ingest,
            clock=self._clock,
            timer_factory=self._timer_factory,
            lock=self._lock
        )

    def _create_span(self, name: str):
        """Create a span only if tracing is enabled, otherwise return a no-op context manager."""
        if self.tracing_enabled and self.tracer:
            return self.tracer.start_as_current_span(name)
        return nullcontext()

    # === Lifecycle ===

    @property
    def lifecycle(self) -> SessionLifecycle:
        return self._lifecycle

    def is_ready(self) -> bool:
        return self._lifecycle is SessionLifecycle.READY

    def start_session(self) -> None:
        """Reset all state and accept frames"""
        if not self.classifier.is_ready():
            raise ModelNotReadyError("Letter classifier not initialized")

        with self._lock:
            self.segmenter.shutdown()
            self._build_components()
            self._lifecycle = SessionLifecycle.READY

        logger.info(
            f"✓ Recognition session started (threshold={self.config.confidence_threshold}, "
            f"dwell={self.config.dwell_ms or self.config.dwell_frames}"
            f"{'ms' if self.config.dwell_ms else ' frames'}, "
            f"timeout={self.config.word_timeout_ms}ms, lexicon={len(self.lexicon)} words)"
        )

    def end_session(self) -> None:
        """Stop accepting frames; a pending word timeout will not fire"""
        with self._lock:
            self.segmenter.shutdown()
            self._lifecycle = SessionLifecycle.UNINITIALIZED
        logger.info("Recognition session ended")

    def _require_ready(self) -> None:
        if self._lifecycle is not SessionLifecycle.READY:
            raise SessionNotReadyError("Recognition session not started")

    # === Frame path ===

    def on_frame(self, hands: Sequence[Sequence[Sequence[float]]]) -> Optional[StableLetterEvent]:
        """
        Process one frame's landmark detector output.

        Args:
            hands: Zero or more hands, each a list of [x, y(, z)] points.
                   Only the first hand is classified.

        Returns:
            StableLetterEvent if this frame confirmed a letter, None otherwise
        """
        self._require_ready()
        if not self._frame_guard.acquire(blocking=False):
            logger.debug("Dropping frame: previous frame still processing")
            return None

        try:
            with self._create_span("frame_processing") as span:
                prediction = self._classify(hands)
                if span is not None:
                    span.set_attribute("frame.hands", len(hands) if hands else 0)
                    span.set_attribute("frame.prediction", prediction[0] if prediction else NO_LETTER)

                if prediction is None:
                    return self._observe(NO_LETTER, 0.0)
                return self._observe(*prediction)
        finally:
            self._frame_guard.release()

    def on_prediction(self, letter: Optional[str], confidence: float) -> Optional[StableLetterEvent]:
        """Process an already classified frame (None letter means no prediction)"""
        self._require_ready()
        if not self._frame_guard.acquire(blocking=False):
            logger.debug("Dropping frame: previous frame still processing")
            return None

        try:
            return self._observe(letter or NO_LETTER, confidence)
        finally:
            self._frame_guard.release()

    def _classify(self, hands) -> Optional[Tuple[str, float]]:
        if not hands:
            return None

        try:
            return self.classifier.predict(hands[0])
        except SignTextError:
            raise
        except Exception as e:
            logger.warning(f"Classifier failed, treating frame as no prediction: {e}")
            return None

    def _observe(self, letter: str, confidence: float) -> Optional[StableLetterEvent]:
        sample = RawSample(
            letter=letter,
            confidence=min(max(confidence, 0.0), 1.0),
            timestamp=self._clock()
        )

        with self._lock:
            event = self.stabilizer.observe(sample)
            if event is None:
                return None

            if event.letter == SPACE:
                self.segmenter.on_space()
            elif event.letter == DELETE:
                self.segmenter.on_backspace()
            else:
                self.segmenter.on_letter(event)
        return event

    # === Manual edits ===

    def manual_space(self) -> Optional[WordRecord]:
        with self._lock:
            return self.segmenter.on_space()

    def manual_backspace(self) -> None:
        with self._lock:
            self.segmenter.on_backspace()

    def clear_all(self) -> None:
        """Discard the current word, the session history and the candidate run"""
        with self._lock:
            self.segmenter.on_clear()
            self.analyzer.reset()
            self.stabilizer.reset()
        logger.info("Cleared recognized text and session history")

    # === Queries ===

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            current_word = self.segmenter.current_word()
            analysis = self.analyzer.analysis()

        words = [record.word for record in analysis.recognized_words]
        if current_word:
            words.append(current_word)

        return SessionSnapshot(
            recognized_text=" ".join(words),
            current_word=current_word,
            analysis=analysis
        )

    def export_analysis(self) -> str:
        """Serialize the analysis and the raw word history as a JSON report"""
        analysis = self.analyzer.analysis()
        report = AnalysisReport(
            analysis=analysis,
            raw_data=ReportData(
                recognized_words=analysis.recognized_words,
                session_stats=SessionStats(
                    total_words=len(analysis.recognized_words),
                    total_letters=analysis.total_letters,
                    average_confidence=analysis.average_confidence,
                    recognition_speed=analysis.recognition_speed
                )
            )
        )
        return report.model_dump_json(indent=2)
