"""Word Segmenter - Groups confirmed letters into words"""
import logging
import threading
import time
from functools import partial
from typing import Callable, Optional
from config import settings, PipelineConfig
from models import StableLetterEvent, WordBuffer, WordRecord, SegmenterState
from services.lexicon import Lexicon

logger = logging.getLogger(__name__)


class WordSegmenter:
    """
    Accumulates confirmed letters into the current word and finalizes it on:
    1. Explicit space
    2. Inactivity timeout (no letter for word_timeout_ms)

    The inactivity timer is re-armed under the same lock that guards the buffer.
    Every arm/cancel bumps a generation counter, so a timer that fires after a
    newer letter (or after shutdown) finds a stale generation and does nothing.
    """

    def __init__(
        self,
        lexicon: Lexicon,
        config: Optional[PipelineConfig] = None,
        on_word: Optional[Callable[[WordRecord], None]] = None,
        clock: Callable[[], float] = time.monotonic,
        timer_factory: Callable = threading.Timer,
        lock: Optional[threading.RLock] = None
    ):
        config = config or settings.pipeline_config()
        self.lexicon = lexicon
        self.word_timeout_ms = config.word_timeout_ms
        self.valid_word_bonus = config.valid_word_bonus
        self.on_word = on_word
        self._clock = clock
        self._timer_factory = timer_factory
        self._lock = lock or threading.RLock()

        self._buffer = WordBuffer()
        self._timer = None
        self._generation = 0
        self._closed = False

    @property
    def state(self) -> SegmenterState:
        with self._lock:
            if self._buffer.is_empty:
                return SegmenterState.IDLE
            return SegmenterState.ACCUMULATING

    def current_word(self) -> str:
        with self._lock:
            return self._buffer.current_word

    def on_letter(self, event: StableLetterEvent) -> None:
        """Append a confirmed letter and re-arm the inactivity timer"""
        with self._lock:
            if self._buffer.is_empty:
                self._buffer.started_at = self._clock()
            self._buffer.letters.append(event)
            self._arm_timer()
            logger.debug(f"Current word: '{self._buffer.current_word}'")

    def on_space(self) -> Optional[WordRecord]:
        """Finalize the current word; no-op when idle"""
        with self._lock:
            if self._buffer.is_empty:
                return None
            return self._finalize()

    def on_backspace(self) -> Optional[StableLetterEvent]:
        """Remove the last letter without finalizing"""
        with self._lock:
            if self._buffer.is_empty:
                return None
            removed = self._buffer.letters.pop()
            if self._buffer.is_empty:
                self._buffer = WordBuffer()
                self._cancel_timer()
            else:
                self._arm_timer()
            logger.debug(f"Removed '{removed.letter}' → word: '{self._buffer.current_word}'")
            return removed

    def on_clear(self) -> None:
        """Discard the current word without finalizing"""
        with self._lock:
            if not self._buffer.is_empty:
                logger.debug(f"Discarded word '{self._buffer.current_word}'")
            self._buffer = WordBuffer()
            self._cancel_timer()

    def shutdown(self) -> None:
        """Cancel the pending timer; later firings become no-ops"""
        with self._lock:
            self._closed = True
            self._cancel_timer()

    # === Timer ===

    def _arm_timer(self) -> None:
        self._cancel_timer()
        timer = self._timer_factory(
            self.word_timeout_ms / 1000.0,
            partial(self._on_timeout, self._generation)
        )
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _cancel_timer(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timeout(self, generation: int) -> None:
        with self._lock:
            if self._closed or generation != self._generation or self._buffer.is_empty:
                logger.debug(f"Ignoring stale word timeout (generation {generation})")
                return

            logger.info(
                f"⏸️  Pause detected: no letter for {self.word_timeout_ms}ms, "
                f"finalizing '{self._buffer.current_word}'"
            )
            self._finalize()

    # === Finalization ===

    def _finalize(self) -> WordRecord:
        buffer = self._buffer
        self._buffer = WordBuffer()
        self._cancel_timer()

        word = buffer.current_word
        confidences = [event.confidence for event in buffer.letters]
        average_confidence = sum(confidences) / len(confidences)
        completion_time_ms = max(0.0, (self._clock() - buffer.started_at) * 1000)

        accuracy = average_confidence
        if self.lexicon.contains(word):
            accuracy = min(average_confidence + self.valid_word_bonus, 1.0)

        record = WordRecord(
            word=word,
            letters=tuple(buffer.letters),
            average_confidence=average_confidence,
            completion_time_ms=completion_time_ms,
            accuracy=accuracy
        )

        logger.info(
            f"📤 Finalized word: '{word}' (avg_conf={average_confidence:.2f}, "
            f"accuracy={accuracy:.2f}, {completion_time_ms:.0f}ms)"
        )

        if self.on_word is not None:
            self.on_word(record)
        return record
