"""Letter Stabilizer - Debounces per-frame classifications into confirmed letters"""
import logging
from typing import Optional
from config import settings, PipelineConfig
from models import RawSample, StableLetterEvent, NO_LETTER

logger = logging.getLogger(__name__)


class LetterStabilizer:
    """
    Implements the confirmation rules for per-frame letter guesses:
    1. Confidence gate (samples below threshold break the run)
    2. Dwell check (same letter held for dwell_frames frames, or dwell_ms when set)
    3. Minimum gap since the previous confirmation
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        config = config or settings.pipeline_config()
        self.confidence_threshold = config.confidence_threshold
        self.dwell_frames = config.dwell_frames
        self.dwell_ms = config.dwell_ms
        self.min_gap_ms = config.min_gap_ms

        self._letter: Optional[str] = None
        self._run_length = 0
        self._first_seen_at: Optional[float] = None
        self._last_confirmed_at: Optional[float] = None

    @property
    def candidate(self) -> Optional[str]:
        return self._letter

    @property
    def run_length(self) -> int:
        return self._run_length

    def observe(self, sample: RawSample) -> Optional[StableLetterEvent]:
        """
        Feed one frame's classification.

        Returns:
            StableLetterEvent if the candidate letter was confirmed, None otherwise
        """
        now = sample.timestamp

        # 1. Confidence gate
        if sample.letter == NO_LETTER or sample.confidence < self.confidence_threshold:
            if self._letter is not None:
                logger.debug(
                    f"Run of '{self._letter}' broken "
                    f"(letter={sample.letter}, conf={sample.confidence:.2f})"
                )
            self._reset_candidate()
            return None

        # 2. Extend or replace the candidate run
        if sample.letter == self._letter:
            self._run_length += 1
        else:
            self._letter = sample.letter
            self._run_length = 1
            self._first_seen_at = now

        # 3. Dwell requirement
        if not self._is_stable(now):
            return None

        # 4. Gap since the last confirmation
        if self._last_confirmed_at is not None:
            since_last_ms = (now - self._last_confirmed_at) * 1000
            if since_last_ms <= self.min_gap_ms:
                logger.debug(
                    f"Candidate '{self._letter}' stable but gap too short "
                    f"({since_last_ms:.0f}ms <= {self.min_gap_ms}ms)"
                )
                return None

        event = StableLetterEvent(
            letter=self._letter,
            confidence=sample.confidence,
            confirmed_at=now
        )
        self._last_confirmed_at = now
        self._reset_candidate()

        logger.info(f"✓ Confirmed '{event.letter}' (conf={event.confidence:.2f})")
        return event

    def _is_stable(self, now: float) -> bool:
        if self.dwell_ms is not None:
            return (now - self._first_seen_at) * 1000 >= self.dwell_ms
        return self._run_length >= self.dwell_frames

    def _reset_candidate(self) -> None:
        self._letter = None
        self._run_length = 0
        self._first_seen_at = None

    def reset(self) -> None:
        """Drop the candidate run; the gap since the last confirmation still applies"""
        self._reset_candidate()
