"""Text Analyzer - Word validity, edit-distance suggestions and session statistics"""
import logging
import threading
from typing import Optional, List, Dict
from config import settings, PipelineConfig
from models import WordRecord, SessionAnalysis, WordFrequency, Correction
from services.lexicon import Lexicon

logger = logging.getLogger(__name__)


def levenshtein_distance(s1: str, s2: str) -> int:
    """Calculate Levenshtein edit distance between two strings."""
    if len(s1) > len(s2):
        s1, s2 = s2, s1

    distances = range(len(s1) + 1)
    for i2, c2 in enumerate(s2):
        distances_ = [i2 + 1]
        for i1, c1 in enumerate(s1):
            if c1 == c2:
                distances_.append(distances[i1])
            else:
                distances_.append(1 + min((distances[i1], distances[i1 + 1], distances_[-1])))
        distances = distances_

    return distances[-1]


class TextAnalyzer:
    """
    Keeps the session history of finalized words and derives the analysis from it.
    The analysis is never stored: every call recomputes it from the history.
    """

    def __init__(
        self,
        lexicon: Lexicon,
        config: Optional[PipelineConfig] = None,
        lock: Optional[threading.RLock] = None
    ):
        config = config or settings.pipeline_config()
        self.lexicon = lexicon
        self.min_distance = config.suggestion_min_distance
        self.max_distance = config.suggestion_max_distance
        self.max_suggestions = config.max_suggestions
        self.top_words = config.top_words
        self._lock = lock or threading.RLock()
        self._history: List[WordRecord] = []

    @property
    def history(self) -> List[WordRecord]:
        with self._lock:
            return list(self._history)

    def ingest(self, record: WordRecord) -> None:
        """Append a finalized word to the session history"""
        with self._lock:
            self._history.append(record)
            logger.debug(f"Ingested '{record.word}' ({len(self._history)} word(s) in history)")

    def reset(self) -> None:
        with self._lock:
            self._history = []
            logger.debug("Cleared session history")

    def is_valid_word(self, word: str) -> bool:
        return self.lexicon.contains(word)

    def get_suggestions(self, word: str) -> List[str]:
        """
        Lexicon entries within the configured edit-distance window, closest first.
        Ties keep lexicon order.
        """
        query = word.upper()
        candidates = []
        for entry in self.lexicon.words:
            distance = levenshtein_distance(query, entry)
            if self.min_distance <= distance <= self.max_distance:
                candidates.append((distance, entry))

        candidates.sort(key=lambda c: c[0])
        return [entry for _, entry in candidates[:self.max_suggestions]]

    def analysis(self) -> SessionAnalysis:
        """Compute the session analysis from the current history"""
        with self._lock:
            history = list(self._history)

        total_letters = sum(record.letter_count for record in history)
        average_confidence = (
            sum(record.average_confidence for record in history) / len(history)
            if history else 0.0
        )

        total_time_ms = sum(record.completion_time_ms for record in history)
        recognition_speed = (total_letters * 60000) / total_time_ms if total_time_ms > 0 else 0.0

        suggestions: List[str] = []
        if history and not self.is_valid_word(history[-1].word):
            suggestions = self.get_suggestions(history[-1].word)

        return SessionAnalysis(
            recognized_words=history,
            total_letters=total_letters,
            average_confidence=average_confidence,
            recognition_speed=recognition_speed,
            common_words=self._word_frequencies(history),
            suggestions=suggestions,
            corrections=self._corrections(history)
        )

    def _word_frequencies(self, history: List[WordRecord]) -> List[WordFrequency]:
        counts: Dict[str, int] = {}
        for record in history:
            word = record.word.upper()
            counts[word] = counts.get(word, 0) + 1

        # dict keeps first-occurrence order, sorted() is stable
        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
        return [WordFrequency(word=word, count=count) for word, count in ranked[:self.top_words]]

    def _corrections(self, history: List[WordRecord]) -> List[Correction]:
        corrections = []
        for record in history:
            if self.is_valid_word(record.word):
                continue
            suggestions = self.get_suggestions(record.word)
            if suggestions:
                corrections.append(Correction(original=record.word, suggested=suggestions[0]))
        return corrections
