"""Data models for Sign Text Service"""
from enum import Enum
from typing import Optional, List, Tuple
from pydantic import BaseModel, Field
from datetime import datetime, timezone

NO_LETTER = "none"
SPACE = "SPACE"
DELETE = "DELETE"


class RawSample(BaseModel):
    """Per-frame classification, produced once per processed frame"""
    letter: str = NO_LETTER
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    timestamp: float  # Monotonic seconds


class StableLetterEvent(BaseModel):
    """Letter confirmed by the stabilizer"""
    model_config = {"frozen": True}

    letter: str
    confidence: float
    confirmed_at: float


class WordBuffer(BaseModel):
    """Word being constructed from confirmed letters"""
    letters: List[StableLetterEvent] = Field(default_factory=list)
    started_at: Optional[float] = None

    @property
    def current_word(self) -> str:
        """Current word string"""
        return "".join(event.letter for event in self.letters)

    @property
    def is_empty(self) -> bool:
        return not self.letters


class WordRecord(BaseModel):
    """Finalized word, immutable once appended to the session history"""
    model_config = {"frozen": True}

    word: str
    letters: Tuple[StableLetterEvent, ...]
    average_confidence: float
    completion_time_ms: float
    accuracy: float
    finalized_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def letter_count(self) -> int:
        return len(self.letters)


class Correction(BaseModel):
    original: str
    suggested: str


class WordFrequency(BaseModel):
    word: str
    count: int


class SessionAnalysis(BaseModel):
    """Derived view over the session history, recomputed on demand"""
    recognized_words: List[WordRecord] = Field(default_factory=list)
    total_letters: int = 0
    average_confidence: float = 0.0
    recognition_speed: float = 0.0  # letters per minute
    common_words: List[WordFrequency] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    corrections: List[Correction] = Field(default_factory=list)


class SessionSnapshot(BaseModel):
    """Read-only state handed to the UI layer"""
    recognized_text: str
    current_word: str
    analysis: SessionAnalysis


class SessionStats(BaseModel):
    total_words: int
    total_letters: int
    average_confidence: float
    recognition_speed: float


class ReportData(BaseModel):
    recognized_words: List[WordRecord]
    session_stats: SessionStats


class AnalysisReport(BaseModel):
    """Exported session report for download/audit"""
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    analysis: SessionAnalysis
    raw_data: ReportData


class SegmenterState(str, Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"


class SessionLifecycle(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
