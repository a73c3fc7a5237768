"""Configuration for Sign Text Service"""
import os
from typing import Optional
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings


class PipelineConfig(BaseModel):
    """Tuning knobs for one recognition session, validated at construction"""
    model_config = {"frozen": True}

    # Letter stabilizer
    confidence_threshold: float = Field(0.7, ge=0.0, le=1.0)
    dwell_frames: int = Field(30, ge=1)  # ~1s at 30fps
    dwell_ms: Optional[int] = Field(None, ge=0)  # wall-clock dwell, overrides dwell_frames when set
    min_gap_ms: int = Field(1500, ge=0)

    # Word segmenter
    word_timeout_ms: int = Field(2000, gt=0)
    valid_word_bonus: float = Field(0.1, ge=0.0, le=1.0)

    # Text analyzer
    suggestion_min_distance: int = Field(1, ge=1)
    suggestion_max_distance: int = Field(2, ge=1)
    max_suggestions: int = Field(3, ge=0)
    top_words: int = Field(5, ge=0)

    @model_validator(mode="after")
    def _check_distance_window(self) -> "PipelineConfig":
        if self.suggestion_min_distance > self.suggestion_max_distance:
            raise ValueError(
                f"suggestion_min_distance ({self.suggestion_min_distance}) must not exceed "
                f"suggestion_max_distance ({self.suggestion_max_distance})"
            )
        return self


class Settings(BaseSettings):
    # Service
    service_name: str = "sign-text-service"
    log_level: str = "INFO"
    enable_tracing: bool = False

    # Letter stabilizer
    confidence_threshold: float = 0.7  # Minimum per-frame confidence to count towards a run
    dwell_frames: int = 30
    dwell_ms: Optional[int] = None
    min_gap_ms: int = 1500  # Minimum time between two confirmed letters

    # Word finalization
    word_timeout_ms: int = 2000  # 2s inactivity finalizes the current word
    valid_word_bonus: float = 0.1

    # Suggestions / statistics
    suggestion_min_distance: int = 1
    suggestion_max_distance: int = 2
    max_suggestions: int = 3
    top_words: int = 5

    # Keypoint classifier
    model_path: str = os.getenv("MODEL_PATH", "model/keypoint_classifier/keypoint_classifier.tflite")
    label_path: str = os.getenv("LABEL_PATH", "model/keypoint_classifier/keypoint_classifier_label.csv")
    min_prediction_confidence: float = 0.3
    num_threads: int = 1

    # Lexicon word list (one word per line); built-in list when unset
    lexicon_path: Optional[str] = os.getenv("LEXICON_PATH")

    class Config:
        env_file = ".env"
        case_sensitive = False
        protected_namespaces = ()

    def pipeline_config(self) -> PipelineConfig:
        """Build the validated per-session pipeline configuration"""
        return PipelineConfig(
            confidence_threshold=self.confidence_threshold,
            dwell_frames=self.dwell_frames,
            dwell_ms=self.dwell_ms,
            min_gap_ms=self.min_gap_ms,
            word_timeout_ms=self.word_timeout_ms,
            valid_word_bonus=self.valid_word_bonus,
            suggestion_min_distance=self.suggestion_min_distance,
            suggestion_max_distance=self.suggestion_max_distance,
            max_suggestions=self.max_suggestions,
            top_words=self.top_words,
        )


settings = Settings()
