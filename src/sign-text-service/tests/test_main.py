"""Tests for the replay entry point"""
import json
import pytest
from config import PipelineConfig
from main import RecordedPredictionClassifier, ReplayTimeline, get_args, load_replay, replay
from services.pipeline import RecognitionSession


def test_get_args_defaults():
    args = get_args(["frames.json"])

    assert args.replay_file == "frames.json"
    assert args.model_path is None
    assert args.speed == 1.0
    assert args.output is None


def test_load_replay_requires_frames(tmp_path):
    path = tmp_path / "replay.json"
    path.write_text(json.dumps({"description": "empty"}))

    with pytest.raises(ValueError):
        load_replay(str(path))


def test_replay_feeds_recorded_predictions(lexicon, clock, scheduler):
    session = RecognitionSession(
        RecordedPredictionClassifier(),
        lexicon=lexicon,
        config=PipelineConfig(dwell_frames=2),
        clock=clock,
        timer_factory=scheduler
    )
    session.start_session()
    frames = [
        {"timestamp_ms": 0, "prediction": "H", "confidence": 0.9},
        {"timestamp_ms": 1, "skip": True},
        {"timestamp_ms": 2, "prediction": "H", "confidence": 0.9},
        {"timestamp_ms": 3, "prediction": "H", "confidence": 0.9},
        {"timestamp_ms": 4, "coordinates": [[0.0, 0.0]] * 21},
    ]

    confirmed = replay(session, frames, speed=1000.0)

    assert confirmed == 1
    assert session.snapshot().current_word == "H"


def timeline_session(lexicon, timeline):
    session = RecognitionSession(
        RecordedPredictionClassifier(),
        lexicon=lexicon,
        config=PipelineConfig(dwell_frames=2, min_gap_ms=0),
        clock=timeline,
        timer_factory=timeline.timer
    )
    session.start_session()
    return session


HI_FRAMES = [
    {"timestamp_ms": 0, "prediction": "H", "confidence": 0.9},
    {"timestamp_ms": 100, "prediction": "H", "confidence": 0.9},
    {"timestamp_ms": 1000, "prediction": "I", "confidence": 0.9},
    {"timestamp_ms": 1100, "prediction": "I", "confidence": 0.9},
]


def test_replay_statistics_do_not_depend_on_speed(lexicon):
    """Session time follows the recorded timestamps, speed only changes pacing"""
    results = []
    for speed in (20.0, 80.0):
        timeline = ReplayTimeline()
        session = timeline_session(lexicon, timeline)

        assert replay(session, HI_FRAMES, speed=speed, timeline=timeline) == 2
        record = session.manual_space()
        results.append((record.completion_time_ms, session.snapshot().analysis.recognition_speed))
        session.end_session()

    assert results[0] == results[1]
    assert results[0][0] == pytest.approx(1000.0)
    assert results[0][1] == pytest.approx(120.0)


def test_timeline_fires_word_timeout(lexicon):
    timeline = ReplayTimeline()
    session = timeline_session(lexicon, timeline)
    replay(session, HI_FRAMES, speed=1000.0, timeline=timeline)

    timeline.advance_to(3.0)
    assert session.snapshot().current_word == "HI"

    timeline.advance_to(3.2)
    history = session.analyzer.history
    assert [r.word for r in history] == ["HI"]
    assert history[0].completion_time_ms == pytest.approx(3000.0)
    assert timeline() == pytest.approx(3.2)


def test_coordinates_without_model_warn_once(caplog):
    classifier = RecordedPredictionClassifier()

    with caplog.at_level("WARNING"):
        assert classifier.predict([[0.0, 0.0]] * 21) is None
        assert classifier.predict([[0.0, 0.0]] * 21) is None

    warnings = [r for r in caplog.records if r.levelname == "WARNING"]
    assert len(warnings) == 1
    assert "--model-path" in warnings[0].getMessage()
