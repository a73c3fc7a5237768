#!/usr/bin/env python3
"""
Sign Text Service - Replay Entry Point
Replays a recorded frame sequence through a recognition session with
realistic timing and prints the resulting text and session analysis.

Replay file format:
    {
      "description": "...",
      "frames": [
        {"timestamp_ms": 0, "prediction": "C", "confidence": 0.92},
        {"timestamp_ms": 33, "coordinates": [[x, y], ...]},
        {"timestamp_ms": 66, "skip": true}
      ]
    }
Frames with "coordinates" need a keypoint model (--model-path).
"""

import argparse
import json
import logging
import signal
import sys
import time
from typing import Callable, List, Optional, Tuple
from config import settings
from services.letter_classifier import LetterClassifier
from services.lexicon import load_lexicon
from services.pipeline import RecognitionSession

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)

# Global shutdown flag
shutdown_flag = False


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully"""
    global shutdown_flag
    logger.info(f"Received signal {signum}, stopping replay...")
    shutdown_flag = True


class RecordedPredictionClassifier:
    """Stand-in classifier for replay files that carry predictions instead of landmarks"""

    def __init__(self):
        self._warned = False

    def is_ready(self) -> bool:
        return True

    def predict(self, landmarks) -> Optional[Tuple[str, float]]:
        if not self._warned:
            logger.warning("Replay has 'coordinates' frames but no --model-path; treating them as no prediction")
            self._warned = True
        return None


class ReplayTimer:
    def __init__(self, due: float, function: Callable):
        self.due = due
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True


class ReplayTimeline:
    """
    Session clock and timer factory driven by the recorded timestamps.
    Timers fire when the timeline is advanced past them, so word timeouts,
    gaps and recognition speed follow the recording whatever the pacing.
    """

    def __init__(self):
        self.now = 0.0
        self._timers: List[ReplayTimer] = []

    def __call__(self) -> float:
        return self.now

    def timer(self, interval: float, function: Callable) -> ReplayTimer:
        timer = ReplayTimer(self.now + interval, function)
        self._timers.append(timer)
        return timer

    def advance_to(self, target: float) -> None:
        """Move to target seconds, firing due timers in order"""
        while True:
            due = [t for t in self._timers if t.started and not t.cancelled and t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self._timers.remove(timer)
            self.now = max(self.now, timer.due)
            timer.function()
        self._timers = [t for t in self._timers if not t.cancelled]
        self.now = max(self.now, target)


def get_args(argv=None):
    parser = argparse.ArgumentParser(description="Replay recorded frames through a recognition session")
    parser.add_argument("replay_file", help="JSON file with a 'frames' list")
    parser.add_argument("--model-path", help="TFLite keypoint classifier for 'coordinates' frames", default=None)
    parser.add_argument("--label-path", help="Label CSV for the keypoint classifier", default=None)
    parser.add_argument("--lexicon", help="Word list file (one word per line)", default=None)
    parser.add_argument("--speed", help="Replay speed multiplier", type=float, default=1.0)
    parser.add_argument("--output", help="Write the exported analysis to this file", default=None)
    return parser.parse_args(argv)


def load_replay(filename: str) -> dict:
    """Load the replay data from JSON file."""
    with open(filename, 'r') as f:
        data = json.load(f)
    if not isinstance(data.get("frames"), list):
        raise ValueError(f"{filename} has no 'frames' list")
    return data


def build_session(args, timeline: Optional[ReplayTimeline] = None) -> RecognitionSession:
    if args.model_path:
        classifier = LetterClassifier(model_path=args.model_path, label_path=args.label_path)
    else:
        classifier = RecordedPredictionClassifier()
    if timeline is None:
        return RecognitionSession(classifier, lexicon=load_lexicon(args.lexicon))
    return RecognitionSession(
        classifier,
        lexicon=load_lexicon(args.lexicon),
        clock=timeline,
        timer_factory=timeline.timer
    )


def replay(
    session: RecognitionSession,
    frames: list,
    speed: float = 1.0,
    timeline: Optional[ReplayTimeline] = None
) -> int:
    """
    Feed frames at their recorded offsets.
    Speed only changes the pacing; with a timeline the session sees recorded time.
    Returns number of confirmed letters.
    """
    confirmed = 0
    start_time = time.monotonic()

    for i, frame in enumerate(frames):
        if shutdown_flag:
            break

        offset = frame.get("timestamp_ms", 0) / 1000.0
        delay = start_time + offset / speed - time.monotonic()
        if delay > 0:
            time.sleep(delay)
        if timeline is not None:
            timeline.advance_to(offset)

        if frame.get("skip", False):
            event = session.on_frame([])
        elif "coordinates" in frame:
            event = session.on_frame([frame["coordinates"]])
        else:
            event = session.on_prediction(frame.get("prediction"), frame.get("confidence", 0.0))

        if event is not None:
            confirmed += 1
            logger.info(f"[{i + 1:4d}/{len(frames):4d}] confirmed '{event.letter}' → '{session.snapshot().recognized_text}'")

    return confirmed


def main(argv=None):
    """Main entry point"""
    args = get_args(argv)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info("=" * 80)
    logger.info(f"Starting {settings.service_name} replay")
    logger.info("=" * 80)

    session = None
    try:
        data = load_replay(args.replay_file)
        frames = data["frames"]
        logger.info(f"Replay file: {args.replay_file} ({len(frames)} frames)")
        if data.get("description"):
            logger.info(f"Description: {data['description']}")

        timeline = ReplayTimeline()
        session = build_session(args, timeline)
        session.start_session()

        confirmed = replay(session, frames, args.speed, timeline)

        # Let the trailing word time out
        if not shutdown_flag and session.snapshot().current_word:
            timeline.advance_to(timeline() + session.config.word_timeout_ms / 1000.0)

        snapshot = session.snapshot()
        logger.info("=" * 80)
        logger.info(f"Confirmed letters: {confirmed}")
        logger.info(f"Recognized text: '{snapshot.recognized_text}'")
        logger.info(f"Average confidence: {snapshot.analysis.average_confidence:.2f}")
        logger.info(f"Recognition speed: {snapshot.analysis.recognition_speed:.1f} letters/min")
        for correction in snapshot.analysis.corrections:
            logger.info(f"   {correction.original} → {correction.suggested}")
        logger.info("=" * 80)

        report = session.export_analysis()
        if args.output:
            with open(args.output, 'w') as f:
                f.write(report)
            logger.info(f"✓ Wrote analysis report to {args.output}")
        else:
            print(report)

    except KeyboardInterrupt:
        logger.info("\nReceived keyboard interrupt, shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        if session is not None:
            session.end_session()
        logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
