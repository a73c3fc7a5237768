"""
Pytest configuration and shared fixtures for sign-text-service tests.
"""

import os
import sys
import pytest

# Add the project root directory to Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

# Settings are read at import time
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["ENABLE_TRACING"] = "false"
os.environ.pop("LEXICON_PATH", None)

from config import PipelineConfig  # noqa: E402
from services.lexicon import Lexicon  # noqa: E402


class FakeClock:
    """Manually advanced clock, counts in whole milliseconds"""

    def __init__(self):
        self.now_ms = 0

    def __call__(self) -> float:
        return self.now_ms / 1000.0


class FakeTimer:
    def __init__(self, due_ms: int, function):
        self.due_ms = due_ms
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    @property
    def pending(self) -> bool:
        return self.started and not self.cancelled and not self.fired


class FakeScheduler:
    """threading.Timer replacement; timers fire when the clock is advanced past them"""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.timers = []

    def __call__(self, interval: float, function):
        timer = FakeTimer(self.clock.now_ms + round(interval * 1000), function)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.timers if t.pending]

    def advance(self, ms: int) -> None:
        target = self.clock.now_ms + ms
        while True:
            due = [t for t in self.pending if t.due_ms <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due_ms)
            self.clock.now_ms = max(self.clock.now_ms, timer.due_ms)
            timer.fired = True
            timer.function()
        self.clock.now_ms = target


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return FakeScheduler(clock)


@pytest.fixture
def config():
    return PipelineConfig()


@pytest.fixture
def lexicon():
    return Lexicon(["THE", "CAT", "AND", "HELLO", "WORLD"])


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "slow: test uses real timers and sleeps"
    )
