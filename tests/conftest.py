import sys
from pathlib import Path

import pytest

# Project root on the path, same as main.py does
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.events import EventBus
from modules.utils.config import Config


@pytest.fixture(autouse=True)
def clean_singletons():
    """Each test gets an empty event bus and fresh config."""
    EventBus().reset()
    Config.reset()
    yield
    EventBus().reset()
    Config.reset()


class FakeClock:
    """Manually advanced clock; callable like time.monotonic."""

    def __init__(self, start=0.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now += delta
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def recorder(bus):
    """Collects emitted events as (name, kwargs) tuples."""
    events = []

    def subscribe(*names):
        for name in names:
            bus.subscribe(name, lambda _n=name, **kw: events.append((_n, kw)))
        return events

    return subscribe
