"""
Shared fixtures for grainfield tests.
"""

import io
import random

import pytest

from grainfield.assets import InMemoryAudioSource
from grainfield.monitoring.logging import LogLevel, StructuredLogger
from grainfield.monitoring.metrics import MetricsRegistry
from grainfield.monitoring.reporter import ErrorReporter
from grainfield.runtime import CooperativeScheduler, OffsetClock, RendezvousScheduler
from grainfield.runtime.playback import ActivePlaybacks
from grainfield.testing import (
    ManualClock,
    RecordingFeedback,
    RecordingGrainSink,
    RecordingPlaybackSink,
    RecordingTransport,
)


@pytest.fixture
def log_output():
    return io.StringIO()


@pytest.fixture
def logger(log_output):
    """Logger writing JSON lines into log_output."""
    return StructuredLogger("test", level=LogLevel.DEBUG, output=log_output)


@pytest.fixture
def metrics():
    return MetricsRegistry()


@pytest.fixture
def feedback():
    return RecordingFeedback()


@pytest.fixture
def reporter(logger, metrics, feedback):
    return ErrorReporter(logger=logger, metrics=metrics, feedback=feedback)


@pytest.fixture
def local_clock():
    return ManualClock(100.0)


@pytest.fixture
def shared_clock(local_clock):
    """Shared clock running 1000s ahead of the local one."""
    return OffsetClock(local_clock, 1000.0)


@pytest.fixture
def scheduler(local_clock):
    return CooperativeScheduler(local_clock)


@pytest.fixture
def playback_sink():
    return RecordingPlaybackSink()


@pytest.fixture
def grain_sink():
    return RecordingGrainSink()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def rendezvous(shared_clock, scheduler, playback_sink, metrics):
    return RendezvousScheduler(
        shared_clock,
        scheduler,
        playback_sink,
        playbacks=ActivePlaybacks(metrics),
    )


@pytest.fixture
def audio_source():
    return InMemoryAudioSource()


@pytest.fixture
def rng():
    return random.Random(1234)

