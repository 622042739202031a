"""
grainfield testing utilities.

Components:
    ManualClock            - Clock moved by hand
    RecordingPlaybackSink  - PlaybackSink keeping every buffer
    RecordingGrainSink     - GrainSink keeping every event
    RecordingFeedback      - FeedbackSink counting blinks
    RecordingTransport     - Transport keeping every message
    create_test_audio      - Generated audio
    create_segments        - Segment sets with chosen log powers

Usage:
    from grainfield.testing import ManualClock, RecordingGrainSink, create_segments

    clock = ManualClock()
    scheduler = CooperativeScheduler(clock)
    sink = RecordingGrainSink()
    engine = GranularEngine(create_segments([-30, -10, 0]), scheduler, sink)
"""

from grainfield.runtime.clock import ManualClock

from grainfield.testing.mock import (
    PlayRecord,
    RecordingFeedback,
    RecordingGrainSink,
    RecordingPlaybackSink,
    RecordingTransport,
    SentMessage,
)

from grainfield.testing.fixtures import (
    create_segments,
    create_test_audio,
    create_test_buffer,
)

__all__ = [
    # Clock
    "ManualClock",
    # Mocks
    "PlayRecord",
    "RecordingFeedback",
    "RecordingGrainSink",
    "RecordingPlaybackSink",
    "RecordingTransport",
    "SentMessage",
    # Fixtures
    "create_segments",
    "create_test_audio",
    "create_test_buffer",
]
