"""
Node runtime: clocks, the cooperative scheduler and shared-time playback.

Components:
    MonotonicClock / OffsetClock / ManualClock - local and shared time
    CooperativeScheduler - single-threaded timed callback queue
    ActivePlaybacks      - registry of buffers handed to the sink
    RendezvousScheduler  - start buffers at a shared-clock time

Usage:
    from grainfield.runtime import CooperativeScheduler, RendezvousScheduler

    scheduler = CooperativeScheduler()
    rendezvous = RendezvousScheduler(shared_clock, scheduler, sink)
    rendezvous.schedule(sync_start_time, rendered)
"""

from grainfield.runtime.clock import ManualClock, MonotonicClock, OffsetClock
from grainfield.runtime.scheduler import CooperativeScheduler
from grainfield.runtime.playback import ActivePlaybacks, PlaybackHandle
from grainfield.runtime.rendezvous import RendezvousScheduler

__all__ = [
    # Clocks
    "ManualClock",
    "MonotonicClock",
    "OffsetClock",
    # Scheduling
    "CooperativeScheduler",
    # Playback
    "ActivePlaybacks",
    "PlaybackHandle",
    "RendezvousScheduler",
]
