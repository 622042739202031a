"""
Rendezvous Scheduler - start a buffer at a shared-clock time.

The coordinator broadcasts an absolute shared time; each node maps it onto
its own scheduler clock and hands the buffer to the sink with that local
start time:

    start = local_now + (target - shared_now)

Both clocks are read back to back so the mapping has no gap in which time
can pass. A target that is not strictly in the future cannot be honoured
in step with the other nodes, so the request is refused and the sink is
never touched.
"""

from __future__ import annotations

import logging
from typing import Callable, Hashable

from grainfield.errors import RendezvousMissedError
from grainfield.interfaces import PeriodicScheduler, PlaybackSink, SharedClock
from grainfield.render.convolution import RenderedBuffer
from grainfield.runtime.playback import ActivePlaybacks, PlaybackHandle

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[PlaybackHandle], None]


class RendezvousScheduler:
    """Schedule rendered buffers against the shared clock.

    Example:
        rendezvous = RendezvousScheduler(shared_clock, scheduler, sink)
        try:
            handle = rendezvous.schedule(sync_start_time, rendered)
        except RendezvousMissedError as e:
            reporter.report(e)
    """

    def __init__(
        self,
        shared_clock: SharedClock,
        scheduler: PeriodicScheduler,
        sink: PlaybackSink,
        playbacks: ActivePlaybacks | None = None,
    ):
        self._shared_clock = shared_clock
        self._scheduler = scheduler
        self._sink = sink
        self.playbacks = playbacks or ActivePlaybacks()

    @property
    def local_now(self) -> float:
        return self._scheduler.current_time

    def local_time_for(self, target_sync_time: float) -> tuple[float, float]:
        """Map a shared time to local time. Returns (local_start, shared_now)."""
        now = self._shared_clock.now()
        local_now = self._scheduler.current_time
        return local_now + (target_sync_time - now), now

    def schedule(
        self,
        target_sync_time: float,
        buffer: RenderedBuffer,
        on_complete: CompletionCallback | None = None,
        loop: bool = False,
        tag=None,
    ) -> PlaybackHandle:
        """Start buffer when the shared clock reads target_sync_time.

        Raises:
            RendezvousMissedError: If target_sync_time is not in the future.
        """
        start, now = self.local_time_for(target_sync_time)
        if target_sync_time <= now:
            raise RendezvousMissedError(target_sync_time, now)

        return self._start(
            buffer,
            start_time=start,
            target_time=target_sync_time,
            offset=0.0,
            loop=loop,
            on_complete=on_complete,
            tag=tag,
        )

    def start_now(
        self,
        buffer: RenderedBuffer,
        offset: float = 0.0,
        loop: bool = False,
        on_complete: CompletionCallback | None = None,
        tag=None,
    ) -> PlaybackHandle:
        """Start buffer immediately, offset seconds into it."""
        return self._start(
            buffer,
            start_time=self._scheduler.current_time,
            target_time=self._shared_clock.now(),
            offset=offset,
            loop=loop,
            on_complete=on_complete,
            tag=tag,
        )

    def _start(
        self,
        buffer: RenderedBuffer,
        start_time: float,
        target_time: float,
        offset: float,
        loop: bool,
        on_complete: CompletionCallback | None,
        tag,
    ) -> PlaybackHandle:
        playback_id = self._sink.play(
            buffer.samples,
            buffer.sample_rate,
            buffer.gain,
            start_time,
            offset=offset,
            loop=loop,
        )
        handle = PlaybackHandle(
            playback_id=playback_id,
            start_time=start_time,
            target_time=target_time,
            duration=buffer.duration,
            loop=loop,
            offset=offset,
            tag=tag,
        )
        self.playbacks.add(handle)

        if handle.end_time is not None:
            handle.completion = self._scheduler.call_at(
                handle.end_time,
                lambda _time: self._complete(handle, on_complete),
            )

        logger.debug(
            "Playback %s at local %.3f (shared %.3f, loop=%s)",
            playback_id, start_time, target_time, loop,
        )
        return handle

    def _complete(self, handle: PlaybackHandle, on_complete: CompletionCallback | None) -> None:
        if self.playbacks.remove(handle.playback_id) is None:
            return
        if on_complete is not None:
            on_complete(handle)

    def _release(self, handle: PlaybackHandle) -> None:
        self._sink.stop(handle.playback_id)
        if handle.completion is not None:
            self._scheduler.cancel(handle.completion)

    def cancel(self, playback_id: Hashable) -> bool:
        """Stop one playback now. Returns False if it was not active."""
        handle = self.playbacks.remove(playback_id)
        if handle is None:
            return False
        self._release(handle)
        return True

    def cancel_tag(self, tag) -> int:
        """Stop every playback started with the given tag."""
        count = 0
        for handle in self.playbacks.with_tag(tag):
            if self.cancel(handle.playback_id):
                count += 1
        return count

    def reset(self) -> int:
        """Stop every active playback. Returns how many were stopped."""
        handles = self.playbacks.clear()
        for handle in handles:
            self._release(handle)
        return len(handles)
