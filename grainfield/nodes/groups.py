"""
Group player - looping tracks shared by groups of players.

Each group plays the audio asset with the same id. Turning a group on
carries the shared time the group started at; a player that receives it
late (or connects after the start) joins at the position the others have
reached:

    offset = (shared_now - start_time) mod duration

Messages carry a target player id first; -1 addresses every player.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any, Hashable

from grainfield.control.commands import ControlRouter
from grainfield.errors import MissingAssetError, RendezvousMissedError
from grainfield.interfaces import AudioSource, FeedbackSink, SharedClock
from grainfield.monitoring.logging import StructuredLogger, get_logger
from grainfield.monitoring.reporter import ErrorReporter
from grainfield.render.convolution import RenderedBuffer
from grainfield.runtime.playback import PlaybackHandle
from grainfield.runtime.rendezvous import RendezvousScheduler

ALL_PLAYERS = -1


@dataclass
class Group:
    """Playback state of one group on this player."""

    group_id: Hashable
    volume: float = 0.0
    link: float = 1.0
    loop: bool = False
    start_time: float | None = None
    handle: PlaybackHandle | None = None

    @property
    def is_playing(self) -> bool:
        return self.handle is not None


class GroupPlayer:
    """Per-group looping sources with volume, link and loop control.

    Example:
        groups = GroupPlayer(audio, rendezvous, shared_clock, player_id=3)
        groups.router.route(["volume", -1, "drone", 0.8])
        groups.router.route(["onOff", -1, "drone", 42.0])
    """

    def __init__(
        self,
        audio: AudioSource,
        rendezvous: RendezvousScheduler,
        shared_clock: SharedClock,
        player_id: int = 0,
        feedback: FeedbackSink | None = None,
        reporter: ErrorReporter | None = None,
        logger: StructuredLogger | None = None,
    ):
        self._audio = audio
        self._rendezvous = rendezvous
        self._shared_clock = shared_clock
        self.player_id = player_id
        self._feedback = feedback
        self._logger = (logger or get_logger()).bind(module="groups")
        self._reporter = reporter or ErrorReporter(logger=self._logger)
        self._groups: dict[Hashable, Group] = {}
        self._local_volume = 1.0

        self.router = ControlRouter(
            {},
            {
                "onOff": self._addressed(self.on_off),
                "volume": self._addressed(self.set_volume),
                "linkPlayerToGroup": self._addressed(self.set_link),
                "localVolume": self._addressed(self.set_local_volume),
                "loop": self._addressed(self.set_loop),
            },
            logger=self._logger,
        )

    def _addressed(self, handler):
        def dispatch(player_id, *args):
            if player_id != self.player_id and player_id != ALL_PLAYERS:
                return
            handler(*args)
        return dispatch

    @property
    def local_volume(self) -> float:
        return self._local_volume

    def group(self, group_id: Hashable) -> Group:
        """Get a group, creating it silent on first use."""
        group = self._groups.get(group_id)
        if group is None:
            group = Group(group_id)
            self._groups[group_id] = group
        return group

    def gain_of(self, group: Group) -> float:
        return group.volume * group.link * self._local_volume

    def on_off(self, group_id: Hashable, value: float) -> PlaybackHandle | None:
        """Stop a group (value 0) or start it at shared time value."""
        group = self.group(group_id)
        if value == 0:
            self._stop(group)
            group.start_time = None
            return None

        group.start_time = float(value)
        return self._start(group)

    def _stop(self, group: Group) -> None:
        if group.handle is None:
            return
        handle, group.handle = group.handle, None
        if self._rendezvous.cancel(handle.playback_id) and self._feedback is not None:
            self._feedback.disable()

    def _start(self, group: Group) -> PlaybackHandle | None:
        try:
            audio = self._audio.get(group.group_id)
        except MissingAssetError as e:
            self._reporter.report(e, group_id=group.group_id)
            return None

        self._stop(group)
        buffer = RenderedBuffer(
            samples=audio.mono(),
            sample_rate=audio.sample_rate,
            gain=self.gain_of(group),
        )
        on_complete = functools.partial(self._on_complete, group)

        if group.start_time > self._shared_clock.now():
            try:
                handle = self._rendezvous.schedule(
                    group.start_time, buffer, on_complete=on_complete, loop=group.loop, tag=group.group_id,
                )
                return self._started(group, handle)
            except RendezvousMissedError as e:
                # start_time passed between the two clock reads
                self._logger.debug("group_joining_late", group_id=group.group_id, lateness=e.lateness)

        elapsed = self._shared_clock.now() - group.start_time
        if not group.loop and elapsed >= audio.duration:
            self._logger.debug("group_finished", group_id=group.group_id, start_time=group.start_time)
            return None
        offset = elapsed % audio.duration if audio.duration > 0 else 0.0

        handle = self._rendezvous.start_now(
            buffer, offset=offset, loop=group.loop, on_complete=on_complete, tag=group.group_id,
        )
        return self._started(group, handle)

    def _started(self, group: Group, handle: PlaybackHandle) -> PlaybackHandle:
        group.handle = handle
        if self._feedback is not None:
            self._feedback.enable()
        self._logger.debug(
            "group_started",
            group_id=group.group_id,
            start_time=group.start_time,
            offset=handle.offset,
        )
        return handle

    def _on_complete(self, group: Group, handle: PlaybackHandle) -> None:
        if group.handle is handle:
            group.handle = None
        if self._feedback is not None:
            self._feedback.disable()

    def _restart_if_playing(self, group: Group) -> None:
        if group.is_playing and group.start_time is not None:
            self._start(group)

    def set_volume(self, group_id: Hashable, value: float) -> None:
        group = self.group(group_id)
        group.volume = float(value)
        self._restart_if_playing(group)

    def set_link(self, group_id: Hashable, value: float) -> None:
        group = self.group(group_id)
        group.link = float(value)
        self._restart_if_playing(group)

    def set_loop(self, group_id: Hashable, value: Any) -> None:
        group = self.group(group_id)
        group.loop = bool(value)
        self._restart_if_playing(group)

    def set_local_volume(self, value: float) -> None:
        self._local_volume = float(value)
        for group in list(self._groups.values()):
            self._restart_if_playing(group)

    def reset(self) -> None:
        """Stop every group."""
        for group in self._groups.values():
            self._stop(group)
            group.start_time = None
