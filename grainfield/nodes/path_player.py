"""
Path player - the player side of a propagated path.

The coordinator sends each player its own tap list once per path setup,
then broadcasts startPath with a shared rendezvous time. On start the
player renders the tap list against the selected audio file and schedules
the result so every player's copy lands in step.
"""

from __future__ import annotations

from typing import Any, Hashable, Mapping

import numpy as np

from grainfield.control.commands import ControlRouter
from grainfield.errors import (
    MissingAssetError,
    RendezvousMissedError,
    UnresolvedTapListError,
)
from grainfield.interfaces import AudioSource, Color, FeedbackSink
from grainfield.monitoring.logging import StructuredLogger, get_logger
from grainfield.monitoring.reporter import ErrorReporter
from grainfield.propagation.model import TapList
from grainfield.propagation.wire import decode_tap_list, payload_from_bytes
from grainfield.render.cache import TapListCache
from grainfield.render.convolution import RenderParams, TapConvolutionRenderer
from grainfield.runtime.playback import PlaybackHandle
from grainfield.runtime.rendezvous import RendezvousScheduler

IR_LOADED_COLOR: Color = (0, 100, 0)
UNRESOLVED_COLOR: Color = (160, 0, 0)
TOO_LATE_COLOR: Color = (250, 0, 0)

PATH_TAG = "path"

DEFAULT_PARAMS: dict[str, Any] = {
    "audio_file_id": 0,
    "master_gain": 1.0,
    "playback_percent": 1.0,
    "loop": True,
    "read_speed_slope": 0.0,
    "start_fraction": 0.0,
}


def normalize_path_id(path_id: Hashable) -> Hashable:
    """Integer-valued floats become ints so wire and message ids match."""
    if isinstance(path_id, (float, np.floating)) and float(path_id).is_integer():
        return int(path_id)
    return path_id


class PathPlayer:
    """Receives tap lists and plays them at rendezvous times.

    Example:
        player = PathPlayer(audio, rendezvous, feedback=screen)
        player.receive_payload(payload)          # from the coordinator
        player.router.route(["startPath", 3, 12.5])
    """

    def __init__(
        self,
        audio: AudioSource,
        rendezvous: RendezvousScheduler,
        feedback: FeedbackSink | None = None,
        renderer: TapConvolutionRenderer | None = None,
        cache: TapListCache | None = None,
        reporter: ErrorReporter | None = None,
        logger: StructuredLogger | None = None,
        params: Mapping[str, Any] | None = None,
    ):
        self._audio = audio
        self._rendezvous = rendezvous
        self._feedback = feedback
        self._renderer = renderer or TapConvolutionRenderer()
        self.cache = cache or TapListCache()
        self._logger = (logger or get_logger()).bind(module="path")
        self._reporter = reporter or ErrorReporter(logger=self._logger, feedback=feedback)

        self.router = ControlRouter(
            {**DEFAULT_PARAMS, **(params or {})},
            {"startPath": self.start_path, "reset": self.reset},
            logger=self._logger,
        )

    @property
    def params(self) -> dict[str, Any]:
        return self.router.params

    def render_params(self) -> RenderParams:
        params = self.router.params
        return RenderParams(
            playback_percent=float(params["playback_percent"]),
            loop=bool(params["loop"]),
            read_speed_slope=float(params["read_speed_slope"]),
            start_fraction=float(params["start_fraction"]),
        )

    def _blink(self, color: Color) -> None:
        if self._feedback is not None:
            self._feedback.blink(color)

    def receive_payload(self, payload: bytes | np.ndarray | list[float]) -> TapList:
        """Store the tap list carried by an IR payload."""
        if isinstance(payload, (bytes, bytearray, memoryview)):
            payload = payload_from_bytes(bytes(payload))
        tap_list = decode_tap_list(payload)
        self.cache.put(tap_list)
        self._logger.tap_list_received(tap_list.path_id, len(tap_list), tap_list.duration)
        self._blink(IR_LOADED_COLOR)
        return tap_list

    def start_path(self, path_id: Hashable, sync_start_time: float) -> PlaybackHandle | None:
        """Render and schedule one path. Returns None when the request is dropped."""
        path_id = normalize_path_id(path_id)
        sync_start_time = float(sync_start_time)
        asset_id = self.router.get("audio_file_id")

        try:
            audio = self._audio.get(asset_id)
        except MissingAssetError as e:
            self._reporter.report(e, path_id=path_id)
            return None

        tap_list = self.cache.get(path_id)
        if tap_list is None:
            self._reporter.report(UnresolvedTapListError(path_id), color=UNRESOLVED_COLOR)
            return None

        rendered = self._renderer.render(
            audio,
            tap_list,
            master_gain=float(self.router.get("master_gain")),
            params=self.render_params(),
        )

        try:
            handle = self._rendezvous.schedule(
                sync_start_time,
                rendered,
                on_complete=self._on_complete,
                tag=PATH_TAG,
            )
        except RendezvousMissedError as e:
            self._reporter.report(e, color=TOO_LATE_COLOR, path_id=path_id)
            return None

        self._logger.path_scheduled(
            path_id,
            handle.start_time - self._rendezvous.local_now,
            sync_start_time,
        )
        if self._feedback is not None:
            self._feedback.enable()
        return handle

    def _on_complete(self, handle: PlaybackHandle) -> None:
        if self._feedback is not None:
            self._feedback.disable()

    @property
    def active(self) -> list[PlaybackHandle]:
        return self._rendezvous.playbacks.with_tag(PATH_TAG)

    def reset(self) -> int:
        """Stop every path playback. Returns how many were stopped."""
        stopped = self._rendezvous.cancel_tag(PATH_TAG)
        if self._feedback is not None:
            for _ in range(stopped):
                self._feedback.disable()
        return stopped
