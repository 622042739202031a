"""
Grain player - granular texture on one node.

Wraps a GranularEngine with the node-level concerns: which audio asset the
grains are cut from, the master grain gain, and the energy that drives the
engine. Energy is a blend of the value sent by the coordinator and the
node's own motion energy:

    energy = override * remote + (1 - override) * local

and is pushed to the engine every ENERGY_PERIOD seconds while enabled.
"""

from __future__ import annotations

import random
from typing import Any, Callable, Hashable, Iterable, Mapping

from grainfield.control.commands import ControlRouter
from grainfield.errors import DegenerateIndexError, MissingAssetError
from grainfield.granular.engine import EngineParams, GranularEngine
from grainfield.granular.grain import GrainRenderer, RenderingGrainSink
from grainfield.granular.segments import Segment
from grainfield.interfaces import AudioSource, FeedbackSink, PeriodicScheduler, PlaybackSink
from grainfield.monitoring.logging import StructuredLogger, get_logger
from grainfield.monitoring.metrics import MetricsRegistry
from grainfield.monitoring.reporter import ErrorReporter

ENERGY_PERIOD = 0.1

SegmentProvider = Callable[[Any], Iterable[Segment]]

DEFAULT_PARAMS: dict[str, Any] = {
    "gain": 1.0,
    "audio_file_id": None,
    "override": 1.0,
    "energy": 0.0,
}


class GrainPlayer:
    """Granular engine bound to an asset, a gain and a blended energy.

    Example:
        player = GrainPlayer(scheduler, playback, audio)
        player.load_asset("rain", segments)
        player.router.route(["enable", 1])
        player.router.route(["energy", 0.6])
    """

    def __init__(
        self,
        scheduler: PeriodicScheduler,
        playback: PlaybackSink,
        audio: AudioSource,
        feedback: FeedbackSink | None = None,
        segments_for: SegmentProvider | None = None,
        engine_params: EngineParams | None = None,
        reporter: ErrorReporter | None = None,
        logger: StructuredLogger | None = None,
        metrics: MetricsRegistry | None = None,
        rng: random.Random | None = None,
        params: Mapping[str, Any] | None = None,
    ):
        self._scheduler = scheduler
        self._playback = playback
        self._audio = audio
        self._feedback = feedback
        self._segments_for = segments_for
        self._logger = (logger or get_logger()).bind(module="grain")
        self._metrics = metrics
        self._reporter = reporter or ErrorReporter(logger=self._logger, metrics=metrics)
        self._rng = rng or random.Random()

        engine_params = engine_params or EngineParams()
        all_params = {**DEFAULT_PARAMS, **vars(engine_params)}
        all_params.update(params or {})

        self.router = ControlRouter(
            all_params,
            {
                "enable": self.enable,
                "reset": self.reset,
                "reloadEngine": self.reset,
                "engineParams": self.set_engine_param,
                "touch": self.touch,
            },
            logger=self._logger,
        )
        self.router.on("gain", self._apply_gain)
        self.router.on("audio_file_id", self._on_audio_file_id)
        self.router.on("random_var", lambda _value: self.reset())

        self.engine: GranularEngine | None = None
        self._sink: RenderingGrainSink | None = None
        self._asset_id: Hashable | None = None
        self._local_energy = 0.0
        self._enabled = False
        self._pending_enable = False
        self._energy_handle: Hashable | None = None

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def pending_enable(self) -> bool:
        return self._pending_enable

    @property
    def asset_id(self) -> Hashable | None:
        return self._asset_id

    def engine_params(self) -> EngineParams:
        params = self.router.params
        return EngineParams.from_dict(
            {name: params[name] for name in EngineParams.field_names()}
        )

    def set_engine_param(self, name: str, value: Any) -> None:
        """Store one engine parameter; takes effect on the next reset."""
        if name not in EngineParams.field_names():
            raise KeyError(f"Unknown engine parameter: {name}")
        self.router.set(name, value)

    def mixed_energy(self) -> float:
        override = float(self.router.get("override"))
        remote = float(self.router.get("energy"))
        return override * remote + (1.0 - override) * self._local_energy

    def set_local_energy(self, energy: float) -> None:
        """Energy measured on this node (motion input)."""
        self._local_energy = float(energy)

    def _apply_gain(self, value: Any) -> None:
        if self._sink is not None:
            self._sink.gain = float(value)

    def _on_audio_file_id(self, asset_id: Any) -> None:
        if self._segments_for is None:
            return
        self.load_asset(asset_id, self._segments_for(asset_id))

    def load_asset(self, asset_id: Hashable, segments: Iterable[Segment]) -> bool:
        """Cut grains from a new asset.

        Returns False, keeping the current asset, when the asset is missing
        or has no segments.
        """
        try:
            buffer = self._audio.get(asset_id)
        except MissingAssetError as e:
            self._reporter.report(e)
            return False

        segments = tuple(segments)
        renderer = GrainRenderer(buffer, segments, self._rng)

        try:
            if self.engine is None:
                sink = RenderingGrainSink(renderer, self._playback, float(self.router.get("gain")))
                self.engine = GranularEngine(
                    segments,
                    self._scheduler,
                    sink,
                    params=self.engine_params(),
                    rng=self._rng,
                    logger=self._logger,
                    metrics=self._metrics,
                )
                self._sink = sink
            else:
                self.engine.reconfigure(segments=segments)
                self._sink.set_renderer(renderer)
        except DegenerateIndexError as e:
            self._reporter.report(e, asset_id=asset_id)
            return False

        self._asset_id = asset_id
        self._logger.info("asset_loaded", asset_id=asset_id, num_segments=len(segments))

        if self._pending_enable:
            self._pending_enable = False
            self.enable(True)
        return True

    def enable(self, value: Any = True) -> None:
        """Start or stop the engine. Starting before an asset loads is deferred."""
        if value and self.engine is None:
            self._pending_enable = True
            return

        if value:
            if self._enabled:
                return
            self._push_energy(self._scheduler.current_time)
            self._energy_handle = self._scheduler.schedule(self._push_energy, ENERGY_PERIOD)
            self.engine.start()
            if self._feedback is not None:
                self._feedback.enable()
            self._enabled = True
        else:
            self._pending_enable = False
            if not self._enabled:
                return
            self._scheduler.cancel(self._energy_handle)
            self._energy_handle = None
            self.engine.stop()
            if self._feedback is not None:
                self._feedback.disable()
            self._enabled = False

    def _push_energy(self, _time: float) -> None:
        if self.engine is not None:
            self.engine.set_energy(self.mixed_energy())

    def touch(self, segment_index: Any) -> bool:
        """Queue a one-shot grain. Unknown segments are logged and dropped."""
        if self.engine is None:
            return False
        try:
            self.engine.touch(int(segment_index))
        except ValueError as e:
            self._logger.warning("touch_ignored", str(e), segment_index=segment_index)
            return False
        return True

    def reset(self) -> None:
        """Rebuild the engine from the current parameters, keeping run state."""
        if self.engine is None:
            return
        self.engine.reconfigure(params=self.engine_params())
        self._logger.debug("engine_reloaded", asset_id=self._asset_id)
