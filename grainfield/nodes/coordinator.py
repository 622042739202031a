"""
Coordinator - the server side of a performance.

Tracks where every player stands, turns paths into per-player tap lists,
and picks the shared rendezvous times players start on. It also keeps the
last value of every player parameter so a player joining mid-performance
is brought up to date.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Hashable, Mapping, Sequence

from grainfield.control.commands import ControlRouter
from grainfield.interfaces import SharedClock, Transport
from grainfield.monitoring.logging import StructuredLogger, get_logger
from grainfield.nodes.path_player import DEFAULT_PARAMS as PATH_PLAYER_PARAMS
from grainfield.propagation.model import (
    PropagationModel,
    PropagationParams,
    PropagationResult,
    parse_path,
)
from grainfield.propagation.position import Point2D
from grainfield.propagation.registry import ReceiverRegistry
from grainfield.propagation.wire import encode_tap_list

PATH_CHANNEL = "path"
GRAIN_CHANNEL = "grain"

DEFAULT_RENDEZVOUS_LEAD = 2.0

DEFAULT_GRAIN_PARAMS: dict[str, Any] = {
    "gain": 1.0,
    "audio_file_id": 0,
    "enable": 0,
    "override": 1.0,
    "energy": 0.0,
    "random_var": 1,
}

_PROPAGATION_PARAMS = {
    "propagation_speed": "speed",
    "propagation_gain": "gain",
    "propagation_min_gain": "min_audible_gain",
}


class Coordinator:
    """Server-side path and grain control.

    Example:
        coordinator = Coordinator(transport, shared_clock)
        coordinator.enter_player("p1", (0.0, 0.0))
        coordinator.set_path(1, [0.0, 0.0, 0.0, 1.0, 5.0, 0.0])
        coordinator.start_path(1)
    """

    def __init__(
        self,
        transport: Transport,
        shared_clock: SharedClock,
        propagation: PropagationParams | None = None,
        registry: ReceiverRegistry | None = None,
        rendezvous_lead: float = DEFAULT_RENDEZVOUS_LEAD,
        path_params: Mapping[str, Any] | None = None,
        grain_params: Mapping[str, Any] | None = None,
        logger: StructuredLogger | None = None,
    ):
        if rendezvous_lead <= 0:
            raise ValueError(f"rendezvous_lead must be > 0, got {rendezvous_lead}")
        self._transport = transport
        self._shared_clock = shared_clock
        self.model = PropagationModel(propagation)
        self.registry = registry or ReceiverRegistry()
        self.rendezvous_lead = rendezvous_lead
        self._logger = (logger or get_logger()).bind(module="coordinator")

        self.path_params: dict[str, Any] = {**PATH_PLAYER_PARAMS, **(path_params or {})}
        self.grain_params: dict[str, Any] = {**DEFAULT_GRAIN_PARAMS, **(grain_params or {})}
        self.last_results: dict[Hashable, PropagationResult] = {}

        params = self.model.params
        self.router = ControlRouter(
            {name: getattr(params, field) for name, field in _PROPAGATION_PARAMS.items()},
            {
                "setPath": self.set_path,
                "startPath": self.start_path,
                "resetGrain": self.reset_grain,
                "pathParam": self.set_path_param,
                "grainParam": self.set_grain_param,
            },
            logger=self._logger,
        )
        for name, field in _PROPAGATION_PARAMS.items():
            self.router.on(name, lambda value, field=field: self.set_propagation(**{field: float(value)}))

    @property
    def propagation(self) -> PropagationParams:
        return self.model.params

    def set_propagation(self, **changes: float) -> PropagationParams:
        """Replace propagation settings; applies to the next set_path."""
        self.model.params = dataclasses.replace(self.model.params, **changes)
        return self.model.params

    def enter_player(self, player_id: Hashable, position: Point2D | Sequence[float]) -> None:
        """Register a player and send it every stored parameter."""
        self.registry.set_position(player_id, position)
        for name, value in self.path_params.items():
            self._transport.send(player_id, PATH_CHANNEL, [name, value])
        for name, value in self.grain_params.items():
            self._transport.send(player_id, GRAIN_CHANNEL, [name, value])
        # the engine only picks up engine parameters when rebuilt
        self._transport.send(player_id, GRAIN_CHANNEL, ["reset"])
        self._logger.info("player_entered", player_id=player_id, players=len(self.registry))

    def exit_player(self, player_id: Hashable) -> bool:
        removed = self.registry.remove(player_id)
        if removed:
            self._logger.info("player_exited", player_id=player_id, players=len(self.registry))
        return removed

    def set_path(self, path_id: Hashable, *flat_path: Any) -> PropagationResult:
        """Compute a path and send each player its tap list.

        flat_path is [t0, x0, y0, t1, x1, y1, ...], given either as one
        sequence or as separate arguments.
        """
        if len(flat_path) == 1 and isinstance(flat_path[0], (list, tuple)):
            flat_path = tuple(flat_path[0])

        result = self.model.compute(path_id, parse_path(flat_path), self.registry)
        for receiver_id, tap_list in result.tap_lists.items():
            self._transport.send(receiver_id, PATH_CHANNEL, encode_tap_list(tap_list))

        self.last_results[path_id] = result
        self._logger.info(
            "path_computed",
            path_id=path_id,
            receivers=len(result.tap_lists),
            taps=result.total_taps,
            min_time=result.min_time,
        )
        return result

    def start_path(self, path_id: Hashable) -> float:
        """Broadcast a start at now + rendezvous_lead. Returns that shared time."""
        rendezvous = self._shared_clock.now() + self.rendezvous_lead
        self._transport.broadcast(PATH_CHANNEL, ["startPath", path_id, rendezvous])
        self._logger.info("path_started", path_id=path_id, sync_start_time=rendezvous)
        return rendezvous

    def set_path_param(self, name: str, value: Any) -> None:
        self.path_params[name] = value
        self._transport.broadcast(PATH_CHANNEL, [name, value])

    def set_grain_param(self, name: str, value: Any) -> None:
        self.grain_params[name] = value
        self._transport.broadcast(GRAIN_CHANNEL, [name, value])

    def reset_grain(self) -> None:
        """Ask every player to rebuild its granular engine."""
        self._transport.broadcast(GRAIN_CHANNEL, ["reset"])
