"""
Node configuration.

One NodeConfig describes a coordinator or player process. It is usually
loaded from a JSON file:

    {
        "node_id": "player-3",
        "asset_dir": "sounds",
        "propagation": {"speed": 5.0},
        "engine": {"period_abs": 0.1, "random_var": 2}
    }
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Mapping

from grainfield.granular.engine import EngineParams
from grainfield.monitoring.logging import LogLevel
from grainfield.nodes.coordinator import DEFAULT_RENDEZVOUS_LEAD
from grainfield.propagation.model import PropagationParams
from grainfield.render.convolution import RenderParams

ASSETS_ENV = "GRAINFIELD_ASSETS"


def _default_asset_dir() -> Path:
    env = os.environ.get(ASSETS_ENV)
    if env:
        return Path(env)
    return Path.cwd() / "assets"


@dataclass
class NodeConfig:
    """Settings for one node process."""

    node_id: str = ""
    sample_rate: int = 44100
    asset_dir: Path = field(default_factory=_default_asset_dir)
    rendezvous_lead: float = DEFAULT_RENDEZVOUS_LEAD
    tap_cache_size: int = 128

    # Logging
    log_level: str = "info"
    log_json: bool = True

    propagation: PropagationParams = field(default_factory=PropagationParams)
    render: RenderParams = field(default_factory=RenderParams)
    engine: EngineParams = field(default_factory=EngineParams)

    def __post_init__(self):
        self.asset_dir = Path(self.asset_dir)
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be > 0, got {self.sample_rate}")
        if self.rendezvous_lead <= 0:
            raise ValueError(f"rendezvous_lead must be > 0, got {self.rendezvous_lead}")
        if self.tap_cache_size < 1:
            raise ValueError(f"tap_cache_size must be >= 1, got {self.tap_cache_size}")
        valid_levels = {level.value for level in LogLevel}
        if self.log_level not in valid_levels:
            raise ValueError(
                f"log_level must be one of {sorted(valid_levels)}, got {self.log_level!r}"
            )

    @property
    def level(self) -> LogLevel:
        return LogLevel(self.log_level)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NodeConfig":
        """Create from a dictionary; nested sections may be partial."""
        data = dict(data)
        known = {f for f in cls.__dataclass_fields__}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")

        if "propagation" in data and isinstance(data["propagation"], Mapping):
            data["propagation"] = PropagationParams(**data["propagation"])
        if "render" in data and isinstance(data["render"], Mapping):
            data["render"] = RenderParams(**data["render"])
        if "engine" in data and isinstance(data["engine"], Mapping):
            data["engine"] = EngineParams.from_dict(data["engine"])
        return cls(**data)

    @classmethod
    def from_file(cls, path: str | Path) -> "NodeConfig":
        with open(path, encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        data = asdict(self)
        data["asset_dir"] = str(self.asset_dir)
        data["engine"]["energy_mapping"] = self.engine.energy_mapping.value
        return data
