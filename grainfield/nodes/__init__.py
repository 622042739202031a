"""
Node modules: what runs on the coordinator and on each player.

Components:
    Coordinator  - Positions, path computation and rendezvous broadcast
    PathPlayer   - Renders received tap lists at rendezvous times
    GrainPlayer  - Granular texture driven by blended energy
    GroupPlayer  - Looping group tracks with late-join alignment

Every node exposes a ControlRouter as ``node.router``.
"""

from grainfield.nodes.path_player import PathPlayer
from grainfield.nodes.grain_player import GrainPlayer
from grainfield.nodes.groups import Group, GroupPlayer
from grainfield.nodes.coordinator import (
    GRAIN_CHANNEL,
    PATH_CHANNEL,
    Coordinator,
)

__all__ = [
    # Players
    "PathPlayer",
    "GrainPlayer",
    "Group",
    "GroupPlayer",
    # Server
    "Coordinator",
    "GRAIN_CHANNEL",
    "PATH_CHANNEL",
]
