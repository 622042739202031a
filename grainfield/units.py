"""
Decibel conversions shared by the granular and rendering code.

All log values are floored at DB_FLOOR so silent segments and zero energy
stay finite and every compensation gain stays strictly positive.
"""

from __future__ import annotations

import math
from enum import Enum

DB_FLOOR = -120.0


class EnergyMapping(str, Enum):
    """How a 0..1 energy value is mapped onto the decibel scale."""

    AMPLITUDE = "amplitude"  # 20 * log10
    POWER = "power"          # 10 * log10


def linear_to_db(value: float) -> float:
    """Convert a linear amplitude to decibels."""
    if value <= 0.0:
        return DB_FLOOR
    return max(DB_FLOOR, 20.0 * math.log10(value))


def power_to_db(power: float) -> float:
    """Convert a power (squared amplitude) to decibels."""
    if power <= 0.0:
        return DB_FLOOR
    return max(DB_FLOOR, 10.0 * math.log10(power))


def db_to_linear(db: float) -> float:
    """Convert decibels to a linear amplitude."""
    return 10.0 ** (db / 20.0)


def energy_to_db(
    energy: float,
    mapping: EnergyMapping = EnergyMapping.AMPLITUDE,
) -> float:
    """Map a control energy onto decibels relative to full scale."""
    if mapping == EnergyMapping.POWER:
        return power_to_db(energy)
    return linear_to_db(energy)
