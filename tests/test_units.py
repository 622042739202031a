"""
Tests for decibel conversions.
"""

import math

import pytest
from hypothesis import given, strategies as st

from grainfield.units import (
    DB_FLOOR,
    EnergyMapping,
    db_to_linear,
    energy_to_db,
    linear_to_db,
    power_to_db,
)


class TestConversions:
    """Tests for linear/power/decibel conversions."""

    def test_unity_is_zero_db(self):
        assert linear_to_db(1.0) == 0.0
        assert power_to_db(1.0) == 0.0
        assert db_to_linear(0.0) == 1.0

    def test_known_values(self):
        assert linear_to_db(0.1) == pytest.approx(-20.0)
        assert power_to_db(0.1) == pytest.approx(-10.0)
        assert db_to_linear(-20.0) == pytest.approx(0.1)

    def test_zero_is_floored(self):
        """Zero and negative inputs map to the floor instead of -inf."""
        assert linear_to_db(0.0) == DB_FLOOR
        assert power_to_db(0.0) == DB_FLOOR
        assert linear_to_db(-1.0) == DB_FLOOR

    def test_tiny_values_are_floored(self):
        assert linear_to_db(1e-12) == DB_FLOOR

    def test_energy_mapping(self):
        assert energy_to_db(0.5) == pytest.approx(20 * math.log10(0.5))
        assert energy_to_db(0.5, EnergyMapping.POWER) == pytest.approx(10 * math.log10(0.5))

    @given(st.floats(min_value=-100.0, max_value=20.0))
    def test_db_roundtrip(self, db):
        assert linear_to_db(db_to_linear(db)) == pytest.approx(db, abs=1e-9)

    @given(st.floats(min_value=0.0, max_value=10.0))
    def test_floor_keeps_gain_positive(self, value):
        assert db_to_linear(linear_to_db(value)) > 0
