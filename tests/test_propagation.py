"""
Tests for the propagation model.

Invariants tested:
    1. A receiver on a path point hears it at gain 1.0
    2. Delays are never negative, for any speed sign
    3. Taps under the audibility threshold are dropped
    4. Gain depends on the distance to each point, not on the path length
"""

import threading

import pytest
from hypothesis import given, settings, strategies as st

from grainfield.propagation import (
    PathPoint,
    Point2D,
    PropagationModel,
    PropagationParams,
    ReceiverRegistry,
    Tap,
    TapList,
    parse_path,
)


coord = st.floats(min_value=-50.0, max_value=50.0, allow_nan=False)


class TestParsePath:
    """Tests for parse_path."""

    def test_triples(self):
        path = parse_path([0.0, 1.0, 2.0, 0.5, 3.0, 4.0])
        assert path == [PathPoint.at(0.0, 1.0, 2.0), PathPoint.at(0.5, 3.0, 4.0)]

    def test_empty(self):
        assert parse_path([]) == []

    def test_incomplete_triple(self):
        with pytest.raises(ValueError, match="triples"):
            parse_path([0.0, 1.0])


class TestTapList:
    """Tests for Tap and TapList."""

    def test_rejects_negative_delay(self):
        with pytest.raises(ValueError, match="delay must be >= 0"):
            Tap(-0.1, 0.5)

    def test_rejects_gain_above_one(self):
        with pytest.raises(ValueError, match="gain must be 0.0-1.0"):
            Tap(0.0, 1.5)

    def test_duration_and_max_gain(self):
        tap_list = TapList(1, (Tap(0.5, 0.2), Tap(2.0, 0.7), Tap(1.0, 0.4)))
        assert tap_list.duration == 2.0
        assert tap_list.max_gain == 0.7
        assert len(tap_list) == 3

    def test_empty(self):
        tap_list = TapList(1)
        assert tap_list.duration == 0.0
        assert tap_list.max_gain == 0.0


class TestPropagationParams:
    """Tests for PropagationParams."""

    def test_speed_floor(self):
        assert PropagationParams(speed=0.0).effective_speed == 0.1
        assert PropagationParams(speed=0.05).effective_speed == 0.1
        assert PropagationParams(speed=-0.05).effective_speed == -0.1
        assert PropagationParams(speed=-3.0).effective_speed == -3.0

    def test_gain_range(self):
        with pytest.raises(ValueError, match="gain must be in"):
            PropagationParams(gain=1.0)
        with pytest.raises(ValueError, match="gain must be in"):
            PropagationParams(gain=0.0)


class TestPropagationModel:
    """Tests for PropagationModel.compute."""

    @pytest.fixture
    def model(self):
        return PropagationModel(PropagationParams(speed=5.0, gain=0.9, min_audible_gain=0.01))

    def test_reference_scenario(self, model):
        """One point at the origin heard at 0, 10 and 50 meters."""
        result = model.compute(
            1,
            [PathPoint.at(0.0, 0.0, 0.0)],
            {"near": (0.0, 0.0), "mid": (10.0, 0.0), "far": (50.0, 0.0)},
        )

        assert result.min_time == 0.0
        assert result["near"].taps == (Tap(0.0, 1.0),)

        (tap,) = result["mid"].taps
        assert tap.delay == pytest.approx(2.0)
        assert tap.gain == pytest.approx(0.9 ** 10)
        assert tap.gain == pytest.approx(0.349, abs=1e-3)

        assert result["far"].taps == ()

    def test_coincident_receiver(self, model):
        result = model.compute(2, [PathPoint.at(1.5, 3.0, 4.0)], {"p": (3.0, 4.0)})
        assert result["p"].taps == (Tap(1.5, 1.0),)

    def test_one_tap_per_audible_point(self, model):
        path = parse_path([0.0, 0.0, 0.0, 1.0, 5.0, 0.0, 2.0, 100.0, 0.0])
        result = model.compute(3, path, {"p": (0.0, 0.0)})
        assert len(result["p"]) == 2

    def test_gain_uses_distance_to_point(self, model):
        """A later, closer point is louder than an earlier, farther one."""
        path = parse_path([0.0, 20.0, 0.0, 1.0, 1.0, 0.0])
        taps = model.compute(4, path, {"p": (0.0, 0.0)})["p"].taps
        assert taps[1].gain > taps[0].gain

    def test_negative_speed(self):
        model = PropagationModel(PropagationParams(speed=-5.0))
        result = model.compute(
            5,
            [PathPoint.at(0.0, 0.0, 0.0)],
            {"near": (0.0, 0.0), "mid": (10.0, 0.0)},
        )

        assert result.min_time == pytest.approx(-2.0)
        assert result["mid"].taps[0].delay == pytest.approx(0.0)
        assert result["near"].taps[0].delay == pytest.approx(2.0)
        assert all(tap_list.min_time == result.min_time for tap_list in result.tap_lists.values())

    def test_min_time_floored_at_zero(self, model):
        """Late paths keep absolute delays; min_time never goes positive."""
        result = model.compute(6, [PathPoint.at(3.0, 0.0, 0.0)], {"p": (0.0, 0.0)})
        assert result.min_time == 0.0
        assert result["p"].taps[0].delay == pytest.approx(3.0)

    def test_zero_speed_is_clamped(self):
        model = PropagationModel(PropagationParams(speed=0.0))
        result = model.compute(7, [PathPoint.at(0.0, 0.0, 0.0)], {"p": (1.0, 0.0)})
        assert result["p"].taps[0].delay == pytest.approx(10.0)

    def test_no_receivers(self, model):
        result = model.compute(8, [PathPoint.at(0.0, 0.0, 0.0)], {})
        assert result.tap_lists == {}
        assert result.total_taps == 0

    def test_reads_registry(self, model):
        registry = ReceiverRegistry()
        registry.set_position("a", (0.0, 0.0))
        registry.set_position("b", Point2D(10.0, 0.0))
        result = model.compute(9, [PathPoint.at(0.0, 0.0, 0.0)], registry)
        assert set(result.tap_lists) == {"a", "b"}
        assert all(tap_list.path_id == 9 for tap_list in result.tap_lists.values())

    @settings(max_examples=200)
    @given(
        st.lists(st.tuples(st.floats(0.0, 10.0), coord, coord), min_size=1, max_size=10),
        st.lists(st.tuples(coord, coord), min_size=1, max_size=5),
        st.floats(min_value=-20.0, max_value=20.0, allow_nan=False),
    )
    def test_delays_never_negative(self, points, receivers, speed):
        model = PropagationModel(PropagationParams(speed=speed, gain=0.95, min_audible_gain=0.0))
        path = [PathPoint.at(t, x, y) for t, x, y in points]
        result = model.compute(1, path, dict(enumerate(receivers)))

        assert result.min_time <= 0.0
        for tap_list in result.tap_lists.values():
            for tap in tap_list.taps:
                assert tap.delay >= 0.0
                assert 0.0 <= tap.gain <= 1.0

    @settings(max_examples=100)
    @given(st.floats(0.0, 10.0), coord, coord)
    def test_coincident_is_full_gain(self, t, x, y):
        model = PropagationModel()
        result = model.compute(1, [PathPoint.at(t, x, y)], {"p": (x, y)})
        assert result["p"].taps == (Tap(t, 1.0),)


class TestReceiverRegistry:
    """Tests for ReceiverRegistry."""

    def test_last_write_wins(self):
        registry = ReceiverRegistry()
        registry.set_position("a", (1.0, 2.0))
        registry.set_position("a", (3.0, 4.0))
        assert registry.get("a") == Point2D(3.0, 4.0)
        assert len(registry) == 1

    def test_remove(self):
        registry = ReceiverRegistry()
        registry.set_position("a", (1.0, 2.0))
        assert registry.remove("a") is True
        assert registry.remove("a") is False
        assert "a" not in registry

    def test_snapshot_is_a_copy(self):
        registry = ReceiverRegistry()
        registry.set_position("a", (1.0, 2.0))
        snapshot = registry.snapshot()
        registry.set_position("b", (0.0, 0.0))
        assert list(snapshot) == ["a"]

    def test_concurrent_writers(self):
        registry = ReceiverRegistry()

        def writer(offset):
            for i in range(200):
                registry.set_position(offset + i, (float(i), 0.0))
                registry.snapshot()

        threads = [threading.Thread(target=writer, args=(n * 1000,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(registry) == 800
