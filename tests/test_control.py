"""
Tests for control message parsing and routing.
"""

import json

import pytest

from grainfield.control import (
    CommandTable,
    ControlRouter,
    InvokeCommand,
    SetParam,
    parse_message,
)
from grainfield.control.commands import coerce_token, parse_text_message


class TestParseMessage:
    """Tests for parse_message."""

    def test_param(self):
        assert parse_message(["gain", 0.5], {"gain"}) == SetParam("gain", 0.5)

    def test_param_with_several_values(self):
        assert parse_message(["pos", 1.0, 2.0], {"pos"}) == SetParam("pos", (1.0, 2.0))

    def test_command(self):
        message = parse_message(["startPath", 3, 12.5], {"gain"})
        assert message == InvokeCommand("startPath", (3, 12.5))

    def test_command_without_args(self):
        assert parse_message(["reset"], set()) == InvokeCommand("reset")

    def test_text(self):
        message = parse_message("startPath 3 12.5", set())
        assert message == InvokeCommand("startPath", (3, 12.5))

    def test_empty(self):
        with pytest.raises(ValueError, match="must have a name"):
            parse_message([], set())


class TestCoercion:
    """Tests for text token conversion."""

    def test_int(self):
        assert coerce_token("3") == 3
        assert isinstance(coerce_token("3"), int)

    def test_float(self):
        assert coerce_token("-0.25") == -0.25

    def test_word(self):
        assert coerce_token("on") == "on"

    def test_split(self):
        assert parse_text_message("  gain   1 ") == ["gain", 1]


class TestCommandTable:
    """Tests for CommandTable."""

    def test_dispatch(self):
        calls = []
        table = CommandTable({"touch": lambda *args: calls.append(args)})
        assert table.dispatch(InvokeCommand("touch", (4,))) is True
        assert calls == [(4,)]

    def test_unknown_is_ignored(self, logger, log_output):
        table = CommandTable(logger=logger)
        assert table.dispatch(InvokeCommand("explode", (1,))) is False

        record = json.loads(log_output.getvalue().strip().splitlines()[-1])
        assert record["event"] == "unknown_command"
        assert record["command"] == "explode"

    def test_register(self):
        table = CommandTable()
        table.register("reset", lambda: None)
        assert "reset" in table
        assert table.names == frozenset({"reset"})


class TestControlRouter:
    """Tests for ControlRouter."""

    @pytest.fixture
    def calls(self):
        return []

    @pytest.fixture
    def router(self, calls, logger):
        return ControlRouter(
            {"gain": 1.0, "loop": True},
            {"reset": lambda: calls.append("reset"), "touch": lambda i: calls.append(("touch", i))},
            logger=logger,
        )

    def test_param_stored(self, router):
        parsed = router.route(["gain", 0.25])
        assert isinstance(parsed, SetParam)
        assert router.get("gain") == 0.25

    def test_listener_called(self, router):
        seen = []
        router.on("gain", seen.append)
        router.route(["gain", 0.5])
        router.set("gain", 0.75)
        assert seen == [0.5, 0.75]

    def test_command_invoked(self, router, calls):
        router.route(["reset"])
        router.route("touch 2")
        assert calls == ["reset", ("touch", 2)]

    def test_unknown_command_ignored(self, router, calls):
        router.route(["fly", 1])
        assert calls == []
        assert router.params == {"gain": 1.0, "loop": True}

    def test_unknown_param(self, router):
        with pytest.raises(KeyError, match="Unknown param"):
            router.set("tempo", 1)
        with pytest.raises(KeyError):
            router.on("tempo", print)

    def test_update(self, router):
        router.update({"gain": 0.1, "loop": False})
        router.update([("gain", 0.2)])
        assert router.params == {"gain": 0.2, "loop": False}

    def test_overlap_rejected(self):
        with pytest.raises(ValueError, match="both param and command"):
            ControlRouter({"reset": 0}, {"reset": lambda: None})

    def test_param_names(self, router):
        assert router.param_names == frozenset({"gain", "loop"})
