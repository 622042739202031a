"""
Control message routing.

Every node receives messages of the form [name, value...]. A name is either
a parameter of the node, which is stored and announced to its listeners, or
a command, which is looked up in a static table and invoked with the
remaining values. Both sets are fixed when the node is built, so routing is
a plain lookup:

    ["gain", 0.5]          -> SetParam("gain", 0.5)
    ["startPath", 3, 12.5] -> InvokeCommand("startPath", (3, 12.5))

Text messages ("startPath 3 12.5") are split on whitespace and numeric
tokens converted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Collection, Iterable, Mapping, Sequence, Union

from grainfield.monitoring.logging import StructuredLogger, get_logger

ParamListener = Callable[[Any], None]


@dataclass(frozen=True)
class SetParam:
    """Store a parameter value."""
    name: str
    value: Any


@dataclass(frozen=True)
class InvokeCommand:
    """Run a command with positional arguments."""
    name: str
    args: tuple = ()


ControlMessage = Union[SetParam, InvokeCommand]


def coerce_token(token: str) -> Any:
    """Convert a text token to int or float when it looks numeric."""
    try:
        return int(token)
    except ValueError:
        pass
    try:
        return float(token)
    except ValueError:
        return token


def parse_text_message(text: str) -> list[Any]:
    return [coerce_token(token) for token in text.split()]


def parse_message(
    message: Sequence[Any] | str,
    param_names: Collection[str],
) -> ControlMessage:
    """Resolve a raw message against the node's parameter names.

    Raises:
        ValueError: If the message is empty.
    """
    if isinstance(message, str):
        message = parse_text_message(message)
    if len(message) == 0:
        raise ValueError("Control message must have a name")

    name = str(message[0])
    args = tuple(message[1:])

    if name in param_names:
        value = args[0] if len(args) == 1 else args
        return SetParam(name, value)
    return InvokeCommand(name, args)


class CommandTable:
    """Static name -> handler table."""

    def __init__(
        self,
        commands: Mapping[str, Callable[..., Any]] | None = None,
        logger: StructuredLogger | None = None,
    ):
        self._commands: dict[str, Callable[..., Any]] = dict(commands or {})
        self._logger = logger or get_logger()

    def register(self, name: str, handler: Callable[..., Any]) -> None:
        self._commands[name] = handler

    @property
    def names(self) -> frozenset[str]:
        return frozenset(self._commands)

    def dispatch(self, command: InvokeCommand) -> bool:
        """Invoke a command. Unknown names are ignored; returns whether one ran."""
        handler = self._commands.get(command.name)
        if handler is None:
            self._logger.debug("unknown_command", command=command.name, args=list(command.args))
            return False
        handler(*command.args)
        return True

    def __contains__(self, name: str) -> bool:
        return name in self._commands


class ControlRouter:
    """Parameters plus commands of one node.

    Example:
        router = ControlRouter({"gain": 1.0}, {"reset": player.reset})
        router.on("gain", player.set_gain)
        router.route(["gain", 0.5])   # stores 0.5, calls player.set_gain(0.5)
        router.route(["reset"])       # calls player.reset()
    """

    def __init__(
        self,
        params: Mapping[str, Any],
        commands: Mapping[str, Callable[..., Any]] | None = None,
        logger: StructuredLogger | None = None,
    ):
        self._params: dict[str, Any] = dict(params)
        self._listeners: dict[str, list[ParamListener]] = {}
        self.commands = CommandTable(commands, logger=logger)

        overlap = set(self._params) & self.commands.names
        if overlap:
            raise ValueError(f"Names used as both param and command: {sorted(overlap)}")

    @property
    def param_names(self) -> frozenset[str]:
        return frozenset(self._params)

    @property
    def params(self) -> dict[str, Any]:
        return dict(self._params)

    def get(self, name: str) -> Any:
        return self._params[name]

    def on(self, name: str, listener: ParamListener) -> None:
        """Call listener(value) whenever the parameter is set."""
        if name not in self._params:
            raise KeyError(f"Unknown param: {name}")
        self._listeners.setdefault(name, []).append(listener)

    def set(self, name: str, value: Any) -> None:
        if name not in self._params:
            raise KeyError(f"Unknown param: {name}")
        self._params[name] = value
        for listener in self._listeners.get(name, ()):
            listener(value)

    def update(self, values: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> None:
        items = values.items() if isinstance(values, Mapping) else values
        for name, value in items:
            self.set(name, value)

    def route(self, message: Sequence[Any] | str) -> ControlMessage:
        """Parse a message and apply it."""
        parsed = parse_message(message, self._params)
        if isinstance(parsed, SetParam):
            self.set(parsed.name, parsed.value)
        else:
            self.commands.dispatch(parsed)
        return parsed
