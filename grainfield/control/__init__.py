"""
Control messages: parameters and commands sent to a node.
"""

from grainfield.control.commands import (
    CommandTable,
    ControlMessage,
    ControlRouter,
    InvokeCommand,
    SetParam,
    coerce_token,
    parse_message,
    parse_text_message,
)

__all__ = [
    "CommandTable",
    "ControlMessage",
    "ControlRouter",
    "InvokeCommand",
    "SetParam",
    "coerce_token",
    "parse_message",
    "parse_text_message",
]
