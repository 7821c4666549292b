"""Debug output that goes to a replaceable handler (stderr by default)."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any, Callable

DebugHandler = Callable[[Any, str], None]


def default_debug_handler(arg: Any, message: str) -> None:
    """Write the message to standard error."""
    print(f"DEBUG: {message}", file=sys.stderr)


@dataclass
class _HandlerState:
    handler: DebugHandler = default_debug_handler
    arg: Any = None


_state = _HandlerState()


def debug_str(message: str) -> None:
    """Pass a finished message to the current handler."""
    _state.handler(_state.arg, message)


def debug(fmt: str, *args: Any, **kwargs: Any) -> None:
    """Format a message with ``str.format`` and emit it (skipped under ``-O``)."""
    if __debug__:
        debug_str(fmt.format(*args, **kwargs))


def set_debug_handler(handler: DebugHandler, arg: Any) -> None:
    """Route debug messages to ``handler``, which is called with ``arg`` and the message."""
    _state.handler = handler
    _state.arg = arg


def reset_debug_handler() -> None:
    """Send debug messages to standard error again."""
    _state.handler = default_debug_handler