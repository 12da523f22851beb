"""Chat command surface: subscribe, unsubscribe and list crates."""

from .commands import COMMANDS, Reply, handle_command
from .polling import CommandPoller

__all__ = [
    "COMMANDS",
    "CommandPoller",
    "Reply",
    "handle_command",
]
