"""Render classified index changes and deliver them to recipients."""

from .dispatcher import DispatchReport, Dispatcher, MessageSink
from .messages import render_message
from .telegram import SendError, TelegramClient, TelegramError, TelegramSink

__all__ = [
    "DispatchReport",
    "Dispatcher",
    "MessageSink",
    "SendError",
    "TelegramClient",
    "TelegramError",
    "TelegramSink",
    "render_message",
]
