"""Long polling loop receiving chat commands from the Bot API."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

from ..notify.telegram import TelegramClient, TelegramError
from ..store import StoreError, SubscriptionStore
from .commands import handle_command

logger = logging.getLogger(__name__)

LONG_POLL_TIMEOUT = 30
ERROR_PAUSE = 5.0


class CommandPoller:
    """Fetch updates with ``getUpdates`` and answer command messages."""

    def __init__(
        self,
        client: TelegramClient,
        store: SubscriptionStore,
        index_root: Path,
        poll_timeout: int = LONG_POLL_TIMEOUT,
    ) -> None:
        self.client = client
        self.store = store
        self.index_root = Path(index_root)
        self.poll_timeout = poll_timeout
        self.offset: int | None = None

    def handle_update(self, update: dict[str, Any]) -> None:
        message = update.get("message")
        if not isinstance(message, dict):
            return
        chat = message.get("chat")
        text = message.get("text")
        chat_id = chat.get("id") if isinstance(chat, dict) else None
        if not isinstance(text, str) or not isinstance(chat_id, int):
            return

        try:
            reply = handle_command(text, chat_id, self.store, self.index_root)
        except StoreError as exc:
            logger.error("db error while handling %r from %s: %s", text, chat_id, exc)
            return
        if reply is None:
            return

        try:
            self.client.send_message(
                chat_id,
                reply.text,
                disable_link_preview=reply.disable_link_preview,
            )
        except TelegramError as exc:
            logger.warning("failed to answer %s: %s", chat_id, exc)

    def poll_once(self) -> int:
        """Handle one batch of updates and return how many were received."""

        updates = self.client.get_updates(self.offset, self.poll_timeout)
        for update in updates:
            if not isinstance(update, dict):
                logger.warning("ignoring malformed update %r", update)
                continue
            update_id = update.get("update_id")
            if isinstance(update_id, int):
                self.offset = update_id + 1
            self.handle_update(update)
        return len(updates)

    def run_forever(self, stop: threading.Event | None = None) -> None:
        stop = stop or threading.Event()
        while not stop.is_set():
            try:
                self.poll_once()
            except TelegramError as exc:
                logger.warning("getUpdates failed: %s", exc)
                stop.wait(ERROR_PAUSE)
