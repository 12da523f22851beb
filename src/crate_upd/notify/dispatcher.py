"""Fan a classified change out to the broadcast channel and subscribers.

Sends are strictly sequential and each one is followed by a fixed delay, which
keeps the bot under the provider's broadcast rate limits. A failed send is
logged and skipped; nothing is retried within a dispatch.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from ..models import ActionKind, VersionRecord
from ..store import StoreError, SubscriptionStore
from .messages import render_message
from .telegram import SendError

logger = logging.getLogger(__name__)


class MessageSink(Protocol):
    def send(
        self,
        target: int,
        text: str,
        disable_link_preview: bool = True,
        silent: bool = True,
    ) -> None: ...


@dataclass(frozen=True)
class DispatchReport:
    attempted: int
    failed: int

    def __post_init__(self) -> None:
        if self.attempted < 0 or self.failed < 0:
            raise ValueError("Dispatch counts must be non-negative")
        if self.failed > self.attempted:
            raise ValueError("Failed sends cannot exceed attempted sends")

    @property
    def delivered(self) -> int:
        return self.attempted - self.failed


class Dispatcher:
    def __init__(
        self,
        sink: MessageSink,
        store: SubscriptionStore,
        broadcast_target: int | None = None,
        delay: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if delay < 0:
            raise ValueError("delay must be non-negative")
        self.sink = sink
        self.store = store
        self.broadcast_target = broadcast_target
        self.delay = delay
        self._sleep = sleep

    def recipients(self, crate: str) -> list[int]:
        """Return the broadcast target (if any) followed by the crate's subscribers."""

        targets: list[int] = []
        if self.broadcast_target is not None:
            targets.append(self.broadcast_target)

        try:
            subscribers = self.store.list_subscribers(crate)
        except StoreError as exc:
            logger.error("db error while getting subscribers of %s: %s", crate, exc)
            subscribers = []

        targets.extend(subscribers)
        return targets

    def dispatch(self, record: VersionRecord, action: ActionKind) -> DispatchReport:
        message = render_message(record, action)
        targets = self.recipients(record.name)

        failed = 0
        for target in targets:
            try:
                self.sink.send(target, message, disable_link_preview=True, silent=True)
            except SendError as exc:
                failed += 1
                logger.warning("%s", exc)
            self._sleep(self.delay)

        logger.info(
            "%s %s#%s: notified %d/%d recipient(s)",
            action.value,
            record.name,
            record.version,
            len(targets) - failed,
            len(targets),
        )
        return DispatchReport(attempted=len(targets), failed=failed)
