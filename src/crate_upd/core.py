"""Poll loop driving fetch, classification, notification and checkpointing.

This module MUST NOT depend on the Telegram transport so that the loop can be
exercised with any message sink.

One cycle handles the fetched commits one at a time, oldest first:

    fetch -> walk -> (diff -> classify -> dispatch -> advance checkpoint)*

The checkpoint moves past a commit only once its notifications have been
attempted, so restarting the process at any point never skips a commit.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from .classifier import ClassificationError, classify
from .history import CommitWindowWalker, HistorySynchronizer, SyncError, WalkError
from .models import CycleReport
from .notify import Dispatcher

logger = logging.getLogger(__name__)


class PollLoop:
    """Owns the index checkout; nothing else may move the checkpoint."""

    def __init__(
        self,
        synchronizer: HistorySynchronizer,
        walker: CommitWindowWalker,
        dispatcher: Dispatcher,
        pull_delay: float = 300.0,
        commit_delay: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.synchronizer = synchronizer
        self.walker = walker
        self.dispatcher = dispatcher
        self.pull_delay = pull_delay
        self.commit_delay = commit_delay
        self._sleep = sleep

    def run_cycle(self) -> CycleReport:
        """Process every commit fetched since the checkpoint.

        Raises:
            NotFastForward: If the checkpoint cannot be fast-forwarded.
        """
        try:
            head = self.synchronizer.fetch()
            checkpoint = self.synchronizer.checkpoint()
        except SyncError as exc:
            logger.error("%s", exc)
            return CycleReport(status="sync-failed", error=str(exc))

        if head == checkpoint:
            logger.info("index is up to date at %s", head[:12])
            return CycleReport(status="up-to-date")

        processed = 0
        try:
            for window in self.walker.windows(checkpoint, head):
                deltas = self.walker.diff(window)
                try:
                    result = classify(deltas)
                except ClassificationError as exc:
                    logger.error("cannot classify commit %s: %s", window, exc)
                    return CycleReport(
                        status="classification-failed",
                        processed=processed,
                        error=f"{window}: {exc}",
                    )

                self.dispatcher.dispatch(result.record, result.action)
                self.synchronizer.advance(window.next)
                processed += 1
                self._sleep(self.commit_delay)
        except WalkError as exc:
            logger.error("%s", exc)
            return CycleReport(status="walk-failed", processed=processed, error=str(exc))
        except SyncError as exc:
            logger.error("%s", exc)
            return CycleReport(status="sync-failed", processed=processed, error=str(exc))

        return CycleReport(status="completed", processed=processed)

    def run_forever(self, stop: threading.Event | None = None) -> None:
        """Run cycles separated by ``pull_delay`` until ``stop`` is set."""

        stop = stop or threading.Event()
        while not stop.is_set():
            logger.info("start pulling updates")
            report = self.run_cycle()
            logger.info("pulling updates finished: %s", report.to_dict())
            stop.wait(self.pull_delay)
