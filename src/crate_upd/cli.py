"""CLI entrypoint wiring the poll loop and the chat command surface."""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from pathlib import Path

from .bot import CommandPoller
from .config import ConfigError, Settings, load_settings
from .core import PollLoop
from .history import CommitWindowWalker, HistorySynchronizer, SyncError
from .notify import Dispatcher, TelegramClient, TelegramSink
from .store import SqliteSubscriptionStore

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the JSON or YAML configuration file",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single poll cycle and exit",
    )
    parser.add_argument(
        "--no-commands",
        action="store_true",
        help="Do not answer chat commands",
    )
    return parser.parse_args(argv)


def build_poll_loop(
    settings: Settings,
    client: TelegramClient,
    store: SqliteSubscriptionStore,
) -> PollLoop:
    synchronizer = HistorySynchronizer(
        index_path=settings.index_path,
        index_url=settings.index_url,
        branch=settings.branch,
    )
    dispatcher = Dispatcher(
        sink=TelegramSink(client),
        store=store,
        broadcast_target=settings.channel,
        delay=settings.broadcast_delay,
    )
    return PollLoop(
        synchronizer=synchronizer,
        walker=CommitWindowWalker(settings.index_path),
        dispatcher=dispatcher,
        pull_delay=settings.pull_delay,
        commit_delay=settings.commit_delay,
    )


def build_command_poller(settings: Settings, store: SqliteSubscriptionStore) -> CommandPoller:
    # one TelegramClient (and requests.Session) per thread
    return CommandPoller(TelegramClient(settings.bot_token), store, settings.index_path)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings(args.config)
    except ConfigError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(level=settings.log_level_number, format=LOG_FORMAT)
    logger.info("starting")

    store = SqliteSubscriptionStore(settings.database)
    client = TelegramClient(settings.bot_token)
    loop = build_poll_loop(settings, client, store)

    try:
        loop.synchronizer.ensure_cloned()
    except SyncError as exc:
        logger.error("%s", exc)
        return 1

    if args.once:
        report = loop.run_cycle()
        logger.info("cycle finished: %s", report.to_dict())
        return 0 if report.ok else 1

    stop = threading.Event()
    if not args.no_commands:
        poller = build_command_poller(settings, store)
        threading.Thread(
            target=poller.run_forever,
            args=(stop,),
            name="commands",
            daemon=True,
        ).start()

    try:
        loop.run_forever(stop)
    except KeyboardInterrupt:
        logger.info("interrupted, shutting down")
    finally:
        stop.set()
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
