"""Text command handling.

Handlers only read the index checkout and talk to the subscription store; the
transport that receives messages and sends the replies lives in ``polling``.
"""

from __future__ import annotations

import html
from dataclasses import dataclass
from pathlib import Path

from ..models import VersionRecord
from ..parsers.index_record import RecordDecodeError, crate_exists, read_last
from ..store import SubscriptionStore

START_MESSAGE = """
Hi! I will notify you about updates of crates. Use /subscribe to subscribe for updates of crates you want to be notified about.

In case you want to see <b>all</b> updates go to @crates_updates

My source: <a href='https://github.com/WaffleLapkin/crate_upd_bot'>[github]</a>"""

COMMANDS = {
    "start": "show the greeting message",
    "subscribe": "subscribe for updates of a crate, e.g. /subscribe serde",
    "unsubscribe": "unsubscribe from updates of a crate",
    "list": "list your subscriptions",
    "help": "show this message",
}


@dataclass(frozen=True)
class Reply:
    text: str
    disable_link_preview: bool = False


def help_text() -> str:
    lines = ["These commands are supported:"]
    lines.extend(f"/{name} - {description}" for name, description in COMMANDS.items())
    return "\n".join(lines)


def _parse(text: str) -> tuple[str, str] | None:
    text = text.strip()
    if not text.startswith("/"):
        return None
    head, _, argument = text[1:].partition(" ")
    # "/subscribe@crates_upd_bot serde" in group chats
    name = head.split("@", 1)[0].lower()
    if name not in COMMANDS:
        return None
    return name, argument.strip()


def _last_record(index_root: Path, crate: str) -> VersionRecord | None:
    try:
        return read_last(index_root, crate)
    except RecordDecodeError:
        return None


def _subscribe(chat_id: int, crate: str, store: SubscriptionStore, index_root: Path) -> Reply:
    if not crate:
        return Reply("Usage: /subscribe <code>crate-name</code>")
    if not crate_exists(index_root, crate):
        return Reply(f"Error: there is no such crate <code>{html.escape(crate)}</code>.")

    record = _last_record(index_root, crate)
    # the index spells the canonical name; notifications are matched on it
    if record is not None:
        crate = record.name

    store.subscribe(chat_id, crate)
    version = (
        f" (current version <code>{record.version}</code> {record.html_links()})"
        if record is not None
        else ""
    )
    return Reply(
        f"You've successfully subscribed for updates on <code>{html.escape(crate)}</code>"
        f"{version} crate. Use /unsubscribe to unsubscribe.",
        disable_link_preview=True,
    )


def _unsubscribe(chat_id: int, crate: str, store: SubscriptionStore, index_root: Path) -> Reply:
    if not crate:
        return Reply("Usage: /unsubscribe <code>crate-name</code>")

    # subscriptions are stored under the canonical name, see _subscribe
    record = _last_record(index_root, crate) if crate_exists(index_root, crate) else None
    if record is not None:
        crate = record.name

    store.unsubscribe(chat_id, crate)
    return Reply(
        f"You've successfully unsubscribed for updates on <code>{html.escape(crate)}</code> crate. "
        "Use /subscribe to subscribe back."
    )


def _list(chat_id: int, store: SubscriptionStore, index_root: Path) -> Reply:
    subscriptions = store.list_subscriptions(chat_id)
    if not subscriptions:
        return Reply(
            "Currently you aren't subscribed to anything. "
            "Use /subscribe to subscribe to some crate."
        )

    entries = []
    for crate in subscriptions:
        record = _last_record(index_root, crate)
        if record is None:
            entries.append(f"— <code>{html.escape(crate)}</code>")
            continue
        entries.append(f"— <code>{crate}#{record.version}</code> {record.html_links()}")

    return Reply(
        "You are currently subscribed to:\n" + "\n".join(entries),
        disable_link_preview=True,
    )


def handle_command(
    text: str,
    chat_id: int,
    store: SubscriptionStore,
    index_root: Path,
) -> Reply | None:
    """Return the reply to a command message, or None if ``text`` is not a command.

    Raises:
        StoreError: If the subscription store is unavailable.
    """
    parsed = _parse(text)
    if parsed is None:
        return None

    name, argument = parsed
    if name == "start":
        return Reply(START_MESSAGE)
    if name == "subscribe":
        return _subscribe(chat_id, argument, store, index_root)
    if name == "unsubscribe":
        return _unsubscribe(chat_id, argument, store, index_root)
    if name == "list":
        return _list(chat_id, store, index_root)
    return Reply(help_text())
