"""SQLite backed subscription store.

Schema:
    CREATE TABLE subscriptions (
        chat_id INTEGER NOT NULL,
        crate TEXT NOT NULL,
        PRIMARY KEY (chat_id, crate)
    );

Every operation opens its own connection and runs a single statement, so the
poll loop and the command surface can use one store instance from different
threads without sharing a connection.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 30.0


class StoreError(RuntimeError):
    """Raised when the subscription database cannot be read or written."""


class SubscriptionStore(Protocol):
    """Many-to-many mapping between chats and crate names."""

    def subscribe(self, chat_id: int, crate: str) -> None: ...

    def unsubscribe(self, chat_id: int, crate: str) -> None: ...

    def list_subscriptions(self, chat_id: int) -> list[str]: ...

    def list_subscribers(self, crate: str) -> list[int]: ...


class SqliteSubscriptionStore:
    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._init_database()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path, timeout=CONNECT_TIMEOUT)

    def _init_database(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._execute(
            """
            CREATE TABLE IF NOT EXISTS subscriptions (
                chat_id INTEGER NOT NULL,
                crate TEXT NOT NULL,
                PRIMARY KEY (chat_id, crate)
            )
            """
        )
        self._execute("CREATE INDEX IF NOT EXISTS idx_subscriptions_crate ON subscriptions (crate)")

    def _execute(self, sql: str, params: tuple[object, ...] = ()) -> list[tuple]:
        try:
            with closing(self._connect()) as conn:
                with conn:
                    return conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Subscription store error: {exc}") from exc

    def subscribe(self, chat_id: int, crate: str) -> None:
        self._execute(
            "INSERT OR IGNORE INTO subscriptions (chat_id, crate) VALUES (?, ?)",
            (chat_id, crate),
        )
        logger.debug("chat %s subscribed to %s", chat_id, crate)

    def unsubscribe(self, chat_id: int, crate: str) -> None:
        self._execute(
            "DELETE FROM subscriptions WHERE chat_id = ? AND crate = ?",
            (chat_id, crate),
        )
        logger.debug("chat %s unsubscribed from %s", chat_id, crate)

    def list_subscriptions(self, chat_id: int) -> list[str]:
        rows = self._execute(
            "SELECT crate FROM subscriptions WHERE chat_id = ? ORDER BY crate",
            (chat_id,),
        )
        return [row[0] for row in rows]

    def list_subscribers(self, crate: str) -> list[int]:
        rows = self._execute(
            "SELECT chat_id FROM subscriptions WHERE crate = ? ORDER BY chat_id",
            (crate,),
        )
        return [int(row[0]) for row in rows]
