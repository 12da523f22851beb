"""Minimal Telegram Bot API client."""

from __future__ import annotations

import logging
from typing import Any

import requests

logger = logging.getLogger(__name__)

API_URL = "https://api.telegram.org"
REQUEST_TIMEOUT = 30


class TelegramError(RuntimeError):
    """Raised when a Bot API call fails at the transport or API level."""


class SendError(TelegramError):
    """Raised when a message could not be delivered to a chat."""


class TelegramClient:
    def __init__(
        self,
        token: str,
        api_url: str = API_URL,
        session: requests.Session | None = None,
    ) -> None:
        if not token:
            raise ValueError("Bot token must be non-empty")
        self._base_url = f"{api_url}/bot{token}"
        self._session = session or requests.Session()

    def call(self, method: str, payload: dict[str, Any], timeout: float = REQUEST_TIMEOUT) -> Any:
        """Invoke a Bot API method and return its ``result`` field."""

        try:
            response = self._session.post(f"{self._base_url}/{method}", json=payload, timeout=timeout)
        except requests.RequestException as exc:
            raise TelegramError(f"{method} request failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise TelegramError(
                f"{method} returned non-JSON response (status {response.status_code})"
            ) from exc

        if not isinstance(body, dict):
            raise TelegramError(
                f"{method} returned unexpected response (status {response.status_code}): {body!r:.200}"
            )
        if response.status_code != 200 or not body.get("ok"):
            description = body.get("description") or f"status {response.status_code}"
            raise TelegramError(f"{method} failed: {description}")
        return body.get("result")

    def send_message(
        self,
        chat_id: int,
        text: str,
        disable_link_preview: bool = False,
        silent: bool = False,
    ) -> None:
        self.call(
            "sendMessage",
            {
                "chat_id": chat_id,
                "text": text,
                "parse_mode": "HTML",
                "disable_web_page_preview": disable_link_preview,
                "disable_notification": silent,
            },
        )

    def get_updates(self, offset: int | None, timeout: int) -> list[dict[str, Any]]:
        payload: dict[str, Any] = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None:
            payload["offset"] = offset
        result = self.call("getUpdates", payload, timeout=timeout + REQUEST_TIMEOUT)
        return result if isinstance(result, list) else []


class TelegramSink:
    """Message sink delivering notifications through the Bot API."""

    def __init__(self, client: TelegramClient) -> None:
        self.client = client

    def send(
        self,
        target: int,
        text: str,
        disable_link_preview: bool = True,
        silent: bool = True,
    ) -> None:
        try:
            self.client.send_message(
                target,
                text,
                disable_link_preview=disable_link_preview,
                silent=silent,
            )
        except TelegramError as exc:
            raise SendError(f"Failed to send message to {target}: {exc}") from exc
