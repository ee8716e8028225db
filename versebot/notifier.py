"""Messaging transports for delivering passages to subscribers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import requests

from .models import Passage
from .secrets import mask_secret, resolve_secret

logger = logging.getLogger(__name__)

TELEGRAM_MAX_MESSAGE_LENGTH = 4096


class NotificationError(RuntimeError):
    """Raised when a message could not be delivered."""


@dataclass
class NotificationConfig:
    """High-level transport configuration."""

    enabled: bool = False
    provider: str = ""
    timeout: float = 10.0
    telegram_bot_token: Optional[str] = None
    telegram_bot_token_env: Optional[str] = "BOT_TOKEN"
    telegram_bot_token_file: Optional[str] = None


def format_passages(passages: Iterable[Passage]) -> str:
    """Render passages as "<ref>\\n<text>" blocks separated by blank lines."""
    return "\n\n".join(f"{p.ref}\n{p.text}" for p in passages)


def _truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def build_transport(config: NotificationConfig) -> "BaseTransport":
    """Create a transport from configuration; a logging transport when disabled."""

    provider = (config.provider or "").lower()

    if not config.enabled or not provider:
        logger.info("Notification disabled or provider missing, messages will only be logged")
        return LogTransport()

    if provider == "telegram":
        token = resolve_secret(
            value=config.telegram_bot_token,
            env=config.telegram_bot_token_env,
            file_path=config.telegram_bot_token_file,
            name="Telegram bot token",
        )
        logger.info("Telegram transport configured (token %s)", mask_secret(token))
        return TelegramTransport(bot_token=token, timeout=config.timeout)

    raise NotificationError(f"Unknown notification provider: {config.provider}")


class BaseTransport:
    """Delivers one text message to one subscriber; raises NotificationError on failure."""

    provider_name: str = "base"

    def send(self, subscriber_id, text: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def send_passages(self, subscriber_id, passages: Iterable[Passage]) -> None:
        self.send(subscriber_id, format_passages(passages))


class LogTransport(BaseTransport):
    """Writes messages to the log instead of sending them."""

    provider_name = "log"

    def send(self, subscriber_id, text: str) -> None:
        logger.info("[%s] -> %s:\n%s", self.provider_name, subscriber_id, text)


class TelegramTransport(BaseTransport):
    """Telegram Bot API sendMessage; the subscriber id is the chat id."""

    provider_name = "Telegram"

    def __init__(self, bot_token: str, timeout: float = 10.0):
        self.bot_token = bot_token
        self.timeout = timeout

    def send(self, subscriber_id, text: str) -> None:
        url = f"https://api.telegram.org/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": subscriber_id,
            "text": _truncate_text(text, TELEGRAM_MAX_MESSAGE_LENGTH),
            "disable_web_page_preview": True,
        }

        try:
            response = requests.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise NotificationError(f"Telegram request failed: {type(exc).__name__}") from exc
        _raise_for_status(response)

        try:
            data = response.json()
        except ValueError as exc:
            raise NotificationError("Telegram returned a non-JSON response") from exc
        if not data.get("ok"):
            raise NotificationError(f"Telegram send failed: {data.get('description', data)}")


def _raise_for_status(response: requests.Response) -> None:
    try:
        response.raise_for_status()
    except requests.HTTPError as exc:
        # The request URL embeds the bot token, keep it out of the message
        status = getattr(exc.response, "status_code", None) or response.status_code
        raise NotificationError(f"HTTP request failed: status {status}") from exc
