"""Telegram sink — sends messages via the Bot API.

Set up:
1. Talk to @BotFather on Telegram → /newbot → export the token as TELEGRAM_BOT_TOKEN.
2. Start a chat with your bot (or add it to a group) once so it can message you.
3. Find your chat ID: https://api.telegram.org/bot<TOKEN>/getUpdates
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from scout.sinks import DeliveryError, read_token, register

if TYPE_CHECKING:
    from scout.config import SinkConfig

logger = logging.getLogger(__name__)

_API_URL = "https://api.telegram.org"
_PARSE_ERROR = "can't parse entities"


class TelegramSink:
    def __init__(
        self,
        token: str,
        *,
        timeout: float = 15,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = f"{_API_URL}/bot{token}"
        self.timeout = timeout
        self.transport = transport

    async def post(
        self, destination: str, text: str, *, link_preview: bool = False
    ) -> None:
        payload = {
            "chat_id": destination,
            "text": text,
            "parse_mode": "Markdown",
            "link_preview_options": {"is_disabled": not link_preview},
        }
        status, data, body = await self._send(payload)

        # Chunks of model output can split or unbalance Markdown entities.
        if status == 400 and _PARSE_ERROR in (data.get("description") or ""):
            logger.warning(f"Telegram rejected Markdown ({data['description']}); resending as plain text")
            payload.pop("parse_mode")
            status, data, body = await self._send(payload)

        if status != 200 or not data.get("ok"):
            description = data.get("description") or body
            raise DeliveryError(f"Telegram API error {status}: {description}")

        logger.debug(f"Telegram message sent. Message ID: {data.get('result', {}).get('message_id')}")

    async def _send(self, payload: dict) -> tuple[int, dict, str]:
        """POST sendMessage; returns (status code, decoded JSON or {}, raw body)."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(f"{self._base_url}/sendMessage", json=payload)
        except httpx.HTTPError as e:
            raise DeliveryError(f"Failed to reach Telegram: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        return resp.status_code, data, resp.text


@register("telegram")
def make_sink(config: SinkConfig) -> TelegramSink:
    return TelegramSink(read_token(config, "TELEGRAM_BOT_TOKEN"))
