"""Slack sink — posts messages with the Web API's chat.postMessage.

Requires: SLACK_BOT_TOKEN (a bot token with chat:write).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from scout.sinks import DeliveryError, read_token, register

if TYPE_CHECKING:
    from scout.config import SinkConfig

logger = logging.getLogger(__name__)


class SlackSink:
    def __init__(self, client: AsyncWebClient) -> None:
        self.client = client

    async def post(
        self, destination: str, text: str, *, link_preview: bool = False
    ) -> None:
        try:
            await self.client.chat_postMessage(
                channel=destination,
                text=text,
                unfurl_links=link_preview,
            )
        except SlackApiError as e:
            error = e.response.get("error", "unknown_error") if e.response else str(e)
            raise DeliveryError(f"Slack API error posting to {destination}: {error}") from e
        logger.debug(f"Slack message posted to {destination} ({len(text)} chars)")


@register("slack")
def make_sink(config: SinkConfig) -> SlackSink:
    return SlackSink(AsyncWebClient(token=read_token(config, "SLACK_BOT_TOKEN")))
