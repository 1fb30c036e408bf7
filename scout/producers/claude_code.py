"""Claude Agent SDK producer — runs the query as an unattended agent session.

The SDK streams structured messages over the Claude Code CLI, so the
agent can use its own tools (web search) while we collect the text.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

from claude_agent_sdk import (
    AssistantMessage,
    ClaudeAgentOptions,
    ResultMessage,
    TextBlock,
    query,
)

from scout.messages import (
    AssistantFragment,
    FinalResult,
    OtherMessage,
    OtherPart,
    TextPart,
)
from scout.producers import Producer, register

if TYPE_CHECKING:
    from scout.cancellation import CancellationToken
    from scout.config import ProducerConfig
    from scout.messages import QueryRequest, StreamMessage

logger = logging.getLogger(__name__)

SUPPORTED_OUTPUT_FORMATS = {"stream-json"}


def _block_kind(block: Any) -> str:
    """TextBlock -> "text", ToolUseBlock -> "tool_use", ..."""
    name = type(block).__name__
    if name.endswith("Block"):
        name = name[: -len("Block")]
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in name).lstrip("_")


def to_stream_message(message: Any) -> StreamMessage:
    """Translate one SDK message into a StreamMessage variant."""
    if isinstance(message, AssistantMessage):
        parts = [
            TextPart(text=block.text) if isinstance(block, TextBlock)
            else OtherPart(type=_block_kind(block))
            for block in message.content or []
        ]
        return AssistantFragment(parts=parts)

    if isinstance(message, ResultMessage):
        return FinalResult(
            subtype=message.subtype,
            text=message.result or "",
            success=message.subtype == "success" and not message.is_error,
        )

    return OtherMessage(
        tag=type(message).__name__,
        subtype=getattr(message, "subtype", None),
    )


def build_options(request: QueryRequest) -> ClaudeAgentOptions:
    """Map a QueryRequest onto SDK options."""
    if request.output_format not in SUPPORTED_OUTPUT_FORMATS:
        raise ValueError(
            f"Unsupported output format '{request.output_format}'. "
            f"Available: {sorted(SUPPORTED_OUTPUT_FORMATS)}"
        )
    kwargs: dict[str, Any] = dict(
        permission_mode=request.permission_mode,
        cwd=request.cwd,
    )
    if request.model:
        kwargs["model"] = request.model
    return ClaudeAgentOptions(**kwargs)


@register("claude_code")
def make_producer(config: ProducerConfig) -> Producer:
    """Return a producer bound to the configured model."""

    async def produce(
        request: QueryRequest, token: CancellationToken
    ) -> AsyncIterator[StreamMessage]:
        if config.model and not request.model:
            request = request.model_copy(update={"model": config.model})
        options = build_options(request)

        logger.info(
            f"Starting Claude Code query (cwd={request.cwd}, "
            f"permission_mode={request.permission_mode}, model={request.model or 'default'})"
        )
        async for message in query(prompt=request.prompt, options=options):
            if token.cancelled:
                break
            yield to_stream_message(message)

    return produce
