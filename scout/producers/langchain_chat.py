"""LangChain producer — streams a plain ChatAnthropic completion.

No agent tools; useful when the Claude Code CLI is not available. Each
streamed chunk becomes an assistant fragment and the full text is repeated
once more as the final result.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import HumanMessage

from scout.messages import AssistantFragment, FinalResult, OtherPart, TextPart
from scout.producers import Producer, register

if TYPE_CHECKING:
    from scout.cancellation import CancellationToken
    from scout.config import ProducerConfig
    from scout.messages import QueryRequest, StreamMessage

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"


def _get_llm(model: str, max_tokens: int) -> ChatAnthropic:
    """Create an Anthropic LLM instance."""
    api_key = os.environ.get("ANTHROPIC_API_KEY")
    if not api_key:
        raise RuntimeError("ANTHROPIC_API_KEY environment variable is not set")
    return ChatAnthropic(model=model, max_tokens=max_tokens, api_key=api_key)


def _to_parts(content) -> list[TextPart | OtherPart]:
    """Normalize chunk content — Anthropic can return a string or a list of blocks."""
    if isinstance(content, str):
        return [TextPart(text=content)] if content else []
    parts: list[TextPart | OtherPart] = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(TextPart(text=block))
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(TextPart(text=block.get("text", "")))
        elif isinstance(block, dict):
            parts.append(OtherPart(type=str(block.get("type", "unknown"))))
    return parts


@register("langchain")
def make_producer(config: ProducerConfig) -> Producer:
    """Return a producer streaming from ChatAnthropic."""

    async def produce(
        request: QueryRequest, token: CancellationToken
    ) -> AsyncIterator[StreamMessage]:
        model = request.model or config.model or DEFAULT_MODEL
        # No tools run here, so permission_mode and cwd have nothing to govern.
        llm = _get_llm(model, config.max_tokens)

        logger.info(f"Starting ChatAnthropic stream (model={model})")
        collected: list[str] = []
        async for chunk in llm.astream([HumanMessage(content=request.prompt)]):
            if token.cancelled:
                return
            parts = _to_parts(chunk.content)
            if not parts:
                continue
            fragment = AssistantFragment(parts=parts)
            collected.append(fragment.text)
            yield fragment

        yield FinalResult(text="".join(collected))

    return produce
