"""Runtime — one search-and-deliver cycle.

Opens a streaming session with the query producer, aggregates the streamed
text under a deadline, and posts the result to the chat destination in
transport-sized chunks. Failures end in a diagnostic chat message rather
than an exception.
"""

from __future__ import annotations

import asyncio
import logging
import traceback
from typing import TYPE_CHECKING

from scout.cancellation import CancellationToken, iterate_until_cancelled
from scout.chunking import split_message
from scout.messages import AssistantFragment, FinalResult, OtherMessage, QueryRequest

if TYPE_CHECKING:
    from scout.config import RunSettings
    from scout.messages import StreamMessage
    from scout.producers import Producer
    from scout.sinks import ChatSink

logger = logging.getLogger(__name__)

TRACE_LINES = 3


class AggregatedResult:
    """Append-only text buffer owned by a single run."""

    def __init__(self) -> None:
        self._parts: list[str] = []

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def add(self, message: StreamMessage) -> None:
        """Fold one stream message into the buffer.

        Assistant text is always appended. A successful final result is
        appended only when the fragments did not already contain it, since
        producers commonly repeat the whole answer there.
        """
        match message:
            case AssistantFragment():
                text = message.text
                if text:
                    self._parts.append(text)
                logger.debug(f"Assistant fragment: {len(text)} chars")
            case FinalResult(success=True):
                if message.text and message.text not in self.text:
                    self._parts.append(message.text)
                logger.info(f"Final result received (subtype={message.subtype})")
            case FinalResult():
                logger.warning(f"Unsuccessful final result ignored (subtype={message.subtype})")
            case OtherMessage():
                logger.info(f"Ignoring stream message: type={message.tag}, subtype={message.subtype}")


def format_failure(error: BaseException, prefix: str) -> str:
    """Render an exception as a chat-friendly diagnostic message.

    Includes the innermost traceback lines (the failing frame and the
    exception line) when a traceback is available.
    """
    details = str(error) or type(error).__name__
    if error.__traceback__ is not None:
        trace = "".join(traceback.format_exception(error)).rstrip().splitlines()
        details += "\n```" + "\n".join(trace[-TRACE_LINES:]) + "```"
    return f"{prefix} {details}"


async def stream_result(
    producer: Producer,
    request: QueryRequest,
    result: AggregatedResult,
    timeout_s: float,
) -> None:
    """Consume the producer into ``result`` until it finishes or the deadline passes.

    Partial output stays in ``result`` whether the stream ends normally, is
    cut off by the deadline, or raises.
    """
    token = CancellationToken()

    def on_deadline() -> None:
        logger.warning(f"Search timeout - cancelling after {timeout_s:g} seconds")
        token.cancel("deadline exceeded")

    deadline = asyncio.get_running_loop().call_later(timeout_s, on_deadline)
    try:
        async for message in iterate_until_cancelled(producer(request, token), token):
            result.add(message)
    finally:
        deadline.cancel()


async def deliver_result(
    sink: ChatSink, destination: str, text: str, settings: RunSettings
) -> int:
    """Post ``text`` as ordered chunks, or the empty notice. Returns messages sent."""
    if not text.strip():
        await sink.post(destination, settings.empty_notice)
        return 1

    chunks = split_message(text, settings.max_chunk_length)
    for i, chunk in enumerate(chunks):
        header = settings.results_header if i == 0 else ""
        await sink.post(destination, header + chunk, link_preview=True)
    return len(chunks)


async def execute_run(
    settings: RunSettings,
    prompt: str,
    producer: Producer,
    sink: ChatSink,
    destination: str,
) -> str:
    """Run one search and deliver its outcome to ``destination``.

    1. Post the starting notice
    2. Stream the producer's answer under the configured deadline
    3. Post the result chunks (or the empty notice)
    4. On any failure post a diagnostic instead

    Returns the aggregated text, which may be partial after a failure.
    """
    logger.info(f"Starting scheduled search (destination={destination})")
    result = AggregatedResult()

    try:
        await sink.post(destination, settings.starting_notice)

        request = QueryRequest(
            prompt=prompt,
            output_format=settings.output_format,
            permission_mode=settings.permission_mode,
            cwd=settings.cwd,
        )
        await stream_result(producer, request, result, settings.timeout_s)

        sent = await deliver_result(sink, destination, result.text, settings)
        logger.info(
            f"Scheduled search completed (result_length={len(result.text)}, messages={sent})"
        )
    except Exception as e:
        logger.error(f"Scheduled search failed: {e}", exc_info=True)
        try:
            await sink.post(destination, format_failure(e, settings.failure_prefix))
        except Exception as notice_error:
            logger.error(
                f"Could not deliver failure notice to {destination}: {notice_error}",
                exc_info=True,
            )

    return result.text
