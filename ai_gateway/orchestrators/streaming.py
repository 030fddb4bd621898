"""Streaming proxy: relay an upstream event stream chunk by chunk.

``StreamingProxy.open()`` starts the upstream call and only returns once
the upstream has accepted it, so any failure up to that point surfaces
as a structured ``UpstreamRequestError`` and the caller never sees a
partial body.  The returned async iterator yields the upstream bytes
unmodified, in arrival order, without holding more than one chunk.

Once bytes have been relayed an upstream failure cannot be reported in
band: the client may already hold a valid prefix of the event stream.
The iterator logs the interruption and simply ends.

The iterator releases the upstream connection in ``finally``, which also
runs when the consumer stops early (client disconnect closes or cancels
the generator).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ai_gateway.providers.base import StreamInterruptedError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from ai_gateway.providers.base import ChatStream, GenerationProvider

logger = logging.getLogger("ai_gateway.orchestrators.streaming")

STREAM_MEDIA_TYPE = "text/event-stream"

STREAM_RESPONSE_HEADERS: dict[str, str] = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}
"""Headers that stop intermediaries from buffering the relayed stream."""


class StreamingProxy:
    """Byte-exact relay of streamed chat completions."""

    def __init__(self, provider: GenerationProvider) -> None:
        self._provider = provider

    async def open(self, payload: dict[str, Any]) -> AsyncIterator[bytes]:
        """Start the upstream stream and return the relay iterator.

        Raises:
            UpstreamRequestError: If the upstream rejects the request or
                cannot be reached before the first byte.
        """
        stream = await self._provider.open_chat_stream(payload)
        logger.info("Chat stream opened | model=%s", payload.get("model", ""))
        return self._relay(stream)

    async def _relay(self, stream: ChatStream) -> AsyncIterator[bytes]:
        chunks = 0
        relayed = 0
        try:
            async for chunk in stream.aiter_bytes():
                chunks += 1
                relayed += len(chunk)
                yield chunk
        except StreamInterruptedError as exc:
            logger.warning(
                "Chat stream interrupted | chunks=%d | bytes=%d | error=%s",
                chunks,
                relayed,
                exc,
            )
            return
        finally:
            await stream.aclose()

        logger.info("Chat stream completed | chunks=%d | bytes=%d", chunks, relayed)
