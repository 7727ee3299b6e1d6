"""Vercel AI Data Stream Protocol framing.

- ``0:"text chunk"\\n``  streamed text tokens
- ``3:"message"\\n``     error raised after the stream started
- ``d:{"finishReason":"stop"}\\n``  stream-done signal
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterable, AsyncIterator

from loguru import logger

MEDIA_TYPE = "text/plain; charset=utf-8"
STREAM_HEADERS = {
    "x-vercel-ai-data-stream": "v1",
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


def text_part(text: str) -> str:
    return f"0:{json.dumps(text)}\n"


def error_part(message: str) -> str:
    return f"3:{json.dumps(message)}\n"


def finish_part(reason: str = "stop") -> str:
    return f"d:{json.dumps({'finishReason': reason}, separators=(',', ':'))}\n"


async def vercel_data_stream(chunks: AsyncIterable[str]) -> AsyncIterator[str]:
    """Frame text deltas; a failure mid-stream becomes an error part plus an error finish."""
    try:
        async for chunk in chunks:
            if chunk:
                yield text_part(chunk)
    except Exception as exc:
        logger.exception("Answer stream failed after it started")
        yield error_part(str(exc) or type(exc).__name__)
        yield finish_part("error")
        return
    yield finish_part()
