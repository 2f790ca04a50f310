"""Incremental NDJSON decoder for streamed chat responses.

Turns raw byte chunks into content deltas. Chunks may split lines and
multi-byte characters anywhere; only complete newline-terminated lines are
parsed, and lines that are not valid chat events are skipped.
"""

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator

from ragrelay.gateway.cancellation import CancellationToken

logger = logging.getLogger(__name__)


def parse_delta(line: str) -> str | None:
    """Extract ``message.content`` from one NDJSON line.

    Returns:
        The delta text, or None when the line is blank, malformed, or carries
        no non-empty content.
    """
    line = line.strip()
    if not line:
        return None

    try:
        event = json.loads(line)
    except json.JSONDecodeError:
        logger.debug(f"Skipping unparsable stream line: {line[:80]!r}")
        return None

    if not isinstance(event, dict):
        return None
    message = event.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if not isinstance(content, str) or not content:
        return None
    return content


class NdjsonDecoder:
    """Stateful decoder owning the partial-line buffer of one stream."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Unterminated text carried over to the next chunk."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[str]:
        """Decode one chunk and return the deltas of every line it completed."""
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        deltas = []
        for line in lines:
            delta = parse_delta(line)
            if delta:
                deltas.append(delta)
        return deltas

    def close(self) -> list[str]:
        """Finish the stream. The unterminated remainder is discarded, never parsed."""
        leftover = self._buffer + self._decoder.decode(b"", final=True)
        if leftover.strip():
            logger.debug(f"Discarding unterminated stream tail ({len(leftover)} chars)")
        self._buffer = ""
        return []


async def decode_stream(
    chunks: AsyncIterable[bytes],
    token: CancellationToken | None = None,
) -> AsyncIterator[str]:
    """Yield content deltas from a byte stream in arrival order.

    Stops quietly at the next suspension point once ``token`` fires.
    """
    decoder = NdjsonDecoder()
    async for chunk in chunks:
        if token is not None and token.cancelled:
            return
        for delta in decoder.feed(chunk):
            yield delta
            if token is not None and token.cancelled:
                return
    decoder.close()
