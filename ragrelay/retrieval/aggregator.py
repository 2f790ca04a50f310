"""Retrieval aggregator: concurrent fan-out over the Semantic, Vector and Graph sources.

Each source is isolated. A source that fails for any reason contributes an
empty result; the aggregate never raises.
"""

import asyncio
import logging
import time

import httpx

from ragrelay.chat.config import ChatConfig, get_chat_config
from ragrelay.models.schemas import ContextBlock, RagSource, RetrievalResult, SourceTitle
from ragrelay.parsing.text import MAX_CONTEXT_CHARS, clamp_text

logger = logging.getLogger(__name__)

MAX_ITEMS_PER_SOURCE = 5


def render_context(results: list[RetrievalResult]) -> ContextBlock:
    """Render retrieval results into a bounded context block.

    Sources are emitted in the order given; empty sources are omitted. Each
    contributes at most five trimmed list entries under a ``### Title`` header.
    """
    parts: list[str] = []
    sources: list[RagSource] = []
    for result in results:
        if not result.items:
            continue
        block = "\n".join(
            f"- {item.strip()}" for item in result.items[:MAX_ITEMS_PER_SOURCE]
        )
        parts.append(f"### {result.source_title.value}\n{block}")
        sources.append(RagSource(title=result.source_title.value, count=result.item_count))

    text = clamp_text("\n\n".join(parts), MAX_CONTEXT_CHARS)
    return ContextBlock(text=text, sources=sources)


class RetrievalAggregator:
    """Queries the three retrieval sources and merges their results."""

    def __init__(
        self,
        config: ChatConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or get_chat_config()
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(self._config.retrieval_timeout)
        )

    @property
    def endpoints(self) -> dict[SourceTitle, str]:
        return {
            SourceTitle.SEMANTIC: self._config.semantic_url,
            SourceTitle.VECTOR: self._config.vector_url,
            SourceTitle.GRAPH: self._config.graph_url,
        }

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_context(self, query: str) -> ContextBlock:
        """Retrieve and merge context for ``query``.

        All three sources are awaited to completion before rendering, in the
        fixed order Semantic, Vector, Graph.

        Args:
            query: The user's prompt.

        Returns:
            ContextBlock with the rendered text and per-source counts. Empty
            when every source failed or returned nothing.
        """
        if not query or not query.strip():
            return ContextBlock()

        start_time = time.perf_counter()
        endpoints = self.endpoints
        settled = await asyncio.gather(
            *(self._fetch(title, url, query) for title, url in endpoints.items()),
            return_exceptions=True,
        )
        results: list[RetrievalResult] = []
        for title, outcome in zip(endpoints, settled, strict=True):
            if isinstance(outcome, Exception):
                logger.warning(f"{title.value} retrieval failed unexpectedly: {outcome!r}")
                outcome = RetrievalResult(source_title=title)
            elif isinstance(outcome, BaseException):
                raise outcome
            results.append(outcome)
        latency_ms = int((time.perf_counter() - start_time) * 1000)

        context = render_context(results)
        logger.info(
            f"Retrieval complete: {len(context.sources)}/{len(results)} sources "
            f"with results, {len(context.text)} chars, {latency_ms}ms"
        )
        return context

    async def _fetch(self, title: SourceTitle, url: str, query: str) -> RetrievalResult:
        """Query one source; any failure yields an empty result."""
        empty = RetrievalResult(source_title=title)
        try:
            response = await self._client.get(
                url,
                params={"q": query},
                timeout=self._config.retrieval_timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"{title.value} retrieval failed: {e!r}")
            return empty

        if response.status_code != 200:
            logger.warning(f"{title.value} retrieval returned HTTP {response.status_code}")
            return empty

        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"{title.value} retrieval returned invalid JSON: {e}")
            return empty

        if not isinstance(data, list):
            logger.warning(f"{title.value} retrieval returned {type(data).__name__}, not a list")
            return empty

        items = ["" if item is None else str(item) for item in data]
        return RetrievalResult(source_title=title, items=items)
