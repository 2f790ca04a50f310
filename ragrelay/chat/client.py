"""Chat client consuming the proxy gateway.

Runs one turn at a time against a ``Conversation``: retrieval context is
gathered, the outgoing request is assembled, and the gateway's NDJSON stream
is decoded into the assistant message as it arrives.

Turn lifecycle::

    IDLE -> DISPATCHED -> STREAMING -> COMPLETED
                       |            -> ABORTED
                       -> FAILED_FALLBACK -> COMPLETED | FAILED
                       -> ABORTED

A streaming attempt that comes back with a non-success status or no body is
retried once as a non-streaming request. An aborted turn never falls back, and
a fallback that has started is not aborted.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing

import httpx

from ragrelay.chat.config import ChatConfig, get_chat_config
from ragrelay.chat.decoder import decode_stream
from ragrelay.chat.transcript import build_outgoing
from ragrelay.gateway.cancellation import CancellationToken, next_or_none
from ragrelay.gateway.errors import CallerAborted
from ragrelay.models.schemas import (
    ChatMessage,
    ContextBlock,
    Conversation,
    MessageMeta,
    OutgoingRequest,
    Role,
    TurnState,
)
from ragrelay.retrieval.aggregator import RetrievalAggregator

logger = logging.getLogger(__name__)

MODELS_PATH = "/api/models"
CHAT_PATH = "/api/chat"

_ABORTABLE = frozenset({TurnState.DISPATCHED, TurnState.STREAMING})
_TERMINAL = frozenset({TurnState.COMPLETED, TurnState.ABORTED, TurnState.FAILED})


class ChatClientError(Exception):
    """Raised when a chat call fails in a way the caller must see."""

    pass


def _has_body(response: httpx.Response) -> bool:
    return response.status_code != 204 and response.headers.get("content-length") != "0"


class ChatTurn:
    """One dispatched chat turn and the assistant message it fills.

    Attributes:
        request: The outgoing request, fixed at creation.
        message: The assistant message receiving deltas.
        context: Retrieval context used for this turn.
        token: Cancellation token; ``abort`` signals it.
        state: Current ``TurnState``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        chat_url: str,
        request: OutgoingRequest,
        message: ChatMessage,
        context: ContextBlock,
    ) -> None:
        self._client = client
        self._chat_url = chat_url
        self.request = request
        self.message = message
        self.context = context
        self.token = CancellationToken()
        self.state = TurnState.IDLE
        self.token.add_callback(self._on_abort)

    @property
    def finished(self) -> bool:
        return self.state in _TERMINAL

    def abort(self) -> None:
        """Stop the turn. Idempotent."""
        self.token.cancel("aborted by caller")

    def _on_abort(self) -> None:
        if self.state in _ABORTABLE:
            self.state = TurnState.ABORTED
            logger.info(f"Chat turn {self.message.id} aborted")

    async def run(self) -> str:
        """Drain the turn and return the final assistant content."""
        async for _ in self.stream():
            pass
        return self.message.content

    async def stream(self) -> AsyncIterator[str]:
        """Dispatch the turn and yield content deltas in arrival order.

        Each delta is appended to ``message`` before it is yielded. The message
        is sealed when the turn ends, however it ends.

        Raises:
            ChatClientError: If the request cannot be delivered or the fallback fails.
            RuntimeError: If the turn was already started.
        """
        if self.state is not TurnState.IDLE:
            raise RuntimeError(f"Chat turn {self.message.id} already started")
        self.state = TurnState.DISPATCHED
        deltas = self._deltas()
        try:
            async for delta in deltas:
                self.message.append(delta)
                yield delta
        except CallerAborted:
            logger.debug(f"Chat turn {self.message.id} stopped: {self.token.reason}")
        except httpx.HTTPError as e:
            self.state = TurnState.FAILED
            raise ChatClientError(f"Chat failed: {e}") from e
        finally:
            if not self.finished:
                # Consumer stopped iterating before the turn ended.
                self.token.cancel("consumer closed")
            if self.state is TurnState.DISPATCHED:
                self.state = TurnState.ABORTED
            await deltas.aclose()
            self.message.seal()

    async def _deltas(self) -> AsyncIterator[str]:
        request = self._client.build_request(
            "POST", self._chat_url, json=self.request.model_dump(mode="json")
        )
        response = await self.token.race(self._client.send(request, stream=True))
        try:
            if not response.is_success or not _has_body(response):
                logger.warning(
                    f"Streaming chat returned HTTP {response.status_code}; "
                    "falling back to a single response"
                )
            else:
                self.state = TurnState.STREAMING
                async with aclosing(decode_stream(self._chunks(response), self.token)) as deltas:
                    async for delta in deltas:
                        yield delta
                self.token.raise_if_cancelled()
                self.state = TurnState.COMPLETED
                return
        finally:
            await response.aclose()

        self.token.raise_if_cancelled()
        async for delta in self._fallback():
            yield delta

    async def _chunks(self, response: httpx.Response) -> AsyncIterator[bytes]:
        chunks = response.aiter_bytes()
        while (chunk := await self.token.race(next_or_none(chunks))) is not None:
            yield chunk

    async def _fallback(self) -> AsyncIterator[str]:
        self.state = TurnState.FAILED_FALLBACK
        body = self.request.model_copy(update={"stream": False}).model_dump(mode="json")
        response = await self._client.post(self._chat_url, json=body)
        if not response.is_success:
            self.state = TurnState.FAILED
            raise ChatClientError(f"Chat failed ({response.status_code})")

        try:
            data = response.json()
        except ValueError:
            data = None
        message = data.get("message") if isinstance(data, dict) else None
        text = message.get("content") if isinstance(message, dict) else None
        if isinstance(text, str) and text:
            yield text
        self.state = TurnState.COMPLETED


class ChatClient:
    """Client for the proxy gateway with retrieval-grounded turns."""

    def __init__(
        self,
        config: ChatConfig | None = None,
        client: httpx.AsyncClient | None = None,
        aggregator: RetrievalAggregator | None = None,
    ) -> None:
        """Initialize the chat client.

        Args:
            config: Optional chat configuration.
                    Loads from environment if not provided.
            client: Optional HTTP client shared by chat calls and retrieval.
            aggregator: Optional retrieval aggregator.
        """
        self._config = config or get_chat_config()
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(None, connect=10.0))
        self._aggregator = aggregator or RetrievalAggregator(self._config, self._client)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_models(self) -> list[str]:
        """List model names offered by the backend, sorted.

        Raises:
            ChatClientError: If the gateway or backend cannot list models.
        """
        try:
            response = await self._client.get(f"{self._config.gateway_url}{MODELS_PATH}")
        except httpx.HTTPError as e:
            raise ChatClientError(f"Could not load models: {e}") from e
        if not response.is_success:
            raise ChatClientError(f"Model listing failed ({response.status_code})")

        try:
            data = response.json()
        except ValueError as e:
            raise ChatClientError("Model listing returned invalid JSON") from e

        models = data.get("models") if isinstance(data, dict) else None
        names = [
            m["name"]
            for m in models or []
            if isinstance(m, dict) and isinstance(m.get("name"), str) and m["name"]
        ]
        return sorted(names)

    async def prepare_turn(
        self,
        conversation: Conversation,
        prompt: str,
        *,
        model: str,
        include_rag: bool = True,
    ) -> ChatTurn:
        """Record the user's prompt and build the next turn.

        History is snapshotted before the new user message is appended, so the
        prompt is sent once, as the final user message.

        Args:
            conversation: Transcript state, updated in place.
            prompt: The user's input.
            model: Backend model name.
            include_rag: Whether to gather retrieval context.

        Returns:
            An idle ChatTurn; iterate ``stream()`` or await ``run()`` to dispatch it.

        Raises:
            ValueError: If the prompt is blank or no model is selected.
        """
        prompt = prompt.strip()
        if not prompt:
            raise ValueError("Prompt is empty")
        if not model or not model.strip():
            raise ValueError("Please select a model first")

        history = list(conversation.messages)
        user_message = ChatMessage(role=Role.USER, content=prompt)
        user_message.seal()
        conversation.messages.append(user_message)

        context = await self._aggregator.get_context(prompt) if include_rag else ContextBlock()
        request = build_outgoing(
            history,
            prompt,
            context,
            conversation.attachments,
            model,
            stream=True,
            window=self._config.history_window,
        )

        meta = MessageMeta(rag_enabled=include_rag, rag_sources=context.sources)
        assistant = ChatMessage(role=Role.ASSISTANT, meta=meta)
        conversation.messages.append(assistant)

        return ChatTurn(
            self._client,
            f"{self._config.gateway_url}{CHAT_PATH}",
            request,
            assistant,
            context,
        )
