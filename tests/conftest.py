"""Pytest fixtures and shared test configuration.

Provides reusable fixtures for unit and integration tests.

Fixtures:
    - gateway_config: Gateway settings pointing at a fake backend host
    - chat_config: Chat settings pointing at fake gateway and retrieval hosts
    - make_gateway: Build a ProxyGateway over an httpx MockTransport handler
    - make_app_client: AsyncClient driving the FastAPI app over ASGITransport

The upstream inference backend and retrieval sources are replaced by
``httpx.MockTransport`` handlers; no network access is required.
"""

import json
from collections.abc import AsyncGenerator, Callable

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from ragrelay.api.app import create_app
from ragrelay.chat.config import ChatConfig
from ragrelay.gateway import GatewayConfig, ProxyGateway

UPSTREAM = "http://ollama.test"
GATEWAY = "http://gateway.test"

Handler = Callable[[httpx.Request], httpx.Response]


def ndjson_lines(*contents: str) -> bytes:
    """Encode chat deltas the way the inference backend streams them."""
    lines = [
        json.dumps(
            {"message": {"role": "assistant", "content": c}, "done": False},
            ensure_ascii=False,
        )
        for c in contents
    ]
    return ("\n".join(lines) + "\n").encode("utf-8")


@pytest.fixture
def gateway_config() -> GatewayConfig:
    """Return gateway configuration for a fake backend host."""
    return GatewayConfig(
        upstream_base_url=UPSTREAM,
        models_path="/api/tags",
        chat_path="/api/chat",
        connect_timeout=1.0,
        read_timeout=5.0,
        allowed_origins="*",
    )


@pytest.fixture
def chat_config() -> ChatConfig:
    """Return chat configuration for fake gateway and retrieval hosts."""
    return ChatConfig(
        gateway_url=GATEWAY,
        semantic_url="http://search.test/semantic",
        vector_url="http://search.test/vector",
        graph_url="http://search.test/graph",
        retrieval_timeout=1.0,
        history_window=12,
    )


@pytest.fixture
def make_gateway(gateway_config: GatewayConfig) -> Callable[[Handler], ProxyGateway]:
    """Return a factory building gateways over a mock upstream handler."""

    def factory(handler: Handler) -> ProxyGateway:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return ProxyGateway(gateway_config, client=client)

    return factory


@pytest.fixture
async def make_app_client(
    make_gateway: Callable[[Handler], ProxyGateway],
) -> AsyncGenerator[Callable[[Handler], AsyncClient]]:
    """Return a factory for API clients whose upstream is a mock handler.

    Yields:
        Factory producing AsyncClients bound to a fresh app instance.
    """
    clients: list[AsyncClient] = []
    gateways: list[ProxyGateway] = []

    def factory(handler: Handler) -> AsyncClient:
        gateway = make_gateway(handler)
        app = create_app(gateway=gateway)
        client = AsyncClient(transport=ASGITransport(app=app), base_url=GATEWAY)
        clients.append(client)
        gateways.append(gateway)
        return client

    yield factory

    for client in clients:
        await client.aclose()
    for gateway in gateways:
        await gateway.aclose()
