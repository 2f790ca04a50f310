"""Chat client configuration with environment variable loading.

Covers the consuming side: where the gateway lives, where the three
retrieval sources live, and how much history a turn carries.
"""

import os

import httpx
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file
load_dotenv()


class ChatConfig(BaseModel):
    """Configuration for the chat client and retrieval aggregator.

    Attributes:
        gateway_url: Base URL of the proxy gateway.
        semantic_url: Semantic retrieval endpoint.
        vector_url: Vector retrieval endpoint.
        graph_url: Graph retrieval endpoint.
        retrieval_timeout: Per-source timeout in seconds.
        history_window: Prior messages carried into each turn.
    """

    gateway_url: str = Field(
        default_factory=lambda: os.getenv("GATEWAY_URL", "http://localhost:8000"),
        description="Proxy gateway base URL",
    )
    semantic_url: str = Field(
        default_factory=lambda: os.getenv(
            "RAG_SEMANTIC_URL", "http://localhost:3001/api/search/semantic"
        ),
        description="Semantic retrieval endpoint",
    )
    vector_url: str = Field(
        default_factory=lambda: os.getenv(
            "RAG_VECTOR_URL", "http://localhost:3001/api/search/vector"
        ),
        description="Vector retrieval endpoint",
    )
    graph_url: str = Field(
        default_factory=lambda: os.getenv(
            "RAG_GRAPH_URL", "http://localhost:3001/api/search/graph"
        ),
        description="Graph retrieval endpoint",
    )
    retrieval_timeout: float = Field(
        default_factory=lambda: float(os.getenv("RAG_TIMEOUT", "10.0")),
        gt=0.0,
        description="Per-source retrieval timeout in seconds",
    )
    history_window: int = Field(
        default_factory=lambda: int(os.getenv("CHAT_HISTORY_WINDOW", "12")),
        ge=0,
        le=200,
        description="Number of prior messages sent with each turn",
    )

    @field_validator("gateway_url")
    @classmethod
    def strip_gateway_url(cls, v: str) -> str:
        """Drop surrounding whitespace and any trailing slash."""
        return v.strip().rstrip("/")

    @field_validator("semantic_url", "vector_url", "graph_url")
    @classmethod
    def validate_source_url(cls, v: str) -> str:
        """Require a parseable http(s) URL for each retrieval source."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("Retrieval URLs must start with http:// or https://")
        try:
            httpx.URL(v)
        except httpx.InvalidURL as e:
            raise ValueError(f"Invalid retrieval URL: {e}") from e
        return v


def get_chat_config() -> ChatConfig:
    """Create chat configuration from environment.

    Returns:
        Configured ChatConfig instance.
    """
    return ChatConfig()
