"""Gateway configuration with environment variable loading.

Pydantic-based configuration for the inference backend proxy.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file
load_dotenv()


class GatewayConfig(BaseModel):
    """Configuration for the proxy gateway.

    Attributes:
        upstream_base_url: Inference backend base URL (Ollama by default).
        models_path: Backend path listing available models.
        chat_path: Backend path accepting chat requests.
        connect_timeout: Seconds allowed to establish the upstream connection.
        read_timeout: Seconds allowed for non-streaming upstream reads.
        allowed_origins: Comma-separated CORS origins.
    """

    upstream_base_url: str = Field(
        default_factory=lambda: os.getenv("OLLAMA_BASE_URL", "http://localhost:11434"),
        description="Inference backend base URL",
    )
    models_path: str = Field(
        default_factory=lambda: os.getenv("OLLAMA_MODELS_PATH", "/api/tags"),
        description="Backend model listing path",
    )
    chat_path: str = Field(
        default_factory=lambda: os.getenv("OLLAMA_CHAT_PATH", "/api/chat"),
        description="Backend chat path",
    )
    connect_timeout: float = Field(
        default_factory=lambda: float(os.getenv("UPSTREAM_CONNECT_TIMEOUT", "5.0")),
        gt=0.0,
        description="Upstream connection establishment timeout in seconds",
    )
    read_timeout: float = Field(
        default_factory=lambda: float(os.getenv("UPSTREAM_READ_TIMEOUT", "30.0")),
        gt=0.0,
        description="Upstream read timeout for non-streaming calls in seconds",
    )
    allowed_origins: str = Field(
        default_factory=lambda: os.getenv("ALLOWED_ORIGINS", "*"),
        description="Comma-separated CORS origins",
    )

    @field_validator("upstream_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("OLLAMA_BASE_URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("models_path", "chat_path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Normalize backend paths to start with a single slash."""
        return "/" + v.strip().lstrip("/")

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    def upstream_url(self, path: str) -> str:
        return f"{self.upstream_base_url}{path}"


def get_gateway_config() -> GatewayConfig:
    """Create gateway configuration from environment.

    Returns:
        Configured GatewayConfig instance.

    Raises:
        ValueError: If an environment value is invalid.
    """
    return GatewayConfig()
