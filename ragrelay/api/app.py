"""FastAPI application factory and configuration.

Main application entry point with lifespan management, middleware,
and router registration.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ragrelay.api.routes import router as gateway_router
from ragrelay.gateway import GatewayConfig, ProxyGateway, get_gateway_config

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Log startup and release the upstream HTTP client on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application while it runs.
    """
    gateway: ProxyGateway = app.state.gateway
    logger.info(f"Starting gateway for {gateway.config.upstream_base_url}")
    yield
    logger.info("Shutting down gateway...")
    await gateway.aclose()


def create_app(
    config: GatewayConfig | None = None,
    gateway: ProxyGateway | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Optional gateway configuration. Loads from environment if not provided.
        gateway: Optional prebuilt gateway (tests inject one with a mock transport).

    Returns:
        Configured FastAPI application instance.
    """
    config = config or (gateway.config if gateway else get_gateway_config())

    application = FastAPI(
        title="ragrelay",
        description=(
            "Streaming proxy for a local inference backend. Relays model listing "
            "and NDJSON chat streams with caller-driven cancellation, and reads "
            "attachments to text for retrieval-grounded chat turns."
        ),
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    # Must exist before lifespan runs; ASGITransport never runs it.
    application.state.gateway = gateway or ProxyGateway(config)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(gateway_router)

    @application.get("/health")
    async def health_check() -> dict[str, str]:
        """Check service health status."""
        return {"status": "healthy", "service": "ragrelay"}

    return application


app = create_app()
