"""Main application entry point.

Runs the FastAPI gateway with uvicorn.
Environment variables are loaded from .env file.
"""

import logging
import os
import sys

from dotenv import load_dotenv

# Load environment variables before any other imports that might need them
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Application entry point."""
    import uvicorn

    from ragrelay.api.app import create_app

    app = create_app()
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))

    logger.info(f"Starting ragrelay gateway on http://{host}:{port}")
    logger.info(f"API docs available at http://{host}:{port}/docs")

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
