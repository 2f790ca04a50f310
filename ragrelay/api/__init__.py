"""FastAPI surface of the gateway.

Endpoints:
    - GET /health: Service health status
    - GET /api/models: Inference backend model list passthrough
    - POST /api/chat: Streamed chat relay (NDJSON passthrough)
    - POST /api/attachments: Read an uploaded file to prompt text
"""

from ragrelay.api.app import app, create_app

__all__ = ["app", "create_app"]
