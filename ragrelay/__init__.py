"""ragrelay - streaming inference proxy with retrieval-grounded chat.

Combines FastAPI for the HTTP surface, httpx for upstream I/O,
and Pydantic for data validation.

Components:
    - api: HTTP routes relaying model listing and streamed chat
    - gateway: Upstream proxy with single-fire cancellation
    - retrieval: Concurrent fan-out over the three retrieval sources
    - chat: Transcript assembly, NDJSON stream decoding, chat turns
    - parsing: Attachment text extraction (plain text and PDF)
    - models: Request/response and transcript schemas
"""

__version__ = "0.1.0"
