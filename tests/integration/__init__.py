"""Integration tests for the gateway's HTTP surface.

Requests go through the real FastAPI app over ``httpx.ASGITransport``;
only the inference backend is mocked. The chat client is also driven
end to end against the app.
"""
