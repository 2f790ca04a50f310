"""Test package for ragrelay.

Structure:
    - unit/: Gateway, decoder, aggregator, transcript and client tests
    - integration/: HTTP surface tests through the FastAPI app

The inference backend and retrieval sources are replaced with httpx mock
transports, so no external services are needed.
Leverages pytest with pytest-check for soft assertions.
"""
