"""Unit tests for individual components in isolation.

Coverage:
    - gateway/: Cancellation, stream sessions and the proxy relay
    - chat/: NDJSON decoding, transcript assembly and chat turns
    - retrieval/: Concurrent source fan-out and context rendering
    - models/, parsing/: Validation, attachments and PDF extraction
"""
