"""Consuming side of the gateway: transcript assembly and streamed turns.

Responsibilities:
    - Outgoing request assembly from history, prompt, context and attachments
    - Incremental NDJSON decoding of streamed responses
    - Chat turns with abort, fallback and in-order delta application

Modules: ``config``, ``transcript``, ``decoder``, ``client``.
"""
