"""Proxy gateway to the local inference backend.

Responsibilities:
    - Model listing passthrough
    - Chat request forwarding with byte-for-byte streaming relay
    - Single-fire cancellation shared by caller, relay and upstream request
    - Upstream error taxonomy (unreachable, error status, caller abort)
"""

from ragrelay.gateway.cancellation import CancellationToken, StreamSession, StreamState
from ragrelay.gateway.config import GatewayConfig, get_gateway_config
from ragrelay.gateway.errors import (
    CallerAborted,
    GatewayError,
    UpstreamError,
    UpstreamUnreachable,
)
from ragrelay.gateway.proxy import ProxyGateway, RelayResponse, UpstreamReply

__all__ = [
    "CallerAborted",
    "CancellationToken",
    "GatewayConfig",
    "GatewayError",
    "ProxyGateway",
    "RelayResponse",
    "StreamSession",
    "StreamState",
    "UpstreamError",
    "UpstreamReply",
    "UpstreamUnreachable",
    "get_gateway_config",
]
