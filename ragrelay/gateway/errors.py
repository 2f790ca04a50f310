"""Gateway error taxonomy."""


class GatewayError(Exception):
    """Base class for proxy gateway failures."""

    pass


class UpstreamUnreachable(GatewayError):
    """Raised when the inference backend cannot be contacted."""

    default_message = "Failed to reach the inference backend. Is it running?"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class UpstreamError(GatewayError):
    """The backend answered with a non-success status.

    The body is relayed verbatim to the caller; this exception only exists so
    the condition can be logged and matched.
    """

    def __init__(self, status_code: int, body: bytes) -> None:
        super().__init__(f"Upstream returned HTTP {status_code}")
        self.status_code = status_code
        self.body = body


class CallerAborted(GatewayError):
    """The caller stopped the operation. Normal termination, never logged as an error."""

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(reason or "Caller aborted")
        self.reason = reason
