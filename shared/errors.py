"""
RPC error taxonomy. Every failure surfaced by the data layer is an RpcError
subclass carrying a short `kind` tag the HTTP layer can echo to the frontend.
"""


class RpcError(Exception):
    kind = "rpc_error"
    retryable = False


class MissingIdentifierError(RpcError, ValueError):
    """A required identifier was empty. Raised before any network I/O."""
    kind = "validation"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Missing {name}")


class RateLimitedError(RpcError):
    kind = "rate_limited"
    retryable = True

    def __init__(self, message: str = "Rate limited - please wait"):
        super().__init__(message)


class UpstreamError(RpcError):
    kind = "upstream"

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Qubic RPC error {status_code}: {body}")


class DecodeError(RpcError):
    kind = "decode"


class TransportError(RpcError):
    """Network failure or timeout before a response arrived."""
    kind = "transport"
    retryable = True


class TickUnavailableError(RpcError):
    kind = "tick_unavailable"

    def __init__(self, message: str = "Current tick not yet known"):
        super().__init__(message)
