"""Error types raised by the RPC transport, the client façade and the crawler"""
from typing import Any, Optional


class RpcClientError(Exception):
    """Base class for every error surfaced to callers of the crawler"""


class AddressValidationError(RpcClientError):
    """Owner address could not be decoded as a Solana public key"""

    def __init__(self, address: str):
        super().__init__(f"invalid owner address: {address!r}")
        self.address = address


class NetworkError(RpcClientError):
    """Transport-level I/O failure (connect, read, timeout)"""


class HttpStatusError(RpcClientError):
    """Non-success HTTP status, including 429 once the retry budget is spent"""

    def __init__(self, status_code: int, url: str):
        super().__init__(f"HTTP status {status_code} from {url}")
        self.status_code = status_code
        self.url = url


class RpcProtocolError(RpcClientError):
    """Response body did not have the expected JSON-RPC shape"""


class RpcRemoteError(RpcClientError):
    """The node answered with a structured JSON-RPC error object"""

    def __init__(self, code: int, message: str, data: Optional[Any] = None):
        super().__init__(f"RPC response error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data


class InternalDispatchError(RpcClientError):
    """Dispatching a blocking call to a worker, or joining it, failed"""
