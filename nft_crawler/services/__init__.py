"""NFT crawler services"""
from .crawler import NftCrawler, get_crawler, close_crawler
from .errors import (
    RpcClientError,
    AddressValidationError,
    NetworkError,
    HttpStatusError,
    RpcProtocolError,
    RpcRemoteError,
    InternalDispatchError,
)
from .rpc_transport import RpcTransport, RpcTransportStats
from .solana_client import SolanaClient

__all__ = [
    "NftCrawler",
    "get_crawler",
    "close_crawler",
    "SolanaClient",
    "RpcTransport",
    "RpcTransportStats",
    # Errors
    "RpcClientError",
    "AddressValidationError",
    "NetworkError",
    "HttpStatusError",
    "RpcProtocolError",
    "RpcRemoteError",
    "InternalDispatchError",
]
