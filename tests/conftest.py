"""Pytest configuration and fixtures for the NFT crawler tests"""
import base64
import json
import struct
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Generator, List, Optional

import httpx
import pytest
from solders.pubkey import Pubkey
from spl.token.constants import TOKEN_PROGRAM_ID

from nft_crawler.services.crawler import NftCrawler
from nft_crawler.services.metadata import (
    MAX_NAME_LENGTH,
    MAX_SYMBOL_LENGTH,
    MAX_URI_LENGTH,
    METADATA_PROGRAM_ID,
    METADATA_V1_KEY,
    find_metadata_account,
)
from nft_crawler.services.rpc_transport import RpcTransport
from nft_crawler.services.solana_client import SolanaClient

RPC_URL = "https://rpc.test"
METADATA_ACCOUNT_SIZE = 679


class FakeClock:
    """Monotonic clock that only advances when ``sleep`` is called"""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def rpc_result(request: httpx.Request, result: Any) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


def rpc_error(request: httpx.Request, error: Dict[str, Any]) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": error})


def make_transport(
    handler: Callable[[httpx.Request], httpx.Response],
    clock: Optional[FakeClock] = None,
) -> RpcTransport:
    clock = clock or FakeClock()
    return RpcTransport(
        RPC_URL,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        sleep=clock.sleep,
        clock=clock,
    )


def borsh_string(value: str, width: Optional[int] = None) -> bytes:
    raw = value.encode("utf-8")
    if width is not None:
        raw = raw.ljust(width, b"\x00")
    return struct.pack("<I", len(raw)) + raw


def build_metadata_account(
    mint: Pubkey,
    name: str = "Degen Ape #1",
    symbol: str = "DAPE",
    uri: str = "https://arweave.net/abc123",
    update_authority: Optional[Pubkey] = None,
    creators: Optional[List[Pubkey]] = None,
    legacy: bool = False,
) -> bytes:
    """Borsh-encode a MetadataV1 account the way the program lays it out.

    ``legacy`` omits the optional trailing fields and the zero padding.
    """
    update_authority = update_authority or Pubkey.new_unique()
    data = bytes([METADATA_V1_KEY]) + bytes(update_authority) + bytes(mint)
    data += borsh_string(name, MAX_NAME_LENGTH)
    data += borsh_string(symbol, MAX_SYMBOL_LENGTH)
    data += borsh_string(uri, MAX_URI_LENGTH)
    data += struct.pack("<H", 500)
    if creators is None:
        data += b"\x00"
    else:
        data += b"\x01" + struct.pack("<I", len(creators))
        for creator in creators:
            data += bytes(creator) + b"\x01" + bytes([100 // len(creators)])
    data += b"\x00"  # primary_sale_happened
    data += b"\x01"  # is_mutable
    if legacy:
        return data
    data += b"\x01\xfe"  # edition_nonce
    data += b"\x01\x00"  # token_standard
    return data.ljust(METADATA_ACCOUNT_SIZE, b"\x00")


def token_account_entry(
    mint: Pubkey,
    ui_amount: Optional[float],
    decimals: int = 0,
    program_owner: Pubkey = TOKEN_PROGRAM_ID,
    parsed_type: str = "account",
) -> Dict[str, Any]:
    """One element of a jsonParsed getTokenAccountsByOwner response"""
    amount = 0 if ui_amount is None else int(ui_amount * 10 ** decimals)
    return {
        "pubkey": str(Pubkey.new_unique()),
        "account": {
            "data": {
                "program": "spl-token",
                "parsed": {
                    "type": parsed_type,
                    "info": {
                        "isNative": False,
                        "mint": str(mint),
                        "owner": str(Pubkey.new_unique()),
                        "state": "initialized",
                        "tokenAmount": {
                            "amount": str(amount),
                            "decimals": decimals,
                            "uiAmount": ui_amount,
                            "uiAmountString": str(ui_amount),
                        },
                    },
                },
                "space": 165,
            },
            "executable": False,
            "lamports": 2039280,
            "owner": str(program_owner),
            "rentEpoch": 361,
        },
    }


class FakeNode:
    """In-memory Solana node answering the RPC methods the crawler uses"""

    def __init__(self):
        self.token_accounts: List[Dict[str, Any]] = []
        self.accounts: Dict[str, bytes] = {}
        self.errors: Dict[str, Dict[str, Any]] = {}
        self.version = "1.18.22"
        self.requests: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    @property
    def calls(self) -> int:
        return len(self.requests)

    def add_nft(self, mint: Pubkey, **metadata: Any) -> Pubkey:
        address, _ = find_metadata_account(mint)
        self.accounts[str(address)] = build_metadata_account(mint, **metadata)
        return address

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        with self._lock:
            self.requests.append(body)
        method = body["method"]
        params = body["params"]

        if method == "getVersion":
            return rpc_result(request, {"solana-core": self.version, "feature-set": 3580551090})
        if method == "getTokenAccountsByOwner":
            return rpc_result(request, {"context": {"slot": 250000000}, "value": self.token_accounts})
        if method == "getAccountInfo":
            address = params[0]
            if address in self.errors:
                return rpc_error(request, self.errors[address])
            data = self.accounts.get(address)
            value = None
            if data is not None:
                value = {
                    "data": [base64.b64encode(data).decode(), "base64"],
                    "executable": False,
                    "lamports": 5616720,
                    "owner": str(METADATA_PROGRAM_ID),
                    "rentEpoch": 361,
                    "space": len(data),
                }
            return rpc_result(request, {"context": {"slot": 250000000}, "value": value})
        return rpc_error(request, {"code": -32601, "message": "Method not found"})


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_node() -> FakeNode:
    return FakeNode()


@pytest.fixture
def solana_client(fake_node: FakeNode) -> Generator[SolanaClient, None, None]:
    """SolanaClient wired to the in-memory node"""
    client = SolanaClient(
        rpc_url=RPC_URL,
        transport=make_transport(fake_node.handler),
        executor=ThreadPoolExecutor(max_workers=2),
    )
    yield client
    client.close()


@pytest.fixture
def crawler(solana_client: SolanaClient) -> NftCrawler:
    return NftCrawler(solana_client)
