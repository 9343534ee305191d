"""Solana RPC client façade for the NFT crawler"""
import json
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, List, Dict, Any

import structlog
from solana.rpc.commitment import Commitment, Confirmed
from solders.account import Account
from solders.errors import SerdeJSONError
from solders.pubkey import Pubkey
from solders.rpc.responses import GetAccountInfoResp

from nft_crawler.config import get_settings
from nft_crawler.services.dispatch import run_blocking
from nft_crawler.services.errors import RpcProtocolError
from nft_crawler.services.rpc_transport import RpcTransport, RpcTransportStats

logger = structlog.get_logger()


@dataclass(frozen=True)
class KeyedTokenAccount:
    """Token account as returned by getTokenAccountsByOwner (jsonParsed)"""
    pubkey: str
    owner: str
    lamports: int
    parsed: Optional[Dict[str, Any]]


def _rpc_value(result: Any, method: str) -> Any:
    if not isinstance(result, dict) or "value" not in result:
        raise RpcProtocolError(f"{method}: result has no 'value' member")
    return result["value"]


def _parse_keyed_token_account(item: Any) -> Optional[KeyedTokenAccount]:
    """Reshape one getTokenAccountsByOwner entry, or None if it is malformed"""
    try:
        account = item["account"]
        data = account["data"]
        return KeyedTokenAccount(
            pubkey=item["pubkey"],
            owner=account["owner"],
            lamports=account.get("lamports", 0),
            parsed=data.get("parsed") if isinstance(data, dict) else None,
        )
    except (KeyError, TypeError, AttributeError) as e:
        pubkey = item.get("pubkey") if isinstance(item, dict) else None
        logger.warning("Skipping malformed token account entry", account=pubkey, error=repr(e))
        return None


def _parse_account_info(result: Any) -> Optional[Account]:
    raw = json.dumps({"jsonrpc": "2.0", "id": 0, "result": result})
    try:
        response = GetAccountInfoResp.from_json(raw)
    except (SerdeJSONError, ValueError) as e:
        raise RpcProtocolError(f"getAccountInfo: malformed result: {e}") from e
    if not isinstance(response, GetAccountInfoResp):
        raise RpcProtocolError(f"getAccountInfo: unexpected response {response}")
    return response.value


class SolanaClient:
    """
    Typed RPC operations over a shared RpcTransport.

    Every transport call is blocking, so each one is dispatched to a worker
    thread and awaited; the event loop never waits on network I/O.
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        transport: Optional[RpcTransport] = None,
        executor: Optional[ThreadPoolExecutor] = None,
        commitment: Commitment = Confirmed,
    ):
        settings = get_settings()
        self.rpc_url = rpc_url or settings.solana_rpc_url
        self.commitment = commitment

        if transport is None:
            headers = {"User-Agent": settings.rpc_user_agent}
            if settings.rpc_origin:
                headers["Origin"] = settings.rpc_origin
            transport = RpcTransport(
                self.rpc_url,
                timeout=settings.rpc_timeout,
                headers=headers,
            )
        self._transport = transport
        self._executor = executor or ThreadPoolExecutor(
            max_workers=settings.rpc_max_workers,
            thread_name_prefix="rpc-worker",
        )

    @property
    def transport_stats(self) -> RpcTransportStats:
        return self._transport.stats

    async def _send(self, method: str, params: Any) -> Any:
        return await run_blocking(
            method,
            self._transport.send,
            method,
            params,
            executor=self._executor,
        )

    async def get_version(self) -> str:
        """Get the solana-core version string of the node"""
        result = await self._send("getVersion", [])
        try:
            return result["solana-core"]
        except (KeyError, TypeError) as e:
            raise RpcProtocolError("getVersion: result has no 'solana-core' member") from e

    async def get_token_accounts_by_owner(
        self,
        owner: Pubkey,
        program_id: Pubkey,
    ) -> List[KeyedTokenAccount]:
        """Get token accounts owned by an address, filtered by token program"""
        method = "getTokenAccountsByOwner"
        result = await self._send(
            method,
            [
                str(owner),
                {"programId": str(program_id)},
                {"encoding": "jsonParsed", "commitment": self.commitment},
            ],
        )
        value = _rpc_value(result, method)
        if not isinstance(value, list):
            raise RpcProtocolError(f"{method}: 'value' is not a list")
        accounts = (_parse_keyed_token_account(item) for item in value)
        return [account for account in accounts if account is not None]

    async def get_account_with_commitment(
        self,
        address: Pubkey,
        commitment: Commitment,
    ) -> Optional[Account]:
        """Get account info, or None if the account does not exist"""
        method = "getAccountInfo"
        result = await self._send(
            method,
            [str(address), {"encoding": "base64", "commitment": commitment}],
        )
        return _parse_account_info(result)

    def close(self) -> None:
        self._transport.close()
        self._executor.shutdown(wait=False)
        logger.info("Closed Solana RPC client", url=self.rpc_url)


# Singleton instance
_solana_client: Optional[SolanaClient] = None


def get_solana_client() -> SolanaClient:
    """Get or create Solana client singleton"""
    global _solana_client
    if _solana_client is None:
        _solana_client = SolanaClient()
        logger.info("Created Solana RPC client", url=_solana_client.rpc_url)
    return _solana_client


def close_solana_client() -> None:
    """Close Solana client singleton"""
    global _solana_client
    if _solana_client is not None:
        _solana_client.close()
        _solana_client = None
