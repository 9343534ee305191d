"""NFT discovery for a wallet: token accounts -> metadata PDAs -> decoded metadata"""
from typing import Any, Dict, List, Optional

import structlog
from solana.rpc.commitment import Confirmed
from solders.pubkey import Pubkey
from spl.token.constants import TOKEN_PROGRAM_ID

from nft_crawler.schemas.nft import TokenMetadata
from nft_crawler.services.accounts import (
    TOKEN_ACCOUNT_KINDS,
    classify_program,
    ui_amount_to_amount,
)
from nft_crawler.services.errors import AddressValidationError
from nft_crawler.services.metadata import (
    MetadataDecodeError,
    decode_metadata,
    find_metadata_account,
)
from nft_crawler.services.solana_client import (
    KeyedTokenAccount,
    SolanaClient,
    close_solana_client,
    get_solana_client,
)
from nft_crawler.services.uri_token import encode_uri_token

logger = structlog.get_logger()


def parse_owner_address(address: str) -> Pubkey:
    try:
        return Pubkey.from_string(address)
    except ValueError as e:
        raise AddressValidationError(address) from e


def nft_candidate_mint(account: KeyedTokenAccount) -> Optional[Pubkey]:
    """
    Return the mint of a token account holding exactly one indivisible unit.

    Returns None for accounts that are not NFT candidates: foreign or
    unknown owning programs, non-account parsed types (mints, multisigs),
    missing or malformed balances, and any raw balance other than 1.
    """
    try:
        program_owner = Pubkey.from_string(account.owner)
    except ValueError:
        return None
    if program_owner != TOKEN_PROGRAM_ID:
        return None

    kind = classify_program(program_owner)
    if kind not in TOKEN_ACCOUNT_KINDS:
        logger.debug("Skipping unsupported account kind", account=account.pubkey, kind=kind.value)
        return None

    parsed: Optional[Dict[str, Any]] = account.parsed
    if not parsed or parsed.get("type") != "account":
        return None

    try:
        info = parsed["info"]
        token_amount = info["tokenAmount"]
        ui_amount = token_amount.get("uiAmount")
        if ui_amount is None:
            return None
        amount = ui_amount_to_amount(float(ui_amount), int(token_amount["decimals"]))
        if amount != 1:
            return None
        return Pubkey.from_string(info["mint"])
    except (KeyError, TypeError, ValueError, OverflowError) as e:
        logger.warning("Skipping malformed token account", account=account.pubkey, error=str(e))
        return None


class NftCrawler:
    """
    Finds the NFTs held by a wallet and decodes their Metaplex metadata.

    Accounts are processed one at a time in the order the node returned
    them. Accounts that are irrelevant or undecodable are skipped; RPC
    failures abort the crawl.
    """

    def __init__(self, client: Optional[SolanaClient] = None):
        self._client = client

    @property
    def client(self) -> SolanaClient:
        if self._client is None:
            self._client = get_solana_client()
        return self._client

    async def get_version(self) -> str:
        return await self.client.get_version()

    async def get_nfts_for_owner(self, address: str) -> List[TokenMetadata]:
        owner = parse_owner_address(address)
        client = self.client

        accounts = await client.get_token_accounts_by_owner(owner, TOKEN_PROGRAM_ID)
        logger.info("Crawling token accounts", owner=address, accounts=len(accounts))

        nfts: List[TokenMetadata] = []
        for account in accounts:
            mint = nft_candidate_mint(account)
            if mint is None:
                continue
            nft = await self._load_metadata(mint)
            if nft is not None:
                nfts.append(nft)

        logger.info("Crawl finished", owner=address, nfts=len(nfts))
        return nfts

    async def _load_metadata(self, mint: Pubkey) -> Optional[TokenMetadata]:
        metadata_account, _ = find_metadata_account(mint)
        info = await self.client.get_account_with_commitment(metadata_account, Confirmed)
        if info is None:
            # No metadata registered for this mint
            return None

        try:
            meta = decode_metadata(info.data)
        except MetadataDecodeError as e:
            logger.warning(
                "Skipping undecodable metadata account",
                mint=str(mint),
                metadata_account=str(metadata_account),
                error=str(e),
            )
            return None

        return TokenMetadata(
            update_authority=str(meta.update_authority),
            mint=str(meta.mint),
            name=meta.name,
            symbol=meta.symbol,
            uri=encode_uri_token(meta.uri),
        )


# Singleton instance
_crawler: Optional[NftCrawler] = None


def get_crawler() -> NftCrawler:
    """Get or create crawler singleton"""
    global _crawler
    if _crawler is None:
        _crawler = NftCrawler()
    return _crawler


def close_crawler() -> None:
    """Drop the crawler singleton and close the shared RPC client"""
    global _crawler
    _crawler = None
    close_solana_client()
