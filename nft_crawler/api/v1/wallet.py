"""Wallet NFT and node version endpoints"""
import httpx
import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response

from nft_crawler.config import get_settings
from nft_crawler.schemas.nft import SolanaVersionResponse, WalletResponse
from nft_crawler.services.crawler import NftCrawler, get_crawler
from nft_crawler.services.errors import AddressValidationError, RpcClientError
from nft_crawler.services.uri_token import UriTokenError, decode_uri_token

logger = structlog.get_logger()
router = APIRouter()


def metadata_http_client() -> httpx.AsyncClient:
    """HTTP client used to fetch off-chain metadata documents"""
    settings = get_settings()
    return httpx.AsyncClient(
        timeout=settings.metadata_fetch_timeout,
        follow_redirects=True,
    )


@router.get("/solana_version", response_model=SolanaVersionResponse)
async def solana_version(crawler: NftCrawler = Depends(get_crawler)):
    """Get the version of the connected Solana node"""
    try:
        version = await crawler.get_version()
    except RpcClientError as e:
        logger.error("Failed to fetch solana version", error=str(e))
        raise HTTPException(status_code=502, detail=f"RPC failure: {e}")
    return SolanaVersionResponse(version=version)


@router.get("/wallet", response_model=WalletResponse)
async def wallet(
    account: str = Query(..., min_length=1),
    crawler: NftCrawler = Depends(get_crawler),
):
    """List the NFTs held by a wallet"""
    try:
        tokens = await crawler.get_nfts_for_owner(account)
    except AddressValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RpcClientError as e:
        logger.error("Failed to crawl wallet", account=account, error=str(e))
        raise HTTPException(status_code=502, detail=f"RPC failure: {e}")
    return WalletResponse(account=account, tokens_len=len(tokens), tokens=tokens)


@router.get("/load_metadata")
async def load_metadata(data: str = Query(..., min_length=1)):
    """
    Resolve a uri token from /wallet and return the off-chain metadata
    document it points to.
    """
    try:
        uri = decode_uri_token(data)
    except UriTokenError as e:
        raise HTTPException(status_code=400, detail=f"Failed to decode metadata: {e}")
    if not uri:
        raise HTTPException(status_code=400, detail="Metadata token carries no uri")

    try:
        async with metadata_http_client() as client:
            response = await client.get(uri)
            response.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.warning("Failed to fetch metadata document", uri=uri, error=str(e))
        raise HTTPException(status_code=502, detail=f"Failed to fetch metadata: {e}")

    return Response(content=response.content, media_type="application/json")
