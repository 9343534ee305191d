"""NFT metadata schemas"""
from typing import List

from pydantic import BaseModel, ConfigDict


class TokenMetadata(BaseModel):
    """Descriptive data of one NFT held by a wallet.

    ``uri`` is an opaque token (see ``nft_crawler.services.uri_token``), not
    the raw uri text.
    """
    model_config = ConfigDict(frozen=True)

    update_authority: str
    mint: str
    name: str
    symbol: str
    uri: str


class WalletResponse(BaseModel):
    account: str
    tokens_len: int
    tokens: List[TokenMetadata]


class SolanaVersionResponse(BaseModel):
    version: str
