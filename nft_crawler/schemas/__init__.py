"""Pydantic schemas"""
from .nft import TokenMetadata, WalletResponse, SolanaVersionResponse

__all__ = ["TokenMetadata", "WalletResponse", "SolanaVersionResponse"]
