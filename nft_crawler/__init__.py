"""Solana NFT crawler: resilient RPC client and wallet NFT metadata discovery"""

__version__ = "0.1.0"
