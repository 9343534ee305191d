"""Application configuration"""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = "Solana NFT Crawler"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8081
    api_prefix: str = "/api/v1"

    # Solana
    solana_cluster: str = "mainnet-beta"
    solana_rpc_url: str = "https://api.mainnet-beta.solana.com"

    # RPC transport
    rpc_timeout: float = 30.0  # seconds
    rpc_user_agent: str = "solana-nft-crawler/0.1.0"
    rpc_origin: Optional[str] = None
    rpc_max_workers: int = 8

    # Off-chain metadata documents
    metadata_fetch_timeout: float = 15.0  # seconds


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
