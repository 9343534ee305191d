"""API v1 router aggregation"""
from fastapi import APIRouter

from nft_crawler.api.v1 import wallet

api_router = APIRouter()

api_router.include_router(wallet.router, tags=["Wallet"])
