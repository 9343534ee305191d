"""Solana NFT Crawler API - Main Application"""
import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from nft_crawler.config import get_settings
from nft_crawler.api.v1.router import api_router
from nft_crawler.services.crawler import close_crawler

settings = get_settings()


def configure_logging(level: str = settings.log_level) -> None:
    """Configure structured logging on top of the stdlib logging module"""
    logging.basicConfig(format="%(message)s", level=level.upper())
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info(
        "Starting Solana NFT Crawler API",
        version=settings.app_version,
        rpc_url=settings.solana_rpc_url,
    )

    yield

    close_crawler()
    logger.info("Solana NFT Crawler API shutdown complete")


def create_app() -> FastAPI:
    """Create FastAPI application"""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Discover the NFTs held by a Solana wallet",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "cluster": settings.solana_cluster,
        }

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "nft_crawler.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
