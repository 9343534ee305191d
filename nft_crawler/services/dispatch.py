"""Run blocking calls on worker threads without stalling the event loop"""
import asyncio
import functools
from concurrent.futures import Executor
from typing import Any, Callable, Optional, TypeVar

import structlog

from nft_crawler.services.errors import InternalDispatchError, RpcClientError

logger = structlog.get_logger()

T = TypeVar("T")


async def run_blocking(
    label: str,
    func: Callable[..., T],
    *args: Any,
    executor: Optional[Executor] = None,
) -> T:
    """
    Dispatch ``func(*args)`` to ``executor`` and await its completion.

    RpcClientError raised by ``func`` propagates unchanged. Anything else,
    including a refused submission (executor already shut down), is reported
    as InternalDispatchError.
    """
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(executor, functools.partial(func, *args))
    except RpcClientError:
        raise
    except Exception as e:
        logger.error("Worker dispatch failed", call=label, error=str(e), exc_info=True)
        raise InternalDispatchError(
            f"{label}: fatal error in dispatching blocking call"
        ) from e
