"""JSON-RPC 2.0 transport over HTTPS with rate-limit backoff and usage stats"""
import json
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterator, Optional

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from nft_crawler.schemas.rpc import (
    NodeUnhealthyErrorData,
    RpcErrorObject,
    SimulateTransactionResult,
)
from nft_crawler.services.errors import (
    HttpStatusError,
    NetworkError,
    RpcProtocolError,
    RpcRemoteError,
)

logger = structlog.get_logger()

DEFAULT_TIMEOUT = 30.0
TOO_MANY_REQUESTS_RETRIES = 5
DEFAULT_RETRY_PAUSE = 0.5  # seconds
MAX_RETRY_AFTER = 120  # seconds, exclusive

# Well-known server error codes with a decodable "data" payload
JSON_RPC_SERVER_ERROR_SEND_TRANSACTION_PREFLIGHT_FAILURE = -32002
JSON_RPC_SERVER_ERROR_NODE_UNHEALTHY = -32005

ERROR_DATA_SCHEMAS: Dict[int, type[BaseModel]] = {
    JSON_RPC_SERVER_ERROR_SEND_TRANSACTION_PREFLIGHT_FAILURE: SimulateTransactionResult,
    JSON_RPC_SERVER_ERROR_NODE_UNHEALTHY: NodeUnhealthyErrorData,
}


@dataclass(frozen=True)
class RpcTransportStats:
    """Cumulative usage of one transport instance. Times are in seconds."""
    request_count: int = 0
    elapsed_time: float = 0.0
    rate_limited_time: float = 0.0


@dataclass
class _CallTimer:
    started_at: float
    rate_limited_time: float = 0.0


def build_request_json(request_id: int, method: str, params: Any) -> Dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": method,
        "params": params,
    }


def parse_retry_after(value: Optional[str]) -> float:
    """Pause in seconds for a 429 response.

    Honors an integer Retry-After in [0, 120), falls back to 500ms otherwise.
    """
    if value is None:
        return DEFAULT_RETRY_PAUSE
    if not (value.isascii() and value.isdigit()):
        return DEFAULT_RETRY_PAUSE
    seconds = int(value)
    if 0 <= seconds < MAX_RETRY_AFTER:
        return float(seconds)
    return DEFAULT_RETRY_PAUSE


def decode_error_data(code: int, data: Any) -> Optional[BaseModel]:
    """Decode the optional "data" member of an RPC error object.

    Codes without a registered schema, and payloads that fail validation,
    decode to None.
    """
    schema = ERROR_DATA_SCHEMAS.get(code)
    if schema is None:
        return None
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        logger.debug("Failed to decode RPC error data", code=code, error=str(e))
        return None


class RpcTransport:
    """
    Sends JSON-RPC requests to a single node URL.

    Safe to share between threads: the request id counter and the stats are
    the only mutable state and both sit behind a lock. The underlying
    httpx.Client keeps a connection pool that is reused across calls.
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        headers: Optional[Dict[str, str]] = None,
        http_client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        max_rate_limit_retries: int = TOO_MANY_REQUESTS_RETRIES,
    ):
        self._url = url
        self._client = http_client or httpx.Client(
            timeout=timeout,
            headers=headers,
        )
        self._sleep = sleep
        self._clock = clock
        self._max_rate_limit_retries = max_rate_limit_retries
        self._lock = threading.Lock()
        self._next_id = 0
        self._stats = RpcTransportStats()

    @property
    def url(self) -> str:
        return self._url

    @property
    def stats(self) -> RpcTransportStats:
        """Snapshot of the usage counters"""
        with self._lock:
            return replace(self._stats)

    def close(self) -> None:
        self._client.close()

    def _allocate_id(self) -> int:
        with self._lock:
            request_id = self._next_id
            self._next_id += 1
            return request_id

    @contextmanager
    def _track_call(self) -> Iterator[_CallTimer]:
        timer = _CallTimer(started_at=self._clock())
        try:
            yield timer
        finally:
            elapsed = self._clock() - timer.started_at
            with self._lock:
                self._stats = RpcTransportStats(
                    request_count=self._stats.request_count + 1,
                    elapsed_time=self._stats.elapsed_time + elapsed,
                    rate_limited_time=self._stats.rate_limited_time + timer.rate_limited_time,
                )

    def send(self, method: str, params: Any = None) -> Any:
        """Send one request and return its "result" member.

        Raises NetworkError, HttpStatusError, RpcProtocolError or RpcRemoteError.
        """
        with self._track_call() as timer:
            request_id = self._allocate_id()
            body = json.dumps(build_request_json(request_id, method, params))

            retries_left = self._max_rate_limit_retries
            while True:
                try:
                    response = self._client.post(
                        self._url,
                        content=body,
                        headers={"Content-Type": "application/json"},
                    )
                except httpx.RequestError as e:
                    raise NetworkError(f"{method}: {e}") from e

                if response.is_success:
                    return self._handle_response(method, response)

                if response.status_code == httpx.codes.TOO_MANY_REQUESTS and retries_left > 0:
                    pause = parse_retry_after(response.headers.get("Retry-After"))
                    retries_left -= 1
                    logger.debug(
                        "Too many requests, pausing",
                        method=method,
                        request_id=request_id,
                        retries_left=retries_left,
                        pause=pause,
                    )
                    self._sleep(pause)
                    timer.rate_limited_time += pause
                    continue

                raise HttpStatusError(response.status_code, self._url)

    def _handle_response(self, method: str, response: httpx.Response) -> Any:
        try:
            payload = response.json()
        except ValueError as e:
            raise RpcProtocolError(f"{method}: response body is not JSON") from e
        if not isinstance(payload, dict):
            raise RpcProtocolError(f"{method}: response body is not a JSON object")

        error = payload.get("error")
        if isinstance(error, dict):
            try:
                error_object = RpcErrorObject.model_validate(error)
            except ValidationError as e:
                raise RpcProtocolError(
                    f"Failed to deserialize RPC error response: {json.dumps(error)} [{e}]"
                ) from e
            data = decode_error_data(error_object.code, error.get("data"))
            raise RpcRemoteError(error_object.code, error_object.message, data)

        return payload.get("result")
