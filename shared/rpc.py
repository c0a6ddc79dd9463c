"""
Qubic RPC service — the single object through which every upstream read flows.

    accessor -> ResponseCache -> RequestQueue -> transport (httpx)

Owns the HTTP client, the request queue and the response cache. Build one at
the composition root and pass it explicitly to every accessor; there is no
module-level instance.
"""
from typing import Any
import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed
from shared.cache import ResponseCache, make_key
from shared.config import settings
from shared.errors import DecodeError, RateLimitedError, TransportError, UpstreamError
from shared.rate_limiter import RequestQueue
import structlog

logger = structlog.get_logger()

DEFAULT_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


def normalize_endpoint(url: str) -> str:
    base = url.strip()
    return base if base.endswith("/") else base + "/"


class RpcService:
    def __init__(
        self,
        base_url: str | None = None,
        events_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        queue: RequestQueue | None = None,
        cache: ResponseCache | None = None,
        timeout: float | None = None,
        cooldown: float | None = None,
    ):
        self.base_url = normalize_endpoint(base_url or settings.QUBIC_RPC_URL)
        self.events_url = normalize_endpoint(events_url or settings.QUBIC_EVENTS_URL)
        self.queue = queue or RequestQueue(min_interval=settings.RPC_MIN_INTERVAL)
        self.cache = cache or ResponseCache(ttl=settings.RPC_CACHE_TTL)
        self.cooldown = settings.RPC_RATE_LIMIT_COOLDOWN if cooldown is None else cooldown
        self._own_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout or settings.RPC_TIMEOUT,
            headers=DEFAULT_HEADERS,
        )

    async def __aenter__(self) -> "RpcService":
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    async def aclose(self):
        if self._own_client:
            await self._client.aclose()

    def url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return self.base_url + path.lstrip("/")

    def events_path(self, path: str) -> str:
        return self.events_url + path.lstrip("/")

    async def get_json(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post_json(self, path: str, body: Any, cacheable: bool = False) -> Any:
        return await self.request("POST", path, body=body, cacheable=cacheable)

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        cacheable: bool | None = None,
    ) -> Any:
        """
        Perform one JSON request through the cache and the rate-limited queue.
        GETs are cached by default; POSTs only when the caller marks them
        as pure reads.
        """
        method = method.upper()
        url = self.url(path)
        if cacheable is None:
            cacheable = method == "GET"

        key = make_key(method, url, body)
        if cacheable:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("rpc_cache_hit", url=url)
                return cached

        if not cacheable:
            return await self.queue.enqueue(lambda: self._send_with_cooldown(method, url, body))
        return await self.queue.enqueue(lambda: self._send_cached(key, method, url, body))

    async def _send_cached(self, key: str, method: str, url: str, body: Any) -> Any:
        # An identical read queued ahead of this one may have filled the cache
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("rpc_cache_hit", url=url, queued=True)
            return cached

        data = await self._send_with_cooldown(method, url, body)
        if data is not None:
            self.cache.put(key, data)
        return data

    async def _send_with_cooldown(self, method: str, url: str, body: Any) -> Any:
        """One retry after a fixed cooldown on 429, then surface RateLimitedError."""
        def _log_cooldown(retry_state):
            logger.warning("rpc_rate_limited", url=url, cooldown=self.cooldown)

        retrying = AsyncRetrying(
            retry=retry_if_exception_type(RateLimitedError),
            stop=stop_after_attempt(2),
            wait=wait_fixed(self.cooldown),
            before_sleep=_log_cooldown,
            reraise=True,
        )
        return await retrying(self._send, method, url, body)

    async def _send(self, method: str, url: str, body: Any) -> Any:
        kwargs: dict[str, Any] = {"headers": DEFAULT_HEADERS}
        if isinstance(body, (str, bytes)):
            kwargs["content"] = body
        elif body is not None:
            kwargs["json"] = body

        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("rpc_transport_failed", url=url, error=str(e))
            raise TransportError(f"{type(e).__name__}: {e}") from e

        if resp.status_code == 429:
            raise RateLimitedError()
        if not resp.is_success:
            raise UpstreamError(resp.status_code, resp.text)

        try:
            return resp.json()
        except ValueError as e:
            raise DecodeError(f"Malformed JSON from {url}") from e
